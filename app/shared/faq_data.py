"""The static FAQ knowledge base."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import TypeAdapter

from app.shared.models import FAQEntry, FAQEntryPayload

FAQ_ENTRIES: Tuple[FAQEntry, ...] = (
    FAQEntry(
        "How can I create an account?",
        "To create an account, click on the 'Sign Up' button on the top right corner of our website and follow the instructions to complete the registration process.",
    ),
    FAQEntry(
        "What payment methods do you accept?",
        "We accept major credit cards, debit cards, and PayPal as payment methods for online orders.",
    ),
    FAQEntry(
        "How can I track my order?",
        "You can track your order by logging into your account and navigating to the 'Order History' section. There, you will find the tracking information for your shipment.",
    ),
    FAQEntry(
        "What is your return policy?",
        "Our return policy allows you to return products within 30 days of purchase for a full refund, provided they are in their original condition and packaging. Please refer to our Returns page for detailed instructions.",
    ),
    FAQEntry(
        "Can I cancel my order?",
        "You can cancel your order if it has not been shipped yet. Please contact our customer support team with your order details, and we will assist you with the cancellation process.",
    ),
    FAQEntry(
        "How long does shipping take?",
        "Shipping times vary depending on the destination and the shipping method chosen. Standard shipping usually takes 3-5 business days, while express shipping can take 1-2 business days.",
    ),
    FAQEntry(
        "Do you offer international shipping?",
        "Yes, we offer international shipping to select countries. The availability and shipping costs will be calculated during the checkout process based on your location.",
    ),
    FAQEntry(
        "What should I do if my package is lost or damaged?",
        "If your package is lost or damaged during transit, please contact our customer support team immediately. We will initiate an investigation and take the necessary steps to resolve the issue.",
    ),
    FAQEntry(
        "Can I change my shipping address after placing an order?",
        "If you need to change your shipping address, please contact our customer support team as soon as possible. We will do our best to update the address if the order has not been shipped yet.",
    ),
    FAQEntry(
        "How can I contact customer support?",
        "You can contact our customer support team by phone at [phone number] or by email at [email address]. Our team is available [working hours] to assist you with any inquiries or issues you may have.",
    ),
    FAQEntry(
        "Do you offer gift wrapping services?",
        "Yes, we offer gift wrapping services for an additional fee. During the checkout process, you can select the option to add gift wrapping to your order.",
    ),
    FAQEntry(
        "What is your price matching policy?",
        "We have a price matching policy where we will match the price of an identical product found on a competitor's website. Please contact our customer support team with the details of the product and the competitor's offer.",
    ),
    FAQEntry(
        "Can I order by phone?",
        "Unfortunately, we do not accept orders over the phone. Please place your order through our website for a smooth and secure transaction.",
    ),
    FAQEntry(
        "Are my personal and payment details secure?",
        "Yes, we take the security of your personal and payment details seriously. We use industry-standard encryption and follow strict security protocols to ensure your information is protected.",
    ),
    FAQEntry(
        "What is your price adjustment policy?",
        "If a product you purchased goes on sale within 7 days of your purchase, we offer a one-time price adjustment. Please contact our customer support team with your order details to request the adjustment.",
    ),
    FAQEntry(
        "Do you have a loyalty program?",
        "Yes, we have a loyalty program where you can earn points for every purchase. These points can be redeemed for discounts on future orders. Please visit our website to learn more and join the program.",
    ),
)

_FAQ_FILE_ADAPTER = TypeAdapter(List[FAQEntryPayload])


def load_faq_file(path: Path) -> Tuple[FAQEntry, ...]:
    """Load a JSON list of {question, answer} objects."""

    raw = Path(path).read_bytes()
    payloads = _FAQ_FILE_ADAPTER.validate_json(raw)
    if not payloads:
        raise ValueError(f"FAQ file {path} contains no entries")
    return tuple(p.to_entry() for p in payloads)


def load_knowledge_base(path: Optional[Path] = None) -> Tuple[FAQEntry, ...]:
    """Return the configured knowledge base, falling back to the built-in entries."""

    if path is None:
        return FAQ_ENTRIES
    return load_faq_file(path)


__all__ = ["FAQ_ENTRIES", "load_faq_file", "load_knowledge_base"]
