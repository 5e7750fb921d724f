"""Prompt builder for selecting relevant FAQ entries for one sub-question."""
from __future__ import annotations

import json
from typing import Any, Dict, Sequence

from app.shared.models import FAQEntry

RETRIEVAL_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "relevantFAQs": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "question": {"type": "STRING"},
                    "answer": {"type": "STRING"},
                    "confidenceScore": {"type": "NUMBER"},
                },
                "required": ["question", "answer", "confidenceScore"],
            },
        },
    },
    "required": ["relevantFAQs"],
}


def build_retrieval_prompt(
    sub_question: str,
    knowledge_base: Sequence[FAQEntry],
    *,
    max_matches: int = 3,
) -> str:
    """The whole knowledge base is embedded in every prompt."""
    faq_json = json.dumps([entry.as_payload() for entry in knowledge_base], ensure_ascii=False)
    return "\n".join(
        [
            "You are an AI assistant designed to find the most relevant information from a provided "
            "knowledge base. I will give you a user's question and a list of Frequently Asked Questions "
            f"(FAQs). Your task is to select up to {max_matches} of the most relevant FAQs that best "
            "answer the user's question.",
            "",
            "User's Question:",
            f'"{sub_question}"',
            "",
            "Available FAQs (in JSON format):",
            faq_json,
            "",
            'Return your response as a JSON object with a single key "relevantFAQs" which is an array of '
            "objects. Each object in the array must be an exact copy of a matching FAQ from the provided "
            'list, containing its original "question" and "answer" fields. For each FAQ, also provide a '
            '"confidenceScore" (a number between 0.0 and 1.0) indicating how relevant it is to the '
            "user's question. Do not modify the content of the questions or answers. If you find no "
            "relevant FAQs, return an empty array.",
        ]
    )
