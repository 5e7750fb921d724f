"""Centralized dependency providers for the LLM client, knowledge base and sessions.

Everything here is built once per process and handed to the pipeline
explicitly, which keeps construction in one place and makes DI/testing easier.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Tuple

from app.config import settings
from app.infra.gemini_client import GeminiClient
from app.presentation.sessions import SessionRegistry
from app.presentation.speech import SpeechCapture
from app.retrieval.decomposition import QuestionDecomposer
from app.retrieval.faq_retrieval import FaqRetriever
from app.retrieval.orchestrator import QuestionOrchestrator
from app.shared.faq_data import load_knowledge_base
from app.shared.models import FAQEntry


class MissingCredentialError(RuntimeError):
    """The remote LLM credential is not configured."""


@lru_cache(maxsize=1)
def get_knowledge_base() -> Tuple[FAQEntry, ...]:
    return load_knowledge_base(settings.faq_path)


@lru_cache(maxsize=1)
def get_gemini_client() -> GeminiClient:
    if not settings.gemini_api_key:
        raise MissingCredentialError("FAQASSIST_GEMINI_API_KEY is required for LLM calls")
    return GeminiClient(
        settings.gemini_api_key,
        model=settings.gemini_model,
        timeout=settings.gemini_timeout_seconds,
        base_url=str(settings.gemini_base_url),
    )


def build_orchestrator() -> QuestionOrchestrator:
    client = get_gemini_client()
    return QuestionOrchestrator(
        QuestionDecomposer(client),
        FaqRetriever(client, max_matches=settings.max_matches),
        get_knowledge_base(),
    )


def build_speech_capture() -> SpeechCapture:
    # Capture runs in the browser; the server only receives final transcripts.
    return SpeechCapture(None, language=settings.speech_language)


@lru_cache(maxsize=1)
def get_session_registry() -> SessionRegistry:
    return SessionRegistry(
        build_orchestrator,
        speech_factory=build_speech_capture,
        max_sessions=settings.max_sessions,
    )
