"""Retrieval client: one sub-question + full knowledge base -> ranked FAQ matches."""
from __future__ import annotations

import logging
from typing import List, Sequence

from pydantic import ValidationError

from app.infra.gemini_client import GeminiClient
from app.retrieval.prompts.faq_retrieval import RETRIEVAL_SCHEMA, build_retrieval_prompt
from app.shared.errors import RetrievalError, SchemaError, TransportError
from app.shared.models import FAQEntry, RankedMatch, RetrievalPayload

logger = logging.getLogger(__name__)

DEFAULT_MAX_MATCHES = 3


class FaqRetriever:
    """Asks the LLM to pick the most relevant knowledge base entries."""

    def __init__(self, client: GeminiClient, *, max_matches: int = DEFAULT_MAX_MATCHES) -> None:
        if max_matches < 1:
            raise ValueError("max_matches must be at least 1")
        self.client = client
        self.max_matches = max_matches

    async def retrieve(self, sub_question: str, knowledge_base: Sequence[FAQEntry]) -> List[RankedMatch]:
        """Return matches in model order. An empty list means no relevant FAQ."""

        prompt = build_retrieval_prompt(sub_question, knowledge_base, max_matches=self.max_matches)
        try:
            raw = await self.client.generate_json(prompt, response_schema=RETRIEVAL_SCHEMA)
            payload = RetrievalPayload.model_validate(raw)
        except (TransportError, SchemaError) as exc:
            raise RetrievalError(f"retrieval for {sub_question!r} failed: {exc}") from exc
        except ValidationError as exc:
            raise RetrievalError(f"retrieval response for {sub_question!r} has unexpected shape") from exc

        matches = [item.to_match() for item in payload.relevant_faqs]
        if len(matches) > self.max_matches:
            logger.info(
                "Model returned %s matches for %r; keeping the first %s",
                len(matches),
                sub_question,
                self.max_matches,
            )
            matches = matches[: self.max_matches]
        return matches


def unmatched_entries(matches: Sequence[RankedMatch], knowledge_base: Sequence[FAQEntry]) -> List[FAQEntry]:
    """Entries the model returned that are not a verbatim copy of a knowledge base entry."""

    known = set(knowledge_base)
    return [m.entry for m in matches if m.entry not in known]
