"""Decomposition client: compound question -> ordered self-contained sub-questions."""
from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError

from app.infra.gemini_client import GeminiClient
from app.retrieval.prompts.decomposition import DECOMPOSITION_SCHEMA, build_decomposition_prompt
from app.shared.errors import DecompositionError, EmptyInputError, SchemaError, TransportError
from app.shared.models import DecompositionPayload

logger = logging.getLogger(__name__)


class QuestionDecomposer:
    """Asks the LLM to split a question into atomic questions."""

    def __init__(self, client: GeminiClient) -> None:
        self.client = client

    async def decompose(self, question: str) -> List[str]:
        """Return sub-questions in model order; an empty list means no breakdown was possible."""

        if not question or not question.strip():
            raise EmptyInputError("question is required")

        prompt = build_decomposition_prompt(question)
        try:
            raw = await self.client.generate_json(prompt, response_schema=DECOMPOSITION_SCHEMA)
            payload = DecompositionPayload.model_validate(raw)
        except (TransportError, SchemaError) as exc:
            logger.error("Error breaking down question: %s", exc)
            raise DecompositionError(str(exc)) from exc
        except ValidationError as exc:
            logger.error("Decomposition response has unexpected shape: %s", exc)
            raise DecompositionError("decomposition response has unexpected shape") from exc

        return list(payload.sub_questions)
