"""Prompt builder for splitting compound questions into sub-questions."""
from __future__ import annotations

from typing import Any, Dict

DECOMPOSITION_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "subQuestions": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
        },
    },
    "required": ["subQuestions"],
}


def build_decomposition_prompt(question: str) -> str:
    return "\n".join(
        [
            "You are an expert at understanding user queries. A user will ask a question that might "
            "contain multiple parts. Your task is to break down this compound question into a clear, "
            "concise list of individual, self-contained questions.",
            "",
            "Analyze the following user query:",
            f'"{question}"',
            "",
            'Return your response as a JSON object with a single key "subQuestions" which is an array '
            "of strings. Each string in the array should be one of the individual questions you identified.",
            "",
            "Example Input: \"What's your return policy and how long does shipping take?\"",
            "Example Output:",
            "{",
            '  "subQuestions": [',
            '    "What is the return policy?",',
            '    "How long does shipping take?"',
            "  ]",
            "}",
        ]
    )
