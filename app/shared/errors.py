"""Error taxonomy shared by the remote clients, the pipeline and the API."""
from __future__ import annotations


class FaqAssistError(Exception):
    """Base class for all faq-assist errors."""


class TransportError(FaqAssistError):
    """The remote LLM endpoint could not be reached or answered with an error status."""


class SchemaError(FaqAssistError):
    """A response was not valid JSON or did not have the expected shape."""


class UnsupportedCapabilityError(FaqAssistError):
    """Speech capture is not available in the current environment."""


class EmptyInputError(FaqAssistError, ValueError):
    """A blank question was submitted."""


class DecompositionError(FaqAssistError):
    """Breaking a question into sub-questions failed."""


class RetrievalError(FaqAssistError):
    """Selecting relevant FAQ entries for a sub-question failed."""


class SpeechRecognitionError(FaqAssistError):
    """The speech recognizer reported an error code."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Speech recognition error: {code}")
        self.code = code


__all__ = [
    "FaqAssistError",
    "TransportError",
    "SchemaError",
    "UnsupportedCapabilityError",
    "EmptyInputError",
    "DecompositionError",
    "RetrievalError",
    "SpeechRecognitionError",
]
