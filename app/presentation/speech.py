"""Single-shot speech capture gate.

Recognition itself is a platform capability (the browser's speech API, a
desktop recognizer, ...). This module only enforces the contract around it:
one recognition at a time, one final transcript per start, and clear errors
when the capability is missing or fails.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from app.shared.errors import SpeechRecognitionError, UnsupportedCapabilityError

logger = logging.getLogger(__name__)

UNSUPPORTED_MESSAGE = "Speech recognition is not supported in this browser."


class RecognizerFailure(Exception):
    """Raised by recognizers with the platform error code."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


class Recognizer(Protocol):
    async def recognize(self, language: str) -> str:
        """Run one non-continuous recognition without interim results and return the final transcript."""
        ...


class SpeechCapture:
    """Guards a recognizer with an "is listening" flag."""

    def __init__(self, recognizer: Optional[Recognizer], *, language: str = "en-US") -> None:
        self.recognizer = recognizer
        self.language = language
        self._listening = False

    @property
    def supported(self) -> bool:
        return self.recognizer is not None

    @property
    def listening(self) -> bool:
        return self._listening

    async def listen(self) -> Optional[str]:
        """Capture one transcript. Returns None when a capture is already running."""

        if self.recognizer is None:
            raise UnsupportedCapabilityError(UNSUPPORTED_MESSAGE)
        if self._listening:
            return None

        self._listening = True
        try:
            transcript = await self.recognizer.recognize(self.language)
        except RecognizerFailure as exc:
            logger.error("Speech recognition failed: %s", exc.code)
            raise SpeechRecognitionError(exc.code) from exc
        finally:
            self._listening = False
        return transcript.strip()
