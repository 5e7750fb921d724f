"""Minimal Gemini client for structured (JSON) generation calls."""
from __future__ import annotations

import json
from typing import Any, List, Mapping, Optional

import httpx

from app.shared.errors import SchemaError, TransportError


class GeminiClient:
    """Thin wrapper around the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.5-flash",
        timeout: float = 60.0,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
    ) -> None:
        if not api_key:
            raise ValueError("Gemini API key is required")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.base_url = str(base_url).rstrip("/")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate_json(
        self,
        prompt: str,
        *,
        response_schema: Mapping[str, Any],
    ) -> Any:
        """Send one prompt and return the decoded JSON the model produced."""

        payload: dict[str, object] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": dict(response_schema),
            },
        }
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        timeout_obj = httpx.Timeout(self.timeout, connect=10.0)
        try:
            async with httpx.AsyncClient(timeout=timeout_obj) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"Gemini request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise SchemaError("Gemini returned a non-JSON envelope") from exc
        return _decode(self._extract_text(data))

    @staticmethod
    def _extract_text(data: Any) -> str:
        if not isinstance(data, Mapping):
            raise SchemaError("Gemini returned a malformed envelope")
        candidates: Optional[List[Mapping[str, Any]]] = data.get("candidates")  # type: ignore[assignment]
        if not candidates or not isinstance(candidates, list):
            raise SchemaError("Gemini returned no candidates")
        content = candidates[0].get("content") if isinstance(candidates[0], Mapping) else None
        parts = content.get("parts") if isinstance(content, Mapping) else None
        if not parts or not isinstance(parts, list):
            raise SchemaError("Gemini returned empty content")
        text = "".join(
            p.get("text", "") for p in parts if isinstance(p, Mapping) and isinstance(p.get("text"), str)
        )
        if not text.strip():
            raise SchemaError("Gemini returned empty content")
        return text


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Gemini returned invalid JSON: {exc.msg}") from exc
