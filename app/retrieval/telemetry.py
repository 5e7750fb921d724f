"""Best-effort telemetry hooks for question epochs (LangFuse-ready)."""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class PipelineTelemetry:
    """Publishes per-epoch pipeline metrics to LangFuse when configured."""

    def __init__(self) -> None:
        self.host = str(settings.langfuse_host).rstrip("/") if settings.langfuse_host else None
        self.public_key = settings.langfuse_public_key
        self.secret_key = settings.langfuse_secret_key
        self.dataset = settings.langfuse_dataset
        self.enabled = bool(self.host and self.public_key and self.secret_key and self.dataset)
        self._endpoint = f"{self.host}/api/public/ingestion/events" if self.host else None

    async def record_epoch(
        self,
        *,
        epoch: int,
        state: str,
        sub_questions: int,
        failed_retrievals: int,
        duration_seconds: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not self.enabled or not self._endpoint:
            return

        payload: Dict[str, Any] = {
            "traceId": None,
            "name": "faq_epoch",
            "timestamp": int(time.time() * 1000),
            "dataset": self.dataset,
            "metadata": {
                "epoch": epoch,
                "state": state,
                "sub_questions": sub_questions,
                "failed_retrievals": failed_retrievals,
                "duration_ms": round(duration_seconds * 1000, 3),
                **(metadata or {}),
            },
        }

        headers = {
            "Content-Type": "application/json",
            "X-Langfuse-Public-Key": self.public_key,
            "X-Langfuse-Secret-Key": self.secret_key,
        }

        try:
            async with httpx.AsyncClient(timeout=settings.telemetry_timeout_seconds) as client:
                await client.post(self._endpoint, json=payload, headers=headers)
        except Exception as exc:  # pragma: no cover - best effort telemetry
            logger.debug("LangFuse telemetry failed: %s", exc)


pipeline_telemetry = PipelineTelemetry()
