# app/llm/service/provider/openai_compatible.py
import json
import time
from typing import Any, Optional

import httpx

from .base_provider import BaseProvider
from app.core.logger import get_logger
from app.llm.entity.dispatch import ProviderAttempt, ProviderConfig, TokenUsage
from app.llm.service.pricing import estimate_cost

RESPONSE_SNAPSHOT_LIMIT = 1000


def parse_usage(data: Any) -> Optional[TokenUsage]:
    """Read OpenAI-style usage metadata; None when the payload carries none."""
    if not isinstance(data, dict) or not isinstance(data.get("usage"), dict):
        return None
    usage = data["usage"]

    def _int(key: str) -> int:
        try:
            return int(usage.get(key) or 0)
        except (TypeError, ValueError):
            return 0

    return TokenUsage(
        input_tokens=_int("prompt_tokens"),
        output_tokens=_int("completion_tokens"),
        total_tokens=_int("total_tokens"),
    )


def extract_content(data: Any) -> Optional[str]:
    """choices[0].message.content, or None when the payload is not a well-formed completion."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


class OpenAICompatibleProvider(BaseProvider):
    """Any endpoint speaking the OpenAI chat-completions wire format (HF router, OpenAI, ...)."""

    def __init__(self, config: ProviderConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)
        self._transport = transport
        self._logger = get_logger(f"Provider[{config.name}]")

    def build_payload(self, message: str) -> dict:
        return {
            "model": self.config.model,
            "messages": self.build_messages(message),
            "stream": False,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

    async def complete(self, message: str, attempt_number: int = 1) -> ProviderAttempt:
        payload = self.build_payload(message)
        request_snapshot = json.dumps(payload)
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        base = dict(
            provider=self.name,
            endpoint=self.config.endpoint,
            model=self.config.model,
            attempt_number=attempt_number,
            request_snapshot=request_snapshot,
        )

        self._logger.info(f"Calling {self.name} | model={self.config.model} attempt={attempt_number}")
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds, transport=self._transport) as client:
                res = await client.post(self.config.endpoint, json=payload, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self._logger.error(f"{self.name} request error: {type(e).__name__}: {e}")
            return ProviderAttempt(
                success=False,
                error_message=str(e) or type(e).__name__,
                **base,
            )

        response_time_ms = round((time.perf_counter() - start) * 1000)
        try:
            data = res.json()
        except ValueError:
            data = None

        usage = parse_usage(data)
        content = extract_content(data) if res.is_success else None
        success = content is not None

        if success:
            error_message = None
            self._logger.info(f"{self.name} success | status={res.status_code} time_ms={response_time_ms}")
        elif res.is_success:
            error_message = "Malformed completion payload: " + (res.text[:500] or "empty body")
            self._logger.warning(f"{self.name} unexpected response format | status={res.status_code}")
        else:
            error_message = res.text or "Unknown error"
            self._logger.warning(
                f"{self.name} request failed | status={res.status_code} preview={res.text[:500]!r}"
            )

        return ProviderAttempt(
            success=success,
            status_code=res.status_code,
            content=content,
            usage=usage or TokenUsage(),
            response_time_ms=response_time_ms,
            error_message=error_message,
            cost=estimate_cost(usage, self.config.pricing),
            response_snapshot=(res.text or "")[:RESPONSE_SNAPSHOT_LIMIT],
            **base,
        )
