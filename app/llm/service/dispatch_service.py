# app/llm/service/dispatch_service.py
import asyncio
import random
from typing import Awaitable, Callable, List, Optional

import httpx

from app.core.logger import get_logger
from app.llm.entity.dispatch import DispatchConfig, DispatchResult, ProviderAttempt
from app.llm.service.fallback import build_fallback_response
from app.llm.service.provider.base_provider import BaseProvider
from app.llm.service.provider.openai_compatible import OpenAICompatibleProvider
from app.usage.entity.usage import ApiUsageRecord
from app.usage.service.service import IUsageRepository

logger = get_logger("FallbackDispatcher")

SleepFunc = Callable[[float], Awaitable[None]]


class FallbackDispatcher:
    """
    Sends one user message through the configured providers in order.

    Each provider gets up to ``max_retries + 1`` attempts; only statuses in
    its retryable set are retried, after a constant delay. Every attempt is
    written to the usage ledger. When no provider produces content, a canned
    reply is returned instead. ``dispatch`` never raises.
    """

    def __init__(
        self,
        config: DispatchConfig,
        usage_repository: Optional[IUsageRepository] = None,
        providers: Optional[List[BaseProvider]] = None,
        rng: Optional[random.Random] = None,
        sleep: SleepFunc = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.usage_repository = usage_repository
        self.providers = providers if providers is not None else [
            OpenAICompatibleProvider(p, transport=transport) for p in config.providers
        ]
        self.rng = rng or random.Random()
        self._sleep = sleep

    def active_providers(self) -> List[BaseProvider]:
        return [p for p in self.providers if p.is_enabled()]

    async def dispatch(
        self,
        message: str,
        user_id: Optional[str],
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> DispatchResult:
        attempts: List[ProviderAttempt] = []

        for provider in self.active_providers():
            max_attempts = provider.config.max_retries + 1
            for attempt_number in range(1, max_attempts + 1):
                attempt = await self._attempt(provider, message, attempt_number)
                attempts.append(attempt)
                await self._record_usage(attempt, user_id, client_ip, user_agent)

                if attempt.success:
                    logger.info(f"Dispatch served by {provider.name} on attempt {attempt_number}")
                    return DispatchResult(
                        text=attempt.content,
                        provider=provider.name,
                        api_used=True,
                        attempts=attempts,
                        final_attempt=attempt,
                    )

                retryable = attempt.status_code in provider.config.retryable_status_codes
                if retryable and attempt_number < max_attempts:
                    logger.warning(
                        f"{provider.name} returned {attempt.status_code}; "
                        f"retrying in {self.config.retry_delay_seconds}s"
                    )
                    await self._sleep(self.config.retry_delay_seconds)
                    continue
                break

            logger.warning(f"{provider.name} failed, moving to next provider")

        logger.warning(f"All providers failed after {len(attempts)} attempt(s); using fallback response")
        return DispatchResult(
            text=build_fallback_response(message, self.rng),
            provider=None,
            api_used=False,
            attempts=attempts,
            final_attempt=None,
        )

    async def _attempt(self, provider: BaseProvider, message: str, attempt_number: int) -> ProviderAttempt:
        try:
            return await provider.complete(message, attempt_number=attempt_number)
        except Exception as e:
            logger.error(f"{provider.name} raised during attempt {attempt_number}: {e}", exc_info=True)
            return ProviderAttempt(
                provider=provider.name,
                endpoint=provider.config.endpoint,
                model=provider.config.model,
                attempt_number=attempt_number,
                success=False,
                error_message=str(e) or type(e).__name__,
            )

    async def _record_usage(
        self,
        attempt: ProviderAttempt,
        user_id: Optional[str],
        client_ip: Optional[str],
        user_agent: Optional[str],
    ) -> None:
        if self.usage_repository is None:
            return
        record = ApiUsageRecord(
            api_provider=attempt.provider,
            endpoint=attempt.endpoint,
            user_id=user_id,
            model=attempt.model,
            input_tokens=attempt.usage.input_tokens,
            output_tokens=attempt.usage.output_tokens,
            total_tokens=attempt.usage.total_tokens,
            response_time_ms=attempt.response_time_ms,
            status_code=attempt.status_code,
            success=attempt.success,
            error_message=attempt.error_message,
            request_data=attempt.request_snapshot,
            response_data=attempt.response_snapshot,
            ip_address=client_ip,
            user_agent=user_agent,
            cost=attempt.cost,
        )
        try:
            await self.usage_repository.record(record)
        except Exception as e:
            logger.error(f"Failed to record API usage for {attempt.provider}: {e}")
