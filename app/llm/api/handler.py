from app.llm.api.dto import ProviderInfo, ProviderListResponse, UsageListResponse, UsageRecordDTO
from app.llm.service.dispatch_service import FallbackDispatcher
from app.usage.service.service import IUsageRepository


class LLMHandler:
    """Handler for LLM API endpoints."""

    def __init__(self, dispatcher: FallbackDispatcher, usage_repository: IUsageRepository):
        self.dispatcher = dispatcher
        self.usage_repository = usage_repository

    async def health(self) -> dict:
        """Counts of configured and usable providers."""
        active = self.dispatcher.active_providers()
        return {
            "status": "ok" if active else "fallback_only",
            "active_providers": len(active),
            "total_providers": len(self.dispatcher.providers),
        }

    async def providers(self) -> ProviderListResponse:
        """Return providers in the order they are tried."""
        provider_list = []
        for provider in self.dispatcher.providers:
            cfg = provider.config
            provider_list.append(ProviderInfo(
                name=provider.name,
                model=cfg.model,
                endpoint=cfg.endpoint,
                timeout_seconds=cfg.timeout_seconds,
                max_retries=cfg.max_retries,
                priced=cfg.pricing is not None,
                status="active" if provider.is_enabled() else "disabled",
            ))
        return ProviderListResponse(
            providers=provider_list,
            retry_delay_seconds=self.dispatcher.config.retry_delay_seconds,
        )

    async def usage(self, user_id: str, limit: int) -> UsageListResponse:
        records = await self.usage_repository.list_for_user(user_id, limit=limit)
        total = await self.usage_repository.count(user_id)
        return UsageListResponse(
            user_id=user_id,
            total=total,
            records=[
                UsageRecordDTO(
                    id=r.id,
                    api_provider=r.api_provider,
                    model=r.model,
                    status_code=r.status_code,
                    success=r.success,
                    input_tokens=r.input_tokens,
                    output_tokens=r.output_tokens,
                    total_tokens=r.total_tokens,
                    response_time_ms=r.response_time_ms,
                    cost=r.cost,
                    error_message=r.error_message,
                    created_at=r.created_at.isoformat() if r.created_at else None,
                )
                for r in records
            ],
        )
