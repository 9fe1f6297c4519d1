# app/llm/api/route.py

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from ..api.handler import LLMHandler
from app.auth.api.dependencies import require_admin
from app.auth.api.dto import BaseResponse


def get_llm_handler(request: Request) -> LLMHandler:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    usage_repository = getattr(request.app.state, "usage_repository", None)
    if dispatcher is None or usage_repository is None:
        raise HTTPException(status_code=503, detail="LLM dispatcher not available")
    return LLMHandler(dispatcher, usage_repository)


# Admin-only view of the dispatch chain and its usage ledger
llm_router = APIRouter(prefix="/llm", tags=["LLM"], dependencies=[Depends(require_admin)])


@llm_router.get("/health", response_model=BaseResponse)
async def health(handler: LLMHandler = Depends(get_llm_handler)):
    """Health check for configured providers."""
    health_data = await handler.health()
    return BaseResponse(
        status=True,
        message="Health check successful",
        data=health_data
    )


@llm_router.get("/providers", response_model=BaseResponse)
async def get_providers(handler: LLMHandler = Depends(get_llm_handler)):
    """Return providers in fallback order."""
    providers_data = await handler.providers()
    return BaseResponse(
        status=True,
        message="Providers fetched successfully",
        data=providers_data.model_dump()
    )


@llm_router.get("/usage", response_model=BaseResponse)
async def get_usage(
    user_id: str = Query(..., description="User whose provider attempts to list"),
    limit: int = Query(default=100, ge=1, le=1000),
    handler: LLMHandler = Depends(get_llm_handler),
):
    """Per-attempt usage records for one user, oldest first."""
    usage_data = await handler.usage(user_id, limit)
    return BaseResponse(
        status=True,
        message="Usage fetched successfully",
        data=usage_data.model_dump()
    )
