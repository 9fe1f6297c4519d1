from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from app.admin.api.dto import BanIpRequest, BulkDeleteRequest, FlagChatRequest, ReviewChatRequest
from app.admin.api.handler import (
    activity_page_to_dict,
    ban_to_dict,
    build_activity_query,
    build_chat_query,
    chat_to_dict,
    page_to_dict,
)
from app.admin.service.moderation_service import ModerationService
from app.auth.api.dependencies import require_admin
from app.auth.api.dto import BaseResponse
from app.core.client_info import get_client_info
from app.core.logger import get_logger

admin_router = APIRouter(prefix="/admin", tags=["Admin"])
logger = get_logger("AdminRouter")


def get_moderation_service(request: Request) -> ModerationService:
    """Dependency to get moderation service from app.state."""
    service = getattr(request.app.state, "moderation_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Moderation service not available")
    return service


# ────────────────────────────────────────────────
# Chats
# ────────────────────────────────────────────────

@admin_router.get("/chats", response_model=BaseResponse)
async def list_chats(
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
    flagged: Optional[str] = Query(default=None, description="true | false | all"),
    reviewed: Optional[str] = Query(default=None, description="true | false | all"),
    user_id: Optional[str] = Query(default=None),
    session_id: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, description="Substring of message or response"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    page: int = Query(default=1),
    per_page: Optional[int] = Query(default=None, description="Clamped to 1..100, default 20"),
):
    query = build_chat_query(flagged, reviewed, user_id, session_id, search, date_from, date_to, page, per_page)
    result = await service.list_chats(query)
    return BaseResponse(status=True, message="Chats fetched successfully", data=page_to_dict(result))


@admin_router.post("/chats/bulk-delete", response_model=BaseResponse)
async def bulk_delete_chats(
    body: BulkDeleteRequest,
    request: Request,
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    deleted = await service.bulk_delete(body.chat_ids, admin["user_id"], get_client_info(request))
    return BaseResponse(status=True, message="Chats deleted successfully", data={"deleted_count": deleted})


@admin_router.get("/chats/{chat_id}", response_model=BaseResponse)
async def get_chat(
    chat_id: int,
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    exchange = await service.get_chat(chat_id)
    return BaseResponse(status=True, message="Chat fetched successfully", data={"chat": chat_to_dict(exchange)})


@admin_router.delete("/chats/{chat_id}", response_model=BaseResponse)
async def delete_chat(
    chat_id: int,
    request: Request,
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    await service.delete_chat(chat_id, admin["user_id"], get_client_info(request))
    return BaseResponse(status=True, message="Chat deleted successfully")


@admin_router.post("/chats/{chat_id}/flag", response_model=BaseResponse)
async def flag_chat(
    chat_id: int,
    request: Request,
    body: FlagChatRequest = FlagChatRequest(),
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    exchange = await service.flag(chat_id, body.reason, admin["user_id"], get_client_info(request))
    return BaseResponse(status=True, message="Chat flagged successfully", data={"chat": chat_to_dict(exchange)})


@admin_router.post("/chats/{chat_id}/unflag", response_model=BaseResponse)
async def unflag_chat(
    chat_id: int,
    request: Request,
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    exchange = await service.unflag(chat_id, admin["user_id"], get_client_info(request))
    return BaseResponse(status=True, message="Chat unflagged successfully", data={"chat": chat_to_dict(exchange)})


@admin_router.post("/chats/{chat_id}/review", response_model=BaseResponse)
async def review_chat(
    chat_id: int,
    request: Request,
    body: ReviewChatRequest = ReviewChatRequest(),
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    exchange = await service.review(chat_id, body.action, body.notes, admin["user_id"], get_client_info(request))
    return BaseResponse(status=True, message="Chat reviewed successfully", data={"chat": chat_to_dict(exchange)})


@admin_router.get("/users/{user_id}/chats", response_model=BaseResponse)
async def get_user_chats(
    user_id: str,
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
    session_id: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    page: int = Query(default=1),
    per_page: Optional[int] = Query(default=None),
):
    query = build_chat_query(user_id=user_id, session_id=session_id, search=search, page=page, per_page=per_page)
    result = await service.list_chats(query)
    data = page_to_dict(result)
    data["user_id"] = user_id
    return BaseResponse(status=True, message="User chats fetched successfully", data=data)


# ────────────────────────────────────────────────
# Banned IPs
# ────────────────────────────────────────────────

@admin_router.get("/banned-ips", response_model=BaseResponse)
async def list_banned_ips(
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    bans = await service.list_banned_ips()
    return BaseResponse(
        status=True,
        message="Banned IPs fetched successfully",
        data={"banned_ips": [ban_to_dict(b) for b in bans]},
    )


@admin_router.post("/banned-ips")
async def ban_ip(
    body: BanIpRequest,
    request: Request,
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    ban, created = await service.ban_ip(body.ip_address, body.reason, admin["user_id"], get_client_info(request))
    response = BaseResponse(
        status=True,
        message="IP address banned successfully" if created else "IP address is already banned",
        data={"banned_ip": ban_to_dict(ban)},
    )
    return JSONResponse(status_code=201 if created else 200, content=response.model_dump())


@admin_router.delete("/banned-ips/{ban_id}", response_model=BaseResponse)
async def unban_ip(
    ban_id: int,
    request: Request,
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    ban = await service.unban_ip(ban_id, admin["user_id"], get_client_info(request))
    return BaseResponse(status=True, message="IP address unbanned successfully", data={"banned_ip": ban_to_dict(ban)})


# ────────────────────────────────────────────────
# Activity logs
# ────────────────────────────────────────────────

@admin_router.get("/activity-logs", response_model=BaseResponse)
async def list_activity_logs(
    admin: dict = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
    user_id: Optional[str] = Query(default=None),
    action: Optional[str] = Query(default=None, description="Substring of the action name"),
    search: Optional[str] = Query(default=None, description="Substring of action or IP address"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    page: int = Query(default=1),
    per_page: Optional[int] = Query(default=None, description="Clamped to 1..100, default 20"),
):
    query = build_activity_query(user_id, action, search, date_from, date_to, page, per_page)
    result = await service.list_activity(query)
    return BaseResponse(status=True, message="Activity logs fetched successfully", data=activity_page_to_dict(result))
