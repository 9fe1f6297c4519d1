from datetime import date
from typing import Optional

from fastapi import HTTPException

from app.admin.api.dto import PaginationDTO
from app.audit.entity.audit import AuditEntry, AuditPage, AuditQuery
from app.chat.entity.chat import ChatExchange, ChatPage, ChatQuery
from app.security.entity.banned_ip import BannedIp

MAX_PER_PAGE = 100
DEFAULT_PER_PAGE = 20


def parse_tristate(value: Optional[str], name: str) -> Optional[bool]:
    """'true' / 'false' filter on a flag; 'all' or absent means no filter."""
    if value is None or value == "" or value == "all":
        return None
    if value == "true":
        return True
    if value == "false":
        return False
    raise HTTPException(status_code=422, detail=f"{name} must be one of: true, false, all")


def clamp_per_page(per_page: Optional[int]) -> int:
    if per_page is None:
        return DEFAULT_PER_PAGE
    return min(max(per_page, 1), MAX_PER_PAGE)


def build_chat_query(
    flagged: Optional[str] = None,
    reviewed: Optional[str] = None,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = 1,
    per_page: Optional[int] = None,
) -> ChatQuery:
    return ChatQuery(
        flagged=parse_tristate(flagged, "flagged"),
        reviewed=parse_tristate(reviewed, "reviewed"),
        user_id=user_id or None,
        session_id=session_id or None,
        search=search or None,
        date_from=date_from,
        date_to=date_to,
        page=max(page, 1),
        per_page=clamp_per_page(per_page),
    )


def chat_to_dict(exchange: ChatExchange) -> dict:
    return exchange.model_dump(mode="json")


def page_to_dict(page: ChatPage) -> dict:
    return {
        "chats": [chat_to_dict(c) for c in page.items],
        "pagination": PaginationDTO(
            total=page.total,
            page=page.page,
            per_page=page.per_page,
            last_page=page.last_page,
        ).model_dump(),
    }


def ban_to_dict(ban: BannedIp) -> dict:
    return ban.model_dump(mode="json")


def build_activity_query(
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = 1,
    per_page: Optional[int] = None,
) -> AuditQuery:
    return AuditQuery(
        user_id=user_id or None,
        action=action or None,
        search=search or None,
        date_from=date_from,
        date_to=date_to,
        page=max(page, 1),
        per_page=clamp_per_page(per_page),
    )


def activity_to_dict(entry: AuditEntry) -> dict:
    return entry.model_dump(mode="json")


def activity_page_to_dict(page: AuditPage) -> dict:
    return {
        "activity": [activity_to_dict(e) for e in page.items],
        "pagination": PaginationDTO(
            total=page.total,
            page=page.page,
            per_page=page.per_page,
            last_page=page.last_page,
        ).model_dump(),
    }
