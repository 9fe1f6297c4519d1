# app/chat/entity/chat.py
"""
Models for stored chat exchanges and the queries run against them.
One exchange is a user message together with the reply it received.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ChatExchange(BaseModel):
    """A persisted message/response pair, with its moderation state."""
    id: Optional[int] = None
    user_id: str
    message: str
    response: str
    session_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Moderation
    flagged: bool = False
    reviewed: bool = False
    flagged_by: Optional[str] = None
    reviewed_by: Optional[str] = None
    flagged_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    flag_reason: Optional[str] = None


class SessionSummary(BaseModel):
    session_id: str
    last_message: str = ""
    last_message_at: Optional[datetime] = None
    message_count: int = 0


class ChatQuery(BaseModel):
    """Filters for the moderation listing. ``None`` means the filter is not applied."""
    flagged: Optional[bool] = None
    reviewed: Optional[bool] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    page: int = 1
    per_page: int = 20


class ChatPage(BaseModel):
    items: List[ChatExchange] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 20

    @property
    def last_page(self) -> int:
        return max(1, -(-self.total // self.per_page))
