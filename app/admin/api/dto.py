from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class FlagChatRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class ReviewChatRequest(BaseModel):
    action: Optional[Literal["approve", "reject"]] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class BulkDeleteRequest(BaseModel):
    chat_ids: List[int] = Field(..., min_length=1)


class BanIpRequest(BaseModel):
    ip_address: str = Field(..., max_length=45)
    reason: Optional[str] = Field(default=None, max_length=255)


class PaginationDTO(BaseModel):
    total: int
    page: int
    per_page: int
    last_page: int
