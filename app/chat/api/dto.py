from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class SendMessageRequest(BaseModel):
    message: str = Field(..., min_length=1)
    session_id: Optional[str] = Field(default=None, max_length=255)

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be blank")
        return v


class SendMessageResponse(BaseModel):
    status: bool = True
    response: str
    session_id: str
    id: int


class ChatExchangeDTO(BaseModel):
    id: int
    message: str
    response: str
    session_id: Optional[str] = None
    created_at: Optional[str] = None


class SessionDTO(BaseModel):
    session_id: str
    last_message: str
    last_message_at: Optional[str] = None
    message_count: int


class HistoryData(BaseModel):
    chat_history: List[ChatExchangeDTO]


class SessionsData(BaseModel):
    sessions: List[SessionDTO]
