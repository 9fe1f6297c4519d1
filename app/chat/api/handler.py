import logging
from typing import Optional

from fastapi import HTTPException

from app.auth.api.dto import BaseResponse
from app.chat.api.dto import (
    ChatExchangeDTO,
    HistoryData,
    SendMessageRequest,
    SendMessageResponse,
    SessionDTO,
    SessionsData,
)
from app.chat.service.chat_service import ChatService
from app.core.config import settings


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class ChatHandler:
    """Translates chat service results into API responses."""

    def __init__(self, chat_service: ChatService, logger: logging.Logger):
        self.chat_service = chat_service
        self.logger = logger

    async def send_message(
        self,
        user_id: str,
        body: SendMessageRequest,
        client_ip: Optional[str],
        user_agent: Optional[str],
    ) -> SendMessageResponse:
        try:
            exchange = await self.chat_service.send_message(
                user_id,
                body.message,
                session_id=body.session_id,
                client_ip=client_ip,
                user_agent=user_agent,
            )
        except HTTPException:
            raise
        except Exception as e:
            self.logger.error(f"Failed to store chat exchange for user {user_id}: {e}", exc_info=True)
            detail = f"An error occurred: {e}" if settings.DEBUG else "Internal server error"
            raise HTTPException(status_code=500, detail=detail)

        return SendMessageResponse(
            response=exchange.response,
            session_id=exchange.session_id,
            id=exchange.id,
        )

    async def history(self, user_id: str, session_id: Optional[str]) -> BaseResponse:
        exchanges = await self.chat_service.history(user_id, session_id)
        data = HistoryData(chat_history=[
            ChatExchangeDTO(
                id=e.id,
                message=e.message,
                response=e.response,
                session_id=e.session_id,
                created_at=_iso(e.created_at),
            )
            for e in exchanges
        ])
        return BaseResponse(status=True, message="Chat history fetched successfully", data=data.model_dump())

    async def sessions(self, user_id: str) -> BaseResponse:
        summaries = await self.chat_service.sessions(user_id)
        data = SessionsData(sessions=[
            SessionDTO(
                session_id=s.session_id,
                last_message=s.last_message,
                last_message_at=_iso(s.last_message_at),
                message_count=s.message_count,
            )
            for s in summaries
        ])
        return BaseResponse(status=True, message="Chat sessions fetched successfully", data=data.model_dump())

    async def delete_history(
        self,
        user_id: str,
        exchange_id: Optional[int],
        session_id: Optional[str],
        client_ip: Optional[str],
        user_agent: Optional[str],
    ) -> BaseResponse:
        deleted = await self.chat_service.delete_history(
            user_id,
            exchange_id=exchange_id,
            session_id=session_id,
            client_ip=client_ip,
            user_agent=user_agent,
        )
        if deleted is None:
            raise HTTPException(status_code=404, detail="Chat history not found")
        return BaseResponse(
            status=True,
            message="Chat history deleted successfully",
            data={"deleted_count": deleted},
        )
