# app/chat/service/chat_service.py
import logging
import uuid
from typing import List, Optional

from app.audit.service.audit_service import AuditService
from app.chat.entity.chat import ChatExchange, SessionSummary
from app.chat.service.service import IChatRepository
from app.llm.service.dispatch_service import FallbackDispatcher

SESSION_ID_PREFIX = "session_"


def new_session_id() -> str:
    return f"{SESSION_ID_PREFIX}{uuid.uuid4().hex}"


class ChatService:
    """
    User-facing chat operations.

    Sending a message always yields a reply (real or canned) from the
    dispatcher; the only failure that reaches the caller is a failure to
    persist the exchange.
    """

    def __init__(
        self,
        chat_repository: IChatRepository,
        dispatcher: FallbackDispatcher,
        audit_service: AuditService,
        logger: logging.Logger,
    ):
        self.chat_repository = chat_repository
        self.dispatcher = dispatcher
        self.audit_service = audit_service
        self.logger = logger

    async def send_message(
        self,
        user_id: str,
        message: str,
        session_id: Optional[str] = None,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ChatExchange:
        session_id = session_id or new_session_id()

        result = await self.dispatcher.dispatch(message, user_id, client_ip=client_ip, user_agent=user_agent)
        self.logger.info(
            f"Reply for user {user_id} | provider={result.provider or 'fallback'} "
            f"api_used={result.api_used} attempts={len(result.attempts)}"
        )

        # Exceptions propagate: the caller turns them into a 500
        exchange = await self.chat_repository.save_exchange(ChatExchange(
            user_id=user_id,
            message=message,
            response=result.text,
            session_id=session_id,
        ))

        await self.audit_service.log(
            "chat_message",
            user_id,
            ip_address=client_ip,
            user_agent=user_agent,
            details={
                "session_id": session_id,
                "message_length": len(message),
                "api_used": result.api_used,
                "provider": result.provider,
            },
        )
        return exchange

    async def history(self, user_id: str, session_id: Optional[str] = None) -> List[ChatExchange]:
        return await self.chat_repository.list_history(user_id, session_id)

    async def sessions(self, user_id: str) -> List[SessionSummary]:
        return await self.chat_repository.list_sessions(user_id)

    async def delete_history(
        self,
        user_id: str,
        exchange_id: Optional[int] = None,
        session_id: Optional[str] = None,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[int]:
        """
        Delete one exchange, one session, or everything the user owns,
        depending on which selector is given. Returns the number of rows
        removed, or None when a specific exchange is not the user's.
        """
        if exchange_id is not None:
            deleted = await self.chat_repository.delete_exchange(exchange_id, user_id=user_id)
            if not deleted:
                return None
            count = 1
        elif session_id:
            count = await self.chat_repository.delete_session(user_id, session_id)
        else:
            count = await self.chat_repository.delete_all_for_user(user_id)

        await self.audit_service.log(
            "delete_chat_history",
            user_id,
            ip_address=client_ip,
            user_agent=user_agent,
            details={"chat_history_id": exchange_id, "session_id": session_id},
        )
        return count
