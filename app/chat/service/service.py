from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from app.chat.entity.chat import ChatExchange, ChatPage, ChatQuery, SessionSummary


class IChatRepository(ABC):
    # User-facing

    @abstractmethod
    async def save_exchange(self, exchange: ChatExchange) -> ChatExchange:
        pass

    @abstractmethod
    async def get_exchange(self, exchange_id: int, user_id: Optional[str] = None) -> Optional[ChatExchange]:
        pass

    @abstractmethod
    async def list_history(self, user_id: str, session_id: Optional[str] = None) -> List[ChatExchange]:
        pass

    @abstractmethod
    async def list_sessions(self, user_id: str) -> List[SessionSummary]:
        pass

    @abstractmethod
    async def delete_exchange(self, exchange_id: int, user_id: Optional[str] = None) -> bool:
        pass

    @abstractmethod
    async def delete_session(self, user_id: str, session_id: str) -> int:
        pass

    @abstractmethod
    async def delete_all_for_user(self, user_id: str) -> int:
        pass

    # Moderation

    @abstractmethod
    async def search(self, query: ChatQuery) -> ChatPage:
        pass

    @abstractmethod
    async def existing_ids(self, exchange_ids: List[int]) -> List[int]:
        pass

    @abstractmethod
    async def delete_many(self, exchange_ids: List[int]) -> int:
        pass

    @abstractmethod
    async def set_flag(self, exchange_id: int, flagged_by: str, reason: Optional[str],
                       at: datetime) -> Optional[ChatExchange]:
        pass

    @abstractmethod
    async def clear_flag(self, exchange_id: int) -> Optional[ChatExchange]:
        pass

    @abstractmethod
    async def mark_reviewed(self, exchange_id: int, reviewed_by: str, at: datetime, reject: bool = False,
                            notes: Optional[str] = None) -> Optional[ChatExchange]:
        pass
