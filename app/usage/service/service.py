from abc import ABC, abstractmethod
from typing import List, Optional

from app.usage.entity.usage import ApiUsageRecord


class IUsageRepository(ABC):
    """Append-only ledger of provider attempts: no update, no delete."""

    @abstractmethod
    async def record(self, record: ApiUsageRecord) -> int:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str, limit: int = 100) -> List[ApiUsageRecord]:
        pass

    @abstractmethod
    async def count(self, user_id: Optional[str] = None) -> int:
        pass
