from abc import ABC, abstractmethod
from typing import List, Optional

from app.audit.entity.audit import AuditEntry, AuditPage, AuditQuery


class IAuditRepository(ABC):
    @abstractmethod
    async def record(self, entry: AuditEntry) -> int:
        pass

    @abstractmethod
    async def list_entries(self, action: Optional[str] = None, user_id: Optional[str] = None,
                           limit: int = 100) -> List[AuditEntry]:
        pass

    @abstractmethod
    async def search(self, query: AuditQuery) -> AuditPage:
        pass
