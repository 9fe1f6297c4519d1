import logging
from typing import Any, Dict, Optional

from app.audit.entity.audit import AuditEntry, AuditPage, AuditQuery
from app.audit.service.service import IAuditRepository


class AuditService:
    """Writes and reads audit entries; a failing write is logged and never surfaces to the caller."""

    def __init__(self, audit_repository: IAuditRepository, logger: logging.Logger):
        self.audit_repository = audit_repository
        self.logger = logger

    async def log(
        self,
        action: str,
        user_id: Optional[str],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[int]:
        entry = AuditEntry(
            user_id=user_id,
            action=action,
            ip_address=ip_address,
            user_agent=user_agent,
            details=details or {},
        )
        try:
            return await self.audit_repository.record(entry)
        except Exception as e:
            self.logger.error(f"Failed to write audit entry '{action}' for user {user_id}: {e}")
            return None

    async def search(self, query: AuditQuery) -> AuditPage:
        return await self.audit_repository.search(query)
