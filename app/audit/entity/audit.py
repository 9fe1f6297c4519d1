from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AuditEntry(BaseModel):
    """A single user or admin action worth keeping a trail of."""
    id: Optional[int] = None
    user_id: Optional[str] = None
    action: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class AuditQuery(BaseModel):
    """Activity log filters; ``action`` matches as a substring, ``search`` covers action and ip."""
    user_id: Optional[str] = None
    action: Optional[str] = None
    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    page: int = 1
    per_page: int = 20


class AuditPage(BaseModel):
    items: List[AuditEntry] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 20

    @property
    def last_page(self) -> int:
        return max(1, -(-self.total // self.per_page))
