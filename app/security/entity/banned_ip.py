from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class BannedIp(BaseModel):
    id: Optional[int] = None
    ip_address: str
    reason: Optional[str] = None
    banned_by: Optional[str] = None
    banned_at: Optional[datetime] = None
