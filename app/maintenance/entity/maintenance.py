from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

DEFAULT_MAINTENANCE_MESSAGE = "We are currently performing scheduled maintenance. Please check back shortly."


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC datetime; naive values (as SQLite returns them) are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MaintenanceSettings(BaseModel):
    id: Optional[int] = None
    enabled: bool = False
    message: Optional[str] = DEFAULT_MAINTENANCE_MESSAGE
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None

    def is_scheduled_active(self, now: datetime) -> bool:
        """True while ``now`` falls inside a window with both ends set."""
        if self.scheduled_start is None or self.scheduled_end is None:
            return False
        return as_utc(self.scheduled_start) <= as_utc(now) <= as_utc(self.scheduled_end)

    def is_active(self, now: datetime) -> bool:
        return self.enabled or self.is_scheduled_active(now)

    @property
    def display_message(self) -> str:
        return self.message or DEFAULT_MAINTENANCE_MESSAGE


class MaintenanceAllowedIp(BaseModel):
    id: Optional[int] = None
    ip_address: str
    description: Optional[str] = None
    added_by: Optional[str] = None
    added_at: Optional[datetime] = None
