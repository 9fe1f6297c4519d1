from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UpdateMaintenanceRequest(BaseModel):
    """Partial update: only the fields sent are changed."""
    enabled: Optional[bool] = None
    message: Optional[str] = Field(default=None, max_length=1000)
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None


class AllowedIpRequest(BaseModel):
    ip_address: str = Field(..., max_length=45)
    description: Optional[str] = Field(default=None, max_length=255)
