# app/usage/entity/usage.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ApiUsageRecord(BaseModel):
    """One outbound provider attempt. Append-only: written once, never updated."""
    id: Optional[int] = None
    api_provider: str
    endpoint: Optional[str] = None
    user_id: Optional[str] = None
    model: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    response_time_ms: Optional[int] = None
    status_code: Optional[int] = None
    success: bool = True
    error_message: Optional[str] = None
    request_data: Optional[str] = None
    response_data: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    cost: Optional[float] = None
    created_at: Optional[datetime] = None
