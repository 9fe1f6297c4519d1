# app/llm/api/dto.py
from pydantic import BaseModel
from typing import List, Optional


class ProviderInfo(BaseModel):
    name: str
    model: str
    endpoint: str
    timeout_seconds: float
    max_retries: int
    priced: bool
    status: str


class ProviderListResponse(BaseModel):
    providers: List[ProviderInfo]
    retry_delay_seconds: float


class UsageRecordDTO(BaseModel):
    id: int
    api_provider: str
    model: Optional[str] = None
    status_code: Optional[int] = None
    success: bool
    input_tokens: int
    output_tokens: int
    total_tokens: int
    response_time_ms: Optional[int] = None
    cost: Optional[float] = None
    error_message: Optional[str] = None
    created_at: Optional[str] = None


class UsageListResponse(BaseModel):
    user_id: str
    total: int
    records: List[UsageRecordDTO]
