from pydantic import BaseModel
from typing import Optional


class BaseResponse(BaseModel):
    status: bool
    message: str
    data: dict | None = None


class CurrentUserDTO(BaseModel):
    user_id: str
    role: str
    email: Optional[str] = None
