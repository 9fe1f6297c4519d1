from fastapi import APIRouter

from app.auth.api.dto import BaseResponse, CurrentUserDTO
from app.auth.api.dependencies import CurrentUserDep


auth_router = APIRouter(prefix="/auth", tags=["Authentication"])


@auth_router.get("/me", response_model=BaseResponse)
async def me(current_user: CurrentUserDep):
    """Identity carried by the presented bearer token"""
    return BaseResponse(
        status=True,
        message="Authenticated",
        data=CurrentUserDTO(**current_user).model_dump(),
    )
