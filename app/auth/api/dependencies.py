from typing import Annotated, Optional
from fastapi import Depends, Request, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.auth.service.auth_service import AuthService


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    """Get auth service from app state."""
    if not hasattr(request.app.state, "auth_service"):
        raise RuntimeError("Auth service not initialized. Ensure main.py startup wires app.state.*")
    return request.app.state.auth_service


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Dependency to get current authenticated user from JWT token.

    Usage:
        @router.get("/protected")
        async def protected_route(current_user: dict = Depends(get_current_user)):
            user_id = current_user["user_id"]
            ...
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        auth_service = get_auth_service(request)
        return await auth_service.verify_token(credentials.credentials)
    except HTTPException as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=e.detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
    except Exception as e:
        # Catch any unexpected errors and return 401
        logger = getattr(request.app.state, "logger", None)
        if logger:
            logger.error(f"Error authenticating user: {e!s}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """Dependency for admin-only routes."""
    if not AuthService.is_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized. Admin access required.",
        )
    return current_user


# Type aliases for cleaner dependency injection
CurrentUserDep = Annotated[dict, Depends(get_current_user)]
AdminUserDep = Annotated[dict, Depends(require_admin)]
