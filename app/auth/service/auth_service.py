import logging

from fastapi import HTTPException

from pkg.auth_token_client.client import TokenClient

ADMIN_ROLE = "admin"


class AuthService:
    """Identifies callers from bearer access tokens. Tokens are issued elsewhere."""

    def __init__(self, token_client: TokenClient, logger: logging.Logger):
        self.token_client = token_client
        self.logger = logger

    async def verify_token(self, token: str) -> dict:
        try:
            payload = self.token_client.decode_token(token)
        except ValueError as e:
            self.logger.info(f"Rejected bearer token: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user_id = payload.get("user_id")
        if not user_id:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        return {
            "user_id": str(user_id),
            "role": payload.get("role") or "user",
            "email": payload.get("email"),
        }

    @staticmethod
    def is_admin(user: dict) -> bool:
        return user.get("role") == ADMIN_ROLE
