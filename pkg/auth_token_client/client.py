from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt


@dataclass
class TokenPayload:
    user_id: str
    role: str = "user"
    email: str | None = None


class TokenClient:
    def __init__(self, secret_key: str, leeway_seconds: int = 10, access_ttl: timedelta = timedelta(hours=24)):
        self.secret_key = secret_key
        # Allow small clock skew when decoding tokens
        self.leeway_seconds = leeway_seconds
        self.access_ttl = access_ttl

    def create_access_token(self, payload: TokenPayload) -> str:
        """Create an HS256 access token carrying the caller identity"""
        now = datetime.now(timezone.utc)
        to_encode = {
            "user_id": str(payload.user_id),
            "role": payload.role,
            "email": payload.email,
            "iat": int(now.timestamp()),
            "exp": now + self.access_ttl,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm="HS256")

    def decode_token(self, token: str) -> dict:
        """Decode and verify a token"""
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=["HS256"],
                leeway=self.leeway_seconds,
            )
        except jwt.ExpiredSignatureError:
            raise ValueError("Token has expired")
        except jwt.InvalidTokenError:
            raise ValueError("Invalid token")
