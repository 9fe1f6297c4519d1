"""Mint a bearer access token for local testing.

Usage:

    python scripts/issue_token.py <user_id> [--role admin] [--email you@example.com] [--hours 24]

Signs with JWT_SUPER_SECRET from the environment / .env, the same key the API verifies with.
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

load_dotenv()

from app.core.config import settings  # noqa: E402
from pkg.auth_token_client.client import TokenClient, TokenPayload  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("user_id")
    parser.add_argument("--role", default="user", choices=["user", "admin"])
    parser.add_argument("--email", default=None)
    parser.add_argument("--hours", type=int, default=24)
    args = parser.parse_args()

    client = TokenClient(settings.JWT_SUPER_SECRET, access_ttl=timedelta(hours=args.hours))
    print(client.create_access_token(TokenPayload(user_id=args.user_id, role=args.role, email=args.email)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
