"""
Issue a session cookie value for a local user, bypassing Google.

    uv run python -m app.scripts.issue_dev_session --email dev@example.com
    curl -b "th_session=<token>" http://localhost:8080/api/users/me

The user is provisioned the same way a first login would provision it.
"""

import argparse
import asyncio
from datetime import timedelta

from app.core.auth import create_session_token
from app.core.config import get_settings
from app.core.database import get_session_context
from app.services.users import provision_oidc_user
from taskhub_shared.schemas.users import OIDCClaims

settings = get_settings()


async def issue(email: str, name: str | None, minutes: int) -> str:
    async with get_session_context() as session:
        user = await provision_oidc_user(
            session, OIDCClaims(email=email, name=name), provider="dev"
        )
    token, _ = create_session_token(user, provider="dev", expires_delta=timedelta(minutes=minutes))
    return token


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Issue a dev session token.")
    parser.add_argument("--email", required=True, help="Email address of the user")
    parser.add_argument("--name", default=None, help="Display name for a new user")
    parser.add_argument(
        "--minutes",
        type=int,
        default=settings.session_expire_minutes,
        help="Token lifetime in minutes",
    )

    args = parser.parse_args()

    token = asyncio.run(issue(args.email, args.name, args.minutes))
    print(f"{settings.session_cookie_name}={token}")
