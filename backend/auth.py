"""
API key authentication for the live odds service.

Two roles share the ``X-API-Key`` header:

    operator  - any configured key; read-only endpoints (sports listing)
    admin     - keys of the users named in LIVE_ODDS_ADMIN_USERS (default
                user1); may trigger recalculations and inspect the scheduler

Keys are read once at import from API_KEY_USER1..5.  A process with no
keys refuses to start unless ENVIRONMENT=development.
"""

import logging
import os
from typing import Dict, FrozenSet

from dotenv import load_dotenv
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

load_dotenv()

logger = logging.getLogger(__name__)

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)

MAX_API_USERS = 5
DEV_FALLBACK_KEY = "dev-key-insecure"


def _admin_users() -> FrozenSet[str]:
    raw = os.getenv("LIVE_ODDS_ADMIN_USERS", "user1")
    return frozenset(name.strip() for name in raw.split(",") if name.strip())


def load_api_keys() -> Dict[str, str]:
    """Map of API key -> user name from API_KEY_USER1..5."""
    keys = {}
    for i in range(1, MAX_API_USERS + 1):
        key = os.getenv(f"API_KEY_USER{i}")
        if key:
            keys[key] = f"user{i}"

    if keys:
        return keys

    if os.getenv("ENVIRONMENT") == "development":
        logger.warning("No API keys configured; using the insecure development key")
        return {DEV_FALLBACK_KEY: "user1"}

    raise ValueError("No API keys configured! Set API_KEY_USER1 in environment")


VALID_API_KEYS = load_api_keys()
ADMIN_USERS = _admin_users()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "ApiKey"},
    )


async def verify_api_key(api_key: str = Security(API_KEY_HEADER)) -> str:
    """Resolve the request's API key to a user name, or 401."""
    if not api_key:
        raise _unauthorized("API key required. Include 'X-API-Key' header.")

    user = VALID_API_KEYS.get(api_key)
    if user is None:
        raise _unauthorized("Invalid API key")
    return user


async def verify_admin_api_key(user: str = Security(verify_api_key)) -> str:
    """Admin-only routes: recalculation triggers and scheduler status."""
    if user not in ADMIN_USERS:
        logger.warning("Non-admin user %s refused on an admin route", user)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
