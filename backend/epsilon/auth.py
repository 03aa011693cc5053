"""Session authentication against Better-Auth's session table.

Better-Auth owns sign-in and session issuance. We only resolve the session
token a client presents, either as the ``better-auth.session_token`` cookie
(value ``<token>.<signature>``) or as ``Authorization: Bearer <token>``.
"""
import logging
from datetime import datetime
from typing import Mapping, Optional
from urllib.parse import unquote

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import get_db
from .models import AuthSession, User

logger = logging.getLogger(__name__)

SECURE_COOKIE_PREFIX = "__Secure-"


def extract_session_token(
    cookies: Mapping[str, str],
    authorization: Optional[str] = None,
) -> Optional[str]:
    """Pull the raw session token out of request cookies or headers."""
    raw = None
    if authorization and authorization.lower().startswith("bearer "):
        raw = authorization[7:].strip()
    if not raw:
        raw = cookies.get(settings.session_cookie_name) or cookies.get(
            SECURE_COOKIE_PREFIX + settings.session_cookie_name
        )
    if not raw:
        return None
    # Drop the signature half of a signed cookie value
    return unquote(raw).split(".", 1)[0] or None


async def resolve_session_user(db: AsyncSession, token: str) -> Optional[User]:
    """Return the user owning an unexpired session token, or None."""
    result = await db.execute(select(AuthSession).where(AuthSession.token == token))
    auth_session = result.scalar_one_or_none()

    if not auth_session:
        return None

    if auth_session.expires_at < datetime.utcnow():
        logger.debug(f"Expired session for user {auth_session.user_id}")
        return None

    return await db.get(User, auth_session.user_id)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency resolving the session user; 401 when there is none."""
    token = extract_session_token(request.cookies, request.headers.get("authorization"))
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user = await resolve_session_user(db, token)
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")

    return user
