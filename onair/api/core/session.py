"""Anonymous viewer session tokens.

A session token is an opaque string that ties heartbeats and submissions
from one browser together. It is not an authentication credential: the
server neither signs nor stores it beyond the presence and event rows.
"""

import secrets

from fastapi import Header, Request, Response

from onair.api.core.config import get_settings
from onair.shared.errors import ValidationError

SESSION_HEADER = "X-Session-Token"

SESSION_TOKEN_MAX_LENGTH = 128


def new_session_token() -> str:
    """Generate a fresh URL-safe token."""
    return secrets.token_urlsafe(24)


def check_session_token(token: str) -> str:
    """Accept any client token that fits in a header and a TEXT column."""
    if (
        len(token) > SESSION_TOKEN_MAX_LENGTH
        or token != token.strip()
        or not token.isprintable()
    ):
        raise ValidationError("Malformed session token", field="sessionToken")
    return token


def resolve_session_token(*candidates: str | None) -> str | None:
    """Return the first supplied token among *candidates*.

    Empty values count as not supplied. A supplied but malformed token
    raises ``ValidationError`` rather than being skipped.
    """
    for candidate in candidates:
        if candidate:
            return check_session_token(candidate)
    return None


async def get_session_token(
    request: Request,
    response: Response,
    x_session_token: str | None = Header(default=None, alias=SESSION_HEADER),
) -> str:
    """Session token for the current request.

    Header first, then cookie. Only when neither is present is a new one
    minted and set as a cookie so the browser keeps it for the next
    heartbeat.
    """
    settings = get_settings()
    token = resolve_session_token(
        x_session_token, request.cookies.get(settings.session_cookie_name)
    )
    if token is None:
        token = new_session_token()
        response.set_cookie(
            key=settings.session_cookie_name,
            value=token,
            max_age=settings.session_cookie_max_age,
            httponly=True,
            secure=settings.is_production,
            samesite="lax",
        )
    return token
