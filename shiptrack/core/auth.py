"""Bearer token authentication.

Identity comes from an external provider; this module only answers the one
question the rest of the service needs: "which user is calling, if any?".
Tokens are mapped to user ids through the ``APP_AUTH_TOKENS`` setting
(comma-separated ``token:user_id`` pairs).
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header

from shiptrack.core.config import settings
from shiptrack.core.errors import AuthenticationAppError
from shiptrack.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def parse_auth_tokens(tokens_string: str | None) -> dict[str, str]:
    """Parse comma-separated ``token:user_id`` pairs into a mapping.

    Args:
        tokens_string: Raw setting value, or None.

    Returns:
        Mapping of token to user id. Malformed or empty entries are skipped.

    Examples:
        >>> parse_auth_tokens("abc:user-1, def:user-2")
        {'abc': 'user-1', 'def': 'user-2'}
        >>> parse_auth_tokens(None)
        {}
    """
    if not tokens_string:
        return {}

    tokens: dict[str, str] = {}
    for entry in tokens_string.split(","):
        token, sep, user_id = entry.strip().partition(":")
        token, user_id = token.strip(), user_id.strip()
        if sep and token and user_id:
            tokens[token] = user_id
    return tokens


def resolve_user_id(token: str | None) -> str | None:
    """Return the user id bound to ``token``, or None when unknown."""
    if not token:
        return None
    return parse_auth_tokens(settings.app.auth_tokens).get(token)


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


async def get_current_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """FastAPI dependency returning the authenticated user's id.

    Usage:
        @router.get("/things")
        async def list_things(user_id: Annotated[str, Depends(get_current_user_id)]):
            ...

    Raises:
        AuthenticationAppError: 401 when the bearer token is missing or unknown.
    """
    token = _bearer_token(authorization)
    if token is None:
        logger.warning("auth.missing_token", extra={"authorization_present": bool(authorization)})
        raise AuthenticationAppError(
            code="unauthorized",
            message="Authentication required. Please sign in.",
        )

    user_id = resolve_user_id(token)
    if user_id is None:
        logger.warning("auth.invalid_token", extra={"token_hash": hash_identifier(token)})
        raise AuthenticationAppError(
            code="unauthorized",
            message="Authentication required. Please sign in.",
        )

    logger.debug("auth.success", extra={"user_hash": hash_identifier(user_id)})
    return user_id
