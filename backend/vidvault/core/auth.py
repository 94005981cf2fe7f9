"""
VidVault Authentication Module

Bearer token handling for the upload and read endpoints. Tokens are issued
elsewhere; this module only extracts them from the ``Authorization`` header
and validates them locally with the shared secret (HMAC JWT).

Route handlers do not resolve the user directly. They hand the raw
credentials to the orchestrator, which authorizes in a fixed order (record
id, then credential, then record, then user, then ownership).

Usage:
    ```python
    from fastapi import Depends
    from vidvault.core.auth import resolve_user_id, security

    @router.get("/videos")
    async def list_videos(credentials=Depends(security), settings=Depends(get_settings)):
        user_id = resolve_user_id(credentials, settings)
    ```
"""

import logging

from typing import Any

from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from vidvault.config import Settings
from vidvault.core.errors import Unauthenticated


logger = logging.getLogger(__name__)


# =============================================================================
# Security Scheme
# =============================================================================

# auto_error=False so a missing header surfaces as our own 401 payload
security = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token authentication.",
    auto_error=False,
)


def validate_local_jwt(token: str, settings: Settings) -> dict[str, Any]:
    """
    Validate a JWT signed with the shared secret.

    Verifies the signature and the ``exp`` claim.

    Args:
        token: The JWT token string to validate.
        settings: Settings instance containing secret_key and jwt_algorithm.

    Returns:
        dict: The decoded token payload containing claims.

    Raises:
        JWTError: If the token is invalid, expired, or signature verification fails.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        logger.warning("JWT has expired")
        raise
    except JWTError as e:
        logger.warning("JWT validation failed: %s", str(e))
        raise

    logger.debug("JWT validated for subject: %s", payload.get("sub", "unknown"))
    return payload


def resolve_user_id(
    credentials: HTTPAuthorizationCredentials | None,
    settings: Settings,
) -> str:
    """
    Turn bearer credentials into the acting user's id.

    Args:
        credentials: Parsed Authorization header, None when absent.
        settings: Settings used for token validation.

    Returns:
        str: The ``sub`` claim of the token.

    Raises:
        Unauthenticated: If the header is missing, the token is invalid or
            it carries no subject.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Couldn't find JWT")

    try:
        payload = validate_local_jwt(credentials.credentials, settings)
    except JWTError as exc:
        raise Unauthenticated("Couldn't validate JWT") from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise Unauthenticated("Token has no subject")

    return subject
