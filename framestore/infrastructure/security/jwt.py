"""Session token creation and verification.

Sessions are issued by the login/OAuth flows elsewhere; this service only
verifies them. create_session_token exists for tests and operator tooling.
"""

from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import JWTError, jwt

from framestore.core.config import Settings, get_settings


def create_session_token(
    data: dict[str, Any],
    expires_delta: timedelta = timedelta(hours=8),
    settings: Settings | None = None,
) -> str:
    """Create a signed session token with the given claims (must include sub).

    Args:
        data: Claims to encode (e.g. sub, email).
        expires_delta: Token TTL.
        settings: Settings to sign with; defaults to get_settings().

    Returns:
        Encoded JWT string.
    """
    s = settings or get_settings()
    to_encode = data.copy()
    to_encode["exp"] = datetime.now(UTC) + expires_delta
    encoded = jwt.encode(
        to_encode,
        s.secret_key.get_secret_value(),
        algorithm=s.algorithm,
    )
    return cast(str, encoded)


def verify_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """Verify and decode a session token. Returns the payload.

    Raises:
        ValueError: If token is invalid, expired, or missing required claims.
    """
    s = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            s.secret_key.get_secret_value(),
            algorithms=[s.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    if not payload.get("sub"):
        raise ValueError("Token missing required claim: sub")
    return payload
