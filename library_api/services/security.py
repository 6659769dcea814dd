"""
Passwords and Login Tokens

- Passwords are stored as salted bcrypt hashes, one per user.
- A successful login returns a signed HS256 token carrying the user's
  username and id, a "type" of "access" and an expiry.
- decode_token never raises: anything that is not a valid, unexpired
  access token signed with SECRET_KEY comes back as None.

Usage:
    from library_api.services.security import create_access_token, decode_token

    token = create_access_token({"username": "alice", "id": 1})
    decode_token(token)["id"]  # 1
"""

import logging
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from library_api.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

ALGORITHM = "HS256"
TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# =============================================================================
# Passwords
# =============================================================================


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a login attempt against a stored hash (constant time)."""
    return pwd_context.verify(plain_password, hashed_password)


# =============================================================================
# Tokens
# =============================================================================


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Sign a login token.

    Args:
        data: Identity claims, normally {"username": ..., "id": ...}
        expires_delta: Lifetime override; ACCESS_TOKEN_EXPIRE_MINUTES otherwise
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        **data,
        "type": TOKEN_TYPE,
        "exp": datetime.now(UTC) + lifetime,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict | None:
    """Return the claims of a valid access token, or None."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        return None

    if claims.get("type") != TOKEN_TYPE:
        logger.warning(f"Rejected token of type {claims.get('type')!r}")
        return None

    return claims
