"""
JWT access tokens.

Tokens are issued by the authentication service and shared with this
API through SECRET_KEY / ALGORITHM. The `sub` claim carries the user id.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import uuid

from jose import JWTError, jwt

from trafficrules.core.config import settings

TOKEN_TYPE_ACCESS = "access"


def create_access_token(
    subject: Any,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """Sign an access token for `subject` (used by tooling and tests)."""
    issued = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": str(subject),
        "type": TOKEN_TYPE_ACCESS,
        "iat": issued,
        "exp": issued + lifetime,
        "jti": str(uuid.uuid4()),
    }
    claims.update(extra_claims or {})
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, token_type: str = TOKEN_TYPE_ACCESS) -> Optional[Dict[str, Any]]:
    """
    Decoded claims if the signature, expiry and token type check out,
    otherwise None.
    """
    try:
        # jose rejects expired tokens itself
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if claims.get("type") != token_type:
        return None
    return claims


def verify_access_token(token: str) -> Optional[str]:
    """User id (`sub`) of a valid access token."""
    claims = verify_token(token)
    return claims.get("sub") if claims else None
