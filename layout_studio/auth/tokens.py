from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from jose import jwt
from jose.exceptions import JWTError

from layout_studio.config import settings


logger = logging.getLogger("auth.tokens")


def create_access_token(
    user_id: str,
    *,
    expires_in: timedelta = timedelta(hours=1),
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """Sign a bearer token for ``user_id`` with the configured shared secret."""
    now = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {"sub": user_id, "iat": now, "exp": now + expires_in}
    if settings.AUTH_JWT_AUDIENCE:
        claims["aud"] = settings.AUTH_JWT_AUDIENCE
    if extra_claims:
        claims.update(extra_claims)
    return jwt.encode(claims, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    try:
        claims = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
            options={"verify_aud": settings.AUTH_JWT_AUDIENCE is not None},
        )
    except JWTError as exc:
        logger.warning("Token verification failed", exc_info=exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
    logger.debug("Verified token", extra={"sub": claims.get("sub"), "aud": claims.get("aud")})
    return claims
