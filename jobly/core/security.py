import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from fastapi import Depends, Header, HTTPException, status
from jose import JWTError, jwt

from jobly.core.auth import ANONYMOUS, AuthorizationError, OperationClass, Principal, authorize
from jobly.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str, work_factor: int) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], bcrypt.gensalt(rounds=work_factor))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_token(*, username: str, is_admin: bool, settings: Settings) -> str:
    claims: dict[str, Any] = {
        "sub": username,
        "is_admin": bool(is_admin),
        "iat": datetime.now(timezone.utc),
    }
    if settings.token_ttl_minutes:
        claims["exp"] = datetime.now(timezone.utc) + timedelta(minutes=settings.token_ttl_minutes)
    return jwt.encode(claims, settings.secret_key, algorithm=settings.token_algorithm)


def decode_token(token: str, settings: Settings) -> Principal:
    """Verify a signed token and return the principal it asserts.

    Raises JWTError when the signature, expiry or subject claim is invalid.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.token_algorithm])
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise JWTError("token has no subject")
    return Principal(subject=subject, is_admin=payload.get("is_admin") is True)


async def get_principal(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    if not authorization:
        return ANONYMOUS

    if not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="authorization requires bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization.split(" ", maxsplit=1)[1].strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="empty bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_token(token, settings)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def enforce(principal: Principal, operation: OperationClass, owner: str | None = None) -> None:
    """Translate a guard denial into an HTTP error before any work runs.

    Denials for the anonymous principal are 401; all others are 403.
    """
    try:
        authorize(principal, operation, owner).require()
    except AuthorizationError as exc:
        logger.info(
            "authorization denied subject=%s operation=%s reason=%s",
            principal.subject,
            operation.value,
            exc.decision.reason,
        )
        if principal.is_anonymous:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=str(exc),
                headers={"WWW-Authenticate": "Bearer"},
            ) from exc
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
