import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from fastapi import Depends, Header, HTTPException, status
from jose import JWTError, jwt

from jobly.core.auth import Principal, Role, UnauthorizedError
from jobly.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def create_token(*, username: str, is_admin: bool, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    claims: dict[str, Any] = {"username": username, "isAdmin": bool(is_admin)}
    if settings.token_expire_minutes:
        claims["exp"] = datetime.now(timezone.utc) + timedelta(minutes=settings.token_expire_minutes)
    return jwt.encode(claims, settings.secret_key, algorithm=settings.token_algorithm)


def decode_principal(token: str, settings: Settings) -> Principal:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.token_algorithm])
    except JWTError as exc:
        raise UnauthorizedError("invalid bearer token") from exc

    username = claims.get("username")
    if not isinstance(username, str) or not username:
        raise UnauthorizedError("invalid bearer token")

    # Only an explicit boolean claim grants admin.
    role = Role.ADMIN if claims.get("isAdmin") is True else Role.AUTHENTICATED
    return Principal(role=role, subject=username)


async def get_principal(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    if not authorization:
        return Principal.anonymous()

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="authorization requires a bearer token",
        )

    try:
        return decode_principal(token, settings)
    except UnauthorizedError as exc:
        logger.warning("rejected bearer token: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


def hash_password(password: str, *, rounds: int) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        logger.warning("stored password hash is malformed")
        return False
