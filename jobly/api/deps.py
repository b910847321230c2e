"""Authorization gates as FastAPI dependencies.

They resolve before the request body is validated and before any repository
is touched, so a rejected caller never reaches the query layer.
"""

from fastapi import Depends

from jobly.api.errors import guard_error
from jobly.core.auth import Principal
from jobly.core.security import get_principal


async def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    try:
        principal.require_authenticated()
        principal.require_admin()
    except PermissionError as exc:
        raise guard_error(exc) from exc
    return principal


async def require_admin_or_self(username: str, principal: Principal = Depends(get_principal)) -> Principal:
    try:
        principal.require_authenticated()
        principal.require_admin_or_self(username)
    except PermissionError as exc:
        raise guard_error(exc) from exc
    return principal
