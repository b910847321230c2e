from fastapi import APIRouter, Depends, status

from jobly.api.errors import http_error
from jobly.core.security import create_token
from jobly.schemas.users import RegisterRequest, TokenOut, TokenRequest
from jobly.services.repository import RepositoryError
from jobly.services.users import get_user_repository

router = APIRouter()


@router.post("/token", response_model=TokenOut)
async def issue_token(payload: TokenRequest, repository=Depends(get_user_repository)) -> TokenOut:
    try:
        user = await repository.authenticate(payload.username, payload.password)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return TokenOut(token=create_token(username=user["username"], is_admin=user["is_admin"]))


@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, repository=Depends(get_user_repository)) -> TokenOut:
    """Self-service sign-up; never grants admin."""
    try:
        user = await repository.register(**payload.model_dump(), is_admin=False)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return TokenOut(token=create_token(username=user["username"], is_admin=user["is_admin"]))
