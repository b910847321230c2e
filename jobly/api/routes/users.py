from fastapi import APIRouter, Depends, Request, status

from jobly.api.deps import require_admin, require_admin_or_self
from jobly.api.errors import http_error
from jobly.core.security import create_token
from jobly.schemas.common import DeletedOut
from jobly.schemas.users import (
    ApplicationListResponse,
    ApplicationOut,
    ApplicationPatchRequest,
    ApplicationResponse,
    AppliedOut,
    UserCreateRequest,
    UserDetailOut,
    UserDetailResponse,
    UserListResponse,
    UserOut,
    UserPatchRequest,
    UserResponse,
    UserTokenResponse,
)
from jobly.services.applications import get_application_repository
from jobly.services.repository import RepositoryError
from jobly.services.users import get_user_repository

router = APIRouter()


@router.post(
    "",
    response_model=UserTokenResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_user(payload: UserCreateRequest, repository=Depends(get_user_repository)) -> UserTokenResponse:
    """Admin-only user creation; the new user may itself be an admin."""
    try:
        row = await repository.register(**payload.model_dump())
    except RepositoryError as exc:
        raise http_error(exc) from exc
    token = create_token(username=row["username"], is_admin=row["is_admin"])
    return UserTokenResponse(user=UserOut(**row), token=token)


@router.get("", response_model=UserListResponse, dependencies=[Depends(require_admin)])
async def list_users(request: Request, repository=Depends(get_user_repository)) -> UserListResponse:
    try:
        rows = await repository.find_many(dict(request.query_params))
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return UserListResponse(users=[UserOut(**row) for row in rows])


@router.get("/{username}", response_model=UserDetailResponse, dependencies=[Depends(require_admin_or_self)])
async def get_user(username: str, repository=Depends(get_user_repository)) -> UserDetailResponse:
    try:
        row = await repository.get(username)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return UserDetailResponse(user=UserDetailOut(**row))


@router.patch("/{username}", response_model=UserResponse, dependencies=[Depends(require_admin_or_self)])
async def patch_user(
    username: str,
    payload: UserPatchRequest,
    repository=Depends(get_user_repository),
) -> UserResponse:
    try:
        row = await repository.update(username, payload.changes())
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return UserResponse(user=UserOut(**row))


@router.delete("/{username}", response_model=DeletedOut, dependencies=[Depends(require_admin_or_self)])
async def delete_user(username: str, repository=Depends(get_user_repository)) -> DeletedOut:
    try:
        await repository.remove(username)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return DeletedOut(deleted=username)


@router.post(
    "/{username}/jobs/{job_id}",
    response_model=AppliedOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_or_self)],
)
async def apply_to_job(username: str, job_id: int, repository=Depends(get_application_repository)) -> AppliedOut:
    try:
        row = await repository.create(username=username, job_id=job_id)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return AppliedOut(applied=row["job_id"])


@router.get(
    "/{username}/jobs",
    response_model=ApplicationListResponse,
    dependencies=[Depends(require_admin_or_self)],
)
async def list_user_applications(
    username: str,
    request: Request,
    repository=Depends(get_application_repository),
) -> ApplicationListResponse:
    filters = dict(request.query_params)
    filters["username"] = username
    try:
        rows = await repository.find_many(filters)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return ApplicationListResponse(applications=[ApplicationOut(**row) for row in rows])


@router.patch(
    "/{username}/jobs/{job_id}",
    response_model=ApplicationResponse,
    dependencies=[Depends(require_admin_or_self)],
)
async def patch_application(
    username: str,
    job_id: int,
    payload: ApplicationPatchRequest,
    repository=Depends(get_application_repository),
) -> ApplicationResponse:
    try:
        row = await repository.update(username, job_id, payload.changes())
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return ApplicationResponse(application=ApplicationOut(**row))


@router.delete(
    "/{username}/jobs/{job_id}",
    response_model=DeletedOut,
    dependencies=[Depends(require_admin_or_self)],
)
async def withdraw_application(
    username: str,
    job_id: int,
    repository=Depends(get_application_repository),
) -> DeletedOut:
    try:
        await repository.remove(username, job_id)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return DeletedOut(deleted=str(job_id))
