from fastapi import APIRouter, Depends, Request, status

from jobly.api.deps import require_admin
from jobly.api.errors import http_error
from jobly.schemas.common import DeletedOut
from jobly.schemas.companies import (
    CompanyCreateRequest,
    CompanyDetailOut,
    CompanyDetailResponse,
    CompanyListResponse,
    CompanyOut,
    CompanyPatchRequest,
    CompanyResponse,
)
from jobly.services.companies import get_company_repository
from jobly.services.repository import RepositoryError

router = APIRouter()


@router.post(
    "",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_company(
    payload: CompanyCreateRequest,
    repository=Depends(get_company_repository),
) -> CompanyResponse:
    try:
        row = await repository.create(**payload.model_dump())
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return CompanyResponse(company=CompanyOut(**row))


@router.get("", response_model=CompanyListResponse)
async def list_companies(request: Request, repository=Depends(get_company_repository)) -> CompanyListResponse:
    """Filters: nameLike (case-insensitive substring), minEmployees, maxEmployees."""
    try:
        rows = await repository.find_many(dict(request.query_params))
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return CompanyListResponse(companies=[CompanyOut(**row) for row in rows])


@router.get("/{handle}", response_model=CompanyDetailResponse)
async def get_company(handle: str, repository=Depends(get_company_repository)) -> CompanyDetailResponse:
    try:
        row = await repository.get(handle)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return CompanyDetailResponse(company=CompanyDetailOut(**row))


@router.patch("/{handle}", response_model=CompanyResponse, dependencies=[Depends(require_admin)])
async def patch_company(
    handle: str,
    payload: CompanyPatchRequest,
    repository=Depends(get_company_repository),
) -> CompanyResponse:
    try:
        row = await repository.update(handle, payload.changes())
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return CompanyResponse(company=CompanyOut(**row))


@router.delete("/{handle}", response_model=DeletedOut, dependencies=[Depends(require_admin)])
async def delete_company(handle: str, repository=Depends(get_company_repository)) -> DeletedOut:
    try:
        await repository.remove(handle)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return DeletedOut(deleted=handle)
