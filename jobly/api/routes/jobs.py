from fastapi import APIRouter, Depends, Request, status

from jobly.api.deps import require_admin
from jobly.api.errors import http_error
from jobly.schemas.common import DeletedOut
from jobly.schemas.jobs import JobCreateRequest, JobListResponse, JobOut, JobPatchRequest, JobResponse
from jobly.services.jobs import get_job_repository
from jobly.services.repository import RepositoryError

router = APIRouter()


@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_job(payload: JobCreateRequest, repository=Depends(get_job_repository)) -> JobResponse:
    try:
        row = await repository.create(**payload.model_dump())
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return JobResponse(job=JobOut(**row))


@router.get("", response_model=JobListResponse)
async def list_jobs(request: Request, repository=Depends(get_job_repository)) -> JobListResponse:
    """Filters: titleLike, minSalary, maxSalary, companyHandle, hasEquity (flag, value ignored)."""
    try:
        rows = await repository.find_many(dict(request.query_params))
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return JobListResponse(jobs=[JobOut(**row) for row in rows])


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: int, repository=Depends(get_job_repository)) -> JobResponse:
    try:
        row = await repository.get(job_id)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return JobResponse(job=JobOut(**row))


@router.patch("/{job_id}", response_model=JobResponse, dependencies=[Depends(require_admin)])
async def patch_job(job_id: int, payload: JobPatchRequest, repository=Depends(get_job_repository)) -> JobResponse:
    try:
        row = await repository.update(job_id, payload.changes())
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return JobResponse(job=JobOut(**row))


@router.delete("/{job_id}", response_model=DeletedOut, dependencies=[Depends(require_admin)])
async def delete_job(job_id: int, repository=Depends(get_job_repository)) -> DeletedOut:
    try:
        await repository.remove(job_id)
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return DeletedOut(deleted=str(job_id))
