from fastapi import APIRouter, Depends, Request

from jobly.api.deps import require_admin
from jobly.api.errors import http_error
from jobly.schemas.users import ApplicationListResponse, ApplicationOut
from jobly.services.applications import get_application_repository
from jobly.services.repository import RepositoryError

router = APIRouter()


@router.get("", response_model=ApplicationListResponse, dependencies=[Depends(require_admin)])
async def list_applications(request: Request, repository=Depends(get_application_repository)) -> ApplicationListResponse:
    """Filters: username, jobId, state, companyHandle (all exact match)."""
    try:
        rows = await repository.find_many(dict(request.query_params))
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return ApplicationListResponse(applications=[ApplicationOut(**row) for row in rows])
