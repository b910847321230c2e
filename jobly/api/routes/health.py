from fastapi import APIRouter, Depends

from jobly.api.errors import http_error
from jobly.core.config import get_settings
from jobly.services.repository import RepositoryError, get_database

router = APIRouter()


@router.get("/")
async def root(settings=Depends(get_settings)) -> dict[str, str]:
    return {"status": "ok", "service": settings.app_name}


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(database=Depends(get_database)) -> dict[str, str]:
    try:
        await database.fetchval("select 1")
    except RepositoryError as exc:
        raise http_error(exc) from exc
    return {"status": "ready"}
