import logging

from fastapi import HTTPException, status

from jobly.core.auth import UnauthorizedError
from jobly.services.repository import ErrorKind, RepositoryError

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_FILTER_PARAMETER: status.HTTP_400_BAD_REQUEST,
    ErrorKind.MISSING_FILTER_VALUE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.REFERENCE_NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.EMPTY_RESULT: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INTERNAL: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(exc: RepositoryError) -> HTTPException:
    status_code = ERROR_STATUS[exc.kind]
    if status_code >= 500:
        logger.error("repository failure kind=%s: %s", exc.kind.value, exc)
    return HTTPException(status_code=status_code, detail=str(exc))


def guard_error(exc: PermissionError) -> HTTPException:
    if isinstance(exc, UnauthorizedError):
        logger.warning("authentication required: %s", exc)
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    logger.warning("authorization denied: %s", exc)
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
