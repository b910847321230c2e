from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from jobly.core.config import get_settings

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    INVALID_FILTER_PARAMETER = "invalid_filter_parameter"
    MISSING_FILTER_VALUE = "missing_filter_value"
    REFERENCE_NOT_FOUND = "reference_not_found"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    EMPTY_RESULT = "empty_result"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"


class RepositoryError(Exception):
    """Base repository error."""

    kind: ErrorKind = ErrorKind.INTERNAL


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""

    kind = ErrorKind.INTERNAL


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""

    kind = ErrorKind.NOT_FOUND


class RepositoryEmptyResultError(RepositoryNotFoundError):
    """Raised when a listing matched no rows."""

    kind = ErrorKind.EMPTY_RESULT


class RepositoryConflictError(RepositoryError):
    """Raised when a row with the same identity already exists."""

    kind = ErrorKind.CONFLICT


class RepositoryReferenceError(RepositoryError):
    """Raised when a referenced row (company, user, job) does not exist."""

    kind = ErrorKind.REFERENCE_NOT_FOUND


class RepositoryAuthenticationError(RepositoryError):
    """Raised when credentials do not match a stored user."""

    kind = ErrorKind.UNAUTHORIZED


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before persistence."""

    kind = ErrorKind.INVALID_INPUT


class InvalidFilterParameterError(RepositoryValidationError):
    kind = ErrorKind.INVALID_FILTER_PARAMETER

    def __init__(self, parameter: str) -> None:
        super().__init__(f"Cannot filter results by parameter '{parameter}'")
        self.parameter = parameter


class MissingFilterValueError(RepositoryValidationError):
    kind = ErrorKind.MISSING_FILTER_VALUE

    def __init__(self, parameter: str) -> None:
        super().__init__(f"Missing value for parameter '{parameter}'")
        self.parameter = parameter


class PostgresDatabase:
    """Thin asyncpg pool wrapper; every statement takes positional `$N` arguments."""

    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        command_timeout_seconds: float,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.command_timeout_seconds = command_timeout_seconds
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        return await self._run("fetch", query, args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        return await self._run("fetchrow", query, args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        return await self._run("fetchval", query, args)

    async def _run(self, method: str, query: str, args: tuple[Any, ...]) -> Any:
        pool = await self._get_pool()
        try:
            return await getattr(pool, method)(query, *args)
        except (pg_exc.PostgresError, pg_exc.DataError) as exc:
            translated = self._translate(exc)
            if translated is None:
                logger.warning("database statement failed sqlstate=%s", exc.sqlstate)
                raise
            raise translated from exc

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("JOBLY_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=self.command_timeout_seconds,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @staticmethod
    def _translate(exc: Exception) -> RepositoryError | None:
        if isinstance(exc, pg_exc.UniqueViolationError):
            return RepositoryConflictError(exc.detail or "duplicate row")
        if isinstance(exc, pg_exc.ForeignKeyViolationError):
            return RepositoryReferenceError(exc.detail or "referenced row does not exist")
        if isinstance(
            exc,
            (
                pg_exc.NotNullViolationError,
                pg_exc.CheckViolationError,
                # Class 22 server errors and client-side argument encoding failures.
                pg_exc.DataError,
            ),
        ):
            return RepositoryValidationError(str(exc))
        return None


class Repository:
    """Shared plumbing for the entity repositories."""

    entity_name = "row"

    def __init__(self, database: PostgresDatabase, *, empty_result_is_error: bool = True) -> None:
        self.database = database
        self.empty_result_is_error = empty_result_is_error

    def _require_rows(self, rows: Sequence[asyncpg.Record], *, filtered: bool) -> None:
        if rows or not self.empty_result_is_error:
            return
        if filtered:
            raise RepositoryEmptyResultError(f"No {self.entity_name} records match the parameters")
        raise RepositoryEmptyResultError(f"No {self.entity_name} records exist in database")


@lru_cache
def get_database() -> PostgresDatabase:
    settings = get_settings()
    return PostgresDatabase(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        command_timeout_seconds=settings.database_command_timeout_seconds,
    )
