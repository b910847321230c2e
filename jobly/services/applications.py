from __future__ import annotations

import logging
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]

from jobly.core.config import get_settings
from jobly.services.repository import (
    Repository,
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryReferenceError,
    get_database,
)
from jobly.services.sql import (
    FilterField,
    FilterOperator,
    column_map,
    compile_filters,
    compile_partial_update,
    filter_spec,
    to_int,
)

logger = logging.getLogger(__name__)

APPLICATION_STATES = ("interested", "applied", "accepted", "rejected")
APPLICATION_COLUMNS = column_map(jobId="job_id")
APPLICATION_FILTERS = filter_spec(
    FilterField("username", FilterOperator.EQUALS, "a.username"),
    FilterField("jobId", FilterOperator.EQUALS, "a.job_id", to_int),
    FilterField("state", FilterOperator.EQUALS, "a.state"),
    FilterField("companyHandle", FilterOperator.EQUALS, "j.company_handle"),
)

_APPLICATION_SELECT = """
    select a.username, a.job_id, a.state, j.title, j.company_handle
    from applications a
    join jobs j on j.id = a.job_id
"""


class ApplicationRepository(Repository):
    entity_name = "application"

    async def create(self, *, username: str, job_id: int, state: str = "applied") -> dict[str, Any]:
        user = await self.database.fetchval("select username from users where username = $1", username)
        if not user:
            raise RepositoryReferenceError(f"No user: {username}")
        job = await self.database.fetchval("select id from jobs where id = $1", job_id)
        if not job:
            raise RepositoryReferenceError(f"No job has the id: {job_id}")

        try:
            row = await self.database.fetchrow(
                """
                insert into applications (username, job_id, state)
                values ($1, $2, $3)
                returning username, job_id, state
                """,
                username,
                job_id,
                state,
            )
        except RepositoryConflictError as exc:
            raise RepositoryConflictError(f"User {username} already applied to job {job_id}") from exc

        logger.info("application created username=%s job_id=%s state=%s", username, job_id, state)
        return self._application_row_to_dict(row)

    async def find_many(self, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        clause = compile_filters(filters or {}, APPLICATION_FILTERS)
        where_sql = f"where {clause.sql}" if clause else ""
        rows = await self.database.fetch(
            f"""
            {_APPLICATION_SELECT}
            {where_sql}
            order by a.username, a.job_id
            """,
            *(clause.values if clause else ()),
        )
        self._require_rows(rows, filtered=clause is not None)
        return [self._application_row_to_dict(row) for row in rows]

    async def get(self, username: str, job_id: int) -> dict[str, Any]:
        row = await self.database.fetchrow(
            f"""
            {_APPLICATION_SELECT}
            where a.username = $1 and a.job_id = $2
            """,
            username,
            job_id,
        )
        if not row:
            raise RepositoryNotFoundError(f"No application for user {username} and job {job_id}")
        return self._application_row_to_dict(row)

    async def update(self, username: str, job_id: int, data: Mapping[str, Any]) -> dict[str, Any]:
        clause = compile_partial_update(data, APPLICATION_COLUMNS)
        username_token = clause.next_placeholder
        job_id_token = f"${len(clause.values) + 2}"
        row = await self.database.fetchrow(
            f"""
            update applications
            set {clause.sql}
            where username = {username_token} and job_id = {job_id_token}
            returning username, job_id, state
            """,
            *clause.values,
            username,
            job_id,
        )
        if not row:
            raise RepositoryNotFoundError(f"No application for user {username} and job {job_id}")

        logger.info("application updated username=%s job_id=%s fields=%s", username, job_id, ",".join(data))
        return self._application_row_to_dict(row)

    async def remove(self, username: str, job_id: int) -> None:
        row = await self.database.fetchrow(
            "delete from applications where username = $1 and job_id = $2 returning job_id",
            username,
            job_id,
        )
        if not row:
            raise RepositoryNotFoundError(f"No application for user {username} and job {job_id}")
        logger.info("application withdrawn username=%s job_id=%s", username, job_id)

    @staticmethod
    def _application_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        application = {
            "username": row["username"],
            "job_id": row["job_id"],
            "state": row["state"],
        }
        # The joined listing carries job context; insert/update rows do not.
        if "title" in row:
            application["title"] = row["title"]
            application["company_handle"] = row["company_handle"]
        return application


@lru_cache
def get_application_repository() -> ApplicationRepository:
    return ApplicationRepository(get_database(), empty_result_is_error=get_settings().empty_result_is_error)
