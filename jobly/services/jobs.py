from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]

from jobly.core.config import get_settings
from jobly.services.repository import (
    Repository,
    RepositoryNotFoundError,
    RepositoryReferenceError,
    get_database,
)
from jobly.services.sql import (
    FilterField,
    FilterOperator,
    check_bounds,
    column_map,
    compile_filters,
    compile_partial_update,
    filter_spec,
    to_int,
)

logger = logging.getLogger(__name__)

JOB_COLUMNS = column_map(companyHandle="company_handle")
JOB_FILTERS = filter_spec(
    FilterField("titleLike", FilterOperator.CONTAINS, "title"),
    FilterField("minSalary", FilterOperator.GTE, "salary", to_int),
    FilterField("maxSalary", FilterOperator.LTE, "salary", to_int),
    FilterField("hasEquity", FilterOperator.PRESENCE, "equity > 0"),
    FilterField("companyHandle", FilterOperator.EQUALS, "company_handle"),
)


class JobRepository(Repository):
    entity_name = "job"

    async def create(
        self,
        *,
        title: str,
        company_handle: str,
        salary: int | None = None,
        equity: Decimal | None = None,
    ) -> dict[str, Any]:
        company = await self.database.fetchval("select handle from companies where handle = $1", company_handle)
        if not company:
            raise RepositoryReferenceError(f"Company '{company_handle}' does not exist")

        row = await self.database.fetchrow(
            """
            insert into jobs (title, salary, equity, company_handle)
            values ($1, $2, $3, $4)
            returning id, title, salary, equity, company_handle
            """,
            title,
            salary,
            equity,
            company_handle,
        )
        logger.info("job created id=%s company_handle=%s", row["id"], company_handle)
        return self._job_row_to_dict(row)

    async def find_many(self, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        filters = filters or {}
        check_bounds(
            filters,
            JOB_FILTERS,
            "minSalary",
            "maxSalary",
            "Minimum salary cannot be greater than maximum",
        )
        clause = compile_filters(filters, JOB_FILTERS)
        where_sql = f"where {clause.sql}" if clause else ""
        rows = await self.database.fetch(
            f"""
            select id, title, salary, equity, company_handle
            from jobs
            {where_sql}
            order by company_handle, id
            """,
            *(clause.values if clause else ()),
        )
        self._require_rows(rows, filtered=clause is not None)
        return [self._job_row_to_dict(row) for row in rows]

    async def get(self, job_id: int) -> dict[str, Any]:
        row = await self.database.fetchrow(
            """
            select id, title, salary, equity, company_handle
            from jobs
            where id = $1
            """,
            job_id,
        )
        if not row:
            raise RepositoryNotFoundError(f"No job has the id: {job_id}")
        return self._job_row_to_dict(row)

    async def update(self, job_id: int, data: Mapping[str, Any]) -> dict[str, Any]:
        clause = compile_partial_update(data, JOB_COLUMNS)
        row = await self.database.fetchrow(
            f"""
            update jobs
            set {clause.sql}
            where id = {clause.next_placeholder}
            returning id, title, salary, equity, company_handle
            """,
            *clause.values,
            job_id,
        )
        if not row:
            raise RepositoryNotFoundError(f"No job has the id: {job_id}")

        logger.info("job updated id=%s fields=%s", job_id, ",".join(data))
        return self._job_row_to_dict(row)

    async def remove(self, job_id: int) -> None:
        row = await self.database.fetchrow("delete from jobs where id = $1 returning id", job_id)
        if not row:
            raise RepositoryNotFoundError(f"No job has the id: {job_id}")
        logger.info("job removed id=%s", job_id)

    @staticmethod
    def _job_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "title": row["title"],
            "salary": row["salary"],
            "equity": row["equity"],
            "company_handle": row["company_handle"],
        }


@lru_cache
def get_job_repository() -> JobRepository:
    return JobRepository(get_database(), empty_result_is_error=get_settings().empty_result_is_error)
