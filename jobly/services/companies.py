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

COMPANY_COLUMNS = column_map(numEmployees="num_employees", logoUrl="logo_url")
COMPANY_FILTERS = filter_spec(
    FilterField("nameLike", FilterOperator.CONTAINS, "name"),
    FilterField("minEmployees", FilterOperator.GTE, "num_employees", to_int),
    FilterField("maxEmployees", FilterOperator.LTE, "num_employees", to_int),
)


class CompanyRepository(Repository):
    entity_name = "company"

    async def create(
        self,
        *,
        handle: str,
        name: str,
        description: str,
        num_employees: int | None = None,
        logo_url: str | None = None,
    ) -> dict[str, Any]:
        try:
            row = await self.database.fetchrow(
                """
                insert into companies (handle, name, description, num_employees, logo_url)
                values ($1, $2, $3, $4, $5)
                returning handle, name, description, num_employees, logo_url
                """,
                handle,
                name,
                description,
                num_employees,
                logo_url,
            )
        except RepositoryConflictError as exc:
            raise RepositoryConflictError(f"Duplicate company: {handle}") from exc

        logger.info("company created handle=%s", handle)
        return self._company_row_to_dict(row)

    async def find_many(self, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        filters = filters or {}
        check_bounds(
            filters,
            COMPANY_FILTERS,
            "minEmployees",
            "maxEmployees",
            "Minimum employees cannot be greater than maximum",
        )
        clause = compile_filters(filters, COMPANY_FILTERS)
        where_sql = f"where {clause.sql}" if clause else ""
        rows = await self.database.fetch(
            f"""
            select handle, name, description, num_employees, logo_url
            from companies
            {where_sql}
            order by name
            """,
            *(clause.values if clause else ()),
        )
        self._require_rows(rows, filtered=clause is not None)
        return [self._company_row_to_dict(row) for row in rows]

    async def get(self, handle: str) -> dict[str, Any]:
        row = await self.database.fetchrow(
            """
            select handle, name, description, num_employees, logo_url
            from companies
            where handle = $1
            """,
            handle,
        )
        if not row:
            raise RepositoryNotFoundError(f"No company: {handle}")

        job_rows = await self.database.fetch(
            """
            select id, title, salary, equity
            from jobs
            where company_handle = $1
            order by id
            """,
            handle,
        )
        company = self._company_row_to_dict(row)
        company["jobs"] = [
            {"id": job["id"], "title": job["title"], "salary": job["salary"], "equity": job["equity"]}
            for job in job_rows
        ]
        return company

    async def update(self, handle: str, data: Mapping[str, Any]) -> dict[str, Any]:
        clause = compile_partial_update(data, COMPANY_COLUMNS)
        row = await self.database.fetchrow(
            f"""
            update companies
            set {clause.sql}
            where handle = {clause.next_placeholder}
            returning handle, name, description, num_employees, logo_url
            """,
            *clause.values,
            handle,
        )
        if not row:
            raise RepositoryNotFoundError(f"No company: {handle}")

        logger.info("company updated handle=%s fields=%s", handle, ",".join(data))
        return self._company_row_to_dict(row)

    async def remove(self, handle: str) -> None:
        row = await self.database.fetchrow(
            "delete from companies where handle = $1 returning handle",
            handle,
        )
        if not row:
            raise RepositoryNotFoundError(f"No company: {handle}")
        logger.info("company removed handle=%s", handle)

    @staticmethod
    def _company_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "handle": row["handle"],
            "name": row["name"],
            "description": row["description"],
            "num_employees": row["num_employees"],
            "logo_url": row["logo_url"],
        }


@lru_cache
def get_company_repository() -> CompanyRepository:
    return CompanyRepository(get_database(), empty_result_is_error=get_settings().empty_result_is_error)
