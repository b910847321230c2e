from __future__ import annotations

import logging
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]

from jobly.core.config import get_settings
from jobly.core.security import hash_password, verify_password
from jobly.services.repository import (
    PostgresDatabase,
    Repository,
    RepositoryAuthenticationError,
    RepositoryConflictError,
    RepositoryNotFoundError,
    get_database,
)
from jobly.services.sql import (
    FilterField,
    FilterOperator,
    column_map,
    compile_filters,
    compile_partial_update,
    filter_spec,
)

logger = logging.getLogger(__name__)

USER_COLUMNS = column_map(firstName="first_name", lastName="last_name", isAdmin="is_admin")
USER_FILTERS = filter_spec(
    FilterField("usernameLike", FilterOperator.CONTAINS, "username"),
    FilterField("emailLike", FilterOperator.CONTAINS, "email"),
    FilterField("isAdmin", FilterOperator.PRESENCE, "is_admin = true"),
)

_USER_RETURNING = "username, first_name, last_name, email, is_admin"


class UserRepository(Repository):
    entity_name = "user"

    def __init__(
        self,
        database: PostgresDatabase,
        *,
        empty_result_is_error: bool = True,
        bcrypt_rounds: int = 12,
    ) -> None:
        super().__init__(database, empty_result_is_error=empty_result_is_error)
        self.bcrypt_rounds = bcrypt_rounds

    async def authenticate(self, username: str, password: str) -> dict[str, Any]:
        row = await self.database.fetchrow(
            f"select {_USER_RETURNING}, password from users where username = $1",
            username,
        )
        if not row or not verify_password(password, row["password"]):
            raise RepositoryAuthenticationError("Invalid username/password")
        return self._user_row_to_dict(row)

    async def register(
        self,
        *,
        username: str,
        password: str,
        first_name: str,
        last_name: str,
        email: str,
        is_admin: bool = False,
    ) -> dict[str, Any]:
        hashed_password = hash_password(password, rounds=self.bcrypt_rounds)
        try:
            row = await self.database.fetchrow(
                f"""
                insert into users (username, password, first_name, last_name, email, is_admin)
                values ($1, $2, $3, $4, $5, $6)
                returning {_USER_RETURNING}
                """,
                username,
                hashed_password,
                first_name,
                last_name,
                email,
                is_admin,
            )
        except RepositoryConflictError as exc:
            raise RepositoryConflictError(f"Duplicate username: {username}") from exc

        logger.info("user registered username=%s is_admin=%s", username, is_admin)
        return self._user_row_to_dict(row)

    async def find_many(self, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        clause = compile_filters(filters or {}, USER_FILTERS)
        where_sql = f"where {clause.sql}" if clause else ""
        rows = await self.database.fetch(
            f"""
            select {_USER_RETURNING}
            from users
            {where_sql}
            order by username
            """,
            *(clause.values if clause else ()),
        )
        self._require_rows(rows, filtered=clause is not None)
        return [self._user_row_to_dict(row) for row in rows]

    async def get(self, username: str) -> dict[str, Any]:
        row = await self.database.fetchrow(
            f"select {_USER_RETURNING} from users where username = $1",
            username,
        )
        if not row:
            raise RepositoryNotFoundError(f"No user: {username}")

        application_rows = await self.database.fetch(
            "select job_id from applications where username = $1 order by job_id",
            username,
        )
        user = self._user_row_to_dict(row)
        user["jobs"] = [application["job_id"] for application in application_rows]
        return user

    async def update(self, username: str, data: Mapping[str, Any]) -> dict[str, Any]:
        fields = dict(data)
        if fields.get("password") is not None:
            fields["password"] = hash_password(fields["password"], rounds=self.bcrypt_rounds)

        clause = compile_partial_update(fields, USER_COLUMNS)
        row = await self.database.fetchrow(
            f"""
            update users
            set {clause.sql}
            where username = {clause.next_placeholder}
            returning {_USER_RETURNING}
            """,
            *clause.values,
            username,
        )
        if not row:
            raise RepositoryNotFoundError(f"No user: {username}")

        logger.info("user updated username=%s fields=%s", username, ",".join(fields))
        return self._user_row_to_dict(row)

    async def remove(self, username: str) -> None:
        row = await self.database.fetchrow(
            "delete from users where username = $1 returning username",
            username,
        )
        if not row:
            raise RepositoryNotFoundError(f"No user: {username}")
        logger.info("user removed username=%s", username)

    @staticmethod
    def _user_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "username": row["username"],
            "first_name": row["first_name"],
            "last_name": row["last_name"],
            "email": row["email"],
            "is_admin": bool(row["is_admin"]),
        }


@lru_cache
def get_user_repository() -> UserRepository:
    settings = get_settings()
    return UserRepository(
        get_database(),
        empty_result_is_error=settings.empty_result_is_error,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
