from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from decimal import Decimal
from typing import Any, TypeVar

import bcrypt
import pytest
from asyncpg import exceptions as pg_exc

from jobly.api.errors import ERROR_STATUS
from jobly.services.applications import ApplicationRepository
from jobly.services.companies import CompanyRepository
from jobly.services.jobs import JobRepository
from jobly.services.repository import (
    ErrorKind,
    InvalidFilterParameterError,
    MissingFilterValueError,
    PostgresDatabase,
    RepositoryAuthenticationError,
    RepositoryConflictError,
    RepositoryEmptyResultError,
    RepositoryNotFoundError,
    RepositoryReferenceError,
    RepositoryValidationError,
)
from jobly.services.users import UserRepository

T = TypeVar("T")


class FakeDatabase:
    """Records statements and replays queued results in call order."""

    def __init__(self, *results: Any) -> None:
        self.calls: list[tuple[str, str, tuple[Any, ...]]] = []
        self._results = list(results)

    async def fetch(self, query: str, *args: Any) -> Any:
        return self._next("fetch", query, args)

    async def fetchrow(self, query: str, *args: Any) -> Any:
        return self._next("fetchrow", query, args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        return self._next("fetchval", query, args)

    def _next(self, method: str, query: str, args: tuple[Any, ...]) -> Any:
        self.calls.append((method, " ".join(query.split()), args))
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def _job_row(job_id: int = 1, *, title: str = "j1", salary: int | None = 100, equity: Decimal | None = None) -> dict[str, Any]:
    return {"id": job_id, "title": title, "salary": salary, "equity": equity, "company_handle": "c1"}


def _user_row(username: str = "u1", *, is_admin: bool = False, **extra: Any) -> dict[str, Any]:
    return {
        "username": username,
        "first_name": "U1F",
        "last_name": "U1L",
        "email": "user1@user.com",
        "is_admin": is_admin,
        **extra,
    }


def test_every_error_kind_has_an_http_status() -> None:
    assert set(ERROR_STATUS) == set(ErrorKind)
    assert ERROR_STATUS[ErrorKind.EMPTY_RESULT] == 404
    assert ERROR_STATUS[ErrorKind.INVALID_FILTER_PARAMETER] == 400


def test_empty_result_is_a_not_found_kind() -> None:
    assert issubclass(RepositoryEmptyResultError, RepositoryNotFoundError)
    assert RepositoryEmptyResultError.kind is ErrorKind.EMPTY_RESULT


def test_company_find_many_without_filters_orders_by_name() -> None:
    rows = [
        {"handle": "c1", "name": "C1", "description": "Desc1", "num_employees": 1, "logo_url": None},
        {"handle": "c2", "name": "C2", "description": "Desc2", "num_employees": 2, "logo_url": None},
    ]
    database = FakeDatabase(rows)
    repository = CompanyRepository(database)

    companies = _run(repository.find_many())

    method, query, args = database.calls[0]
    assert method == "fetch"
    assert "where" not in query
    assert query.endswith("order by name")
    assert args == ()
    assert [company["handle"] for company in companies] == ["c1", "c2"]


def test_company_find_many_binds_filter_values() -> None:
    database = FakeDatabase([{"handle": "c2", "name": "C2", "description": "D", "num_employees": 2, "logo_url": None}])
    repository = CompanyRepository(database)

    _run(repository.find_many({"nameLike": "c", "minEmployees": "2"}))

    _, query, args = database.calls[0]
    assert "where name ilike $1 and num_employees >= $2" in query
    assert args == ("%c%", 2)


def test_company_find_many_rejects_inverted_employee_range_before_querying() -> None:
    database = FakeDatabase()
    repository = CompanyRepository(database)

    with pytest.raises(RepositoryValidationError, match="Minimum employees cannot be greater than maximum"):
        _run(repository.find_many({"minEmployees": "10", "maxEmployees": "1"}))
    assert database.calls == []


def test_company_find_many_rejects_unknown_filter_before_querying() -> None:
    database = FakeDatabase()
    repository = CompanyRepository(database)

    with pytest.raises(InvalidFilterParameterError):
        _run(repository.find_many({"color": "red"}))
    assert database.calls == []


def test_company_create_reports_duplicate_handle() -> None:
    database = FakeDatabase(RepositoryConflictError("Key (handle)=(c1) already exists."))
    repository = CompanyRepository(database)

    with pytest.raises(RepositoryConflictError, match="Duplicate company: c1"):
        _run(repository.create(handle="c1", name="C1", description="Desc1"))


def test_company_get_attaches_jobs() -> None:
    database = FakeDatabase(
        {"handle": "c1", "name": "C1", "description": "Desc1", "num_employees": 1, "logo_url": None},
        [{"id": 7, "title": "j1", "salary": 100, "equity": Decimal("0.1")}],
    )
    repository = CompanyRepository(database)

    company = _run(repository.get("c1"))

    assert company["jobs"] == [{"id": 7, "title": "j1", "salary": 100, "equity": Decimal("0.1")}]
    assert database.calls[1][2] == ("c1",)


def test_company_update_places_handle_after_set_values() -> None:
    database = FakeDatabase(
        {"handle": "c1", "name": "New", "description": "Desc1", "num_employees": None, "logo_url": None}
    )
    repository = CompanyRepository(database)

    updated = _run(repository.update("c1", {"name": "New", "numEmployees": None}))

    _, query, args = database.calls[0]
    assert 'set "name"=$1, "num_employees"=$2 where handle = $3' in query
    assert args == ("New", None, "c1")
    assert updated["num_employees"] is None


def test_company_update_missing_handle_is_not_found() -> None:
    repository = CompanyRepository(FakeDatabase(None))

    with pytest.raises(RepositoryNotFoundError, match="No company: nope"):
        _run(repository.update("nope", {"name": "x"}))


def test_company_update_without_data_never_reaches_database() -> None:
    database = FakeDatabase()
    with pytest.raises(RepositoryValidationError):
        _run(CompanyRepository(database).update("c1", {}))
    assert database.calls == []


def test_job_find_many_presence_and_range_filters() -> None:
    database = FakeDatabase([_job_row(1, equity=Decimal("0.1"))])
    repository = JobRepository(database)

    jobs = _run(repository.find_many({"minSalary": "150", "hasEquity": "true", "titleLike": "j"}))

    _, query, args = database.calls[0]
    assert "where salary >= $1 and equity > 0 and title ilike $2" in query
    assert query.endswith("order by company_handle, id")
    assert args == (150, "%j%")
    assert jobs[0]["equity"] == Decimal("0.1")


def test_job_find_many_with_no_match_is_empty_result() -> None:
    repository = JobRepository(FakeDatabase([]))

    with pytest.raises(RepositoryEmptyResultError, match="No job records match the parameters"):
        _run(repository.find_many({"titleLike": "99"}))


def test_job_find_many_with_empty_table_is_empty_result() -> None:
    repository = JobRepository(FakeDatabase([]))

    with pytest.raises(RepositoryEmptyResultError, match="No job records exist in database"):
        _run(repository.find_many())


def test_job_find_many_can_return_empty_list_when_configured() -> None:
    repository = JobRepository(FakeDatabase([]), empty_result_is_error=False)

    assert _run(repository.find_many({"titleLike": "99"})) == []


def test_job_find_many_missing_value_is_rejected() -> None:
    with pytest.raises(MissingFilterValueError, match="Missing value for parameter 'minSalary'"):
        _run(JobRepository(FakeDatabase()).find_many({"minSalary": ""}))


def test_job_create_requires_existing_company() -> None:
    database = FakeDatabase(None)
    repository = JobRepository(database)

    with pytest.raises(RepositoryReferenceError, match="Company 'nope' does not exist"):
        _run(repository.create(title="new", company_handle="nope", salary=10))
    assert len(database.calls) == 1


def test_job_create_inserts_after_company_check() -> None:
    database = FakeDatabase("c1", _job_row(4, title="new", salary=10, equity=Decimal("0.2")))
    repository = JobRepository(database)

    job = _run(repository.create(title="new", company_handle="c1", salary=10, equity=Decimal("0.2")))

    assert database.calls[1][0] == "fetchrow"
    assert database.calls[1][2] == ("new", 10, Decimal("0.2"), "c1")
    assert job["id"] == 4


def test_job_update_missing_id_is_not_found() -> None:
    repository = JobRepository(FakeDatabase(None))

    with pytest.raises(RepositoryNotFoundError, match="No job has the id: 99"):
        _run(repository.update(99, {"title": "x"}))


def test_job_update_writes_null_values() -> None:
    database = FakeDatabase(_job_row(1, title="X", salary=None))
    _run(JobRepository(database).update(1, {"title": "X", "salary": None}))

    _, query, args = database.calls[0]
    assert 'set "title"=$1, "salary"=$2 where id = $3' in query
    assert args == ("X", None, 1)


def test_job_remove_missing_id_is_not_found() -> None:
    with pytest.raises(RepositoryNotFoundError):
        _run(JobRepository(FakeDatabase(None)).remove(0))


def test_user_register_hashes_password() -> None:
    database = FakeDatabase(_user_row("new", is_admin=True))
    repository = UserRepository(database, bcrypt_rounds=4)

    user = _run(
        repository.register(
            username="new",
            password="password",
            first_name="Test",
            last_name="Tester",
            email="test@test.com",
            is_admin=True,
        )
    )

    stored_hash = database.calls[0][2][1]
    assert stored_hash != "password"
    assert bcrypt.checkpw(b"password", stored_hash.encode("utf-8"))
    assert user["is_admin"] is True


def test_user_register_reports_duplicate_username() -> None:
    database = FakeDatabase(RepositoryConflictError("duplicate"))
    repository = UserRepository(database, bcrypt_rounds=4)

    with pytest.raises(RepositoryConflictError, match="Duplicate username: u1"):
        _run(
            repository.register(
                username="u1",
                password="password",
                first_name="F",
                last_name="L",
                email="u1@user.com",
            )
        )


def test_user_authenticate_checks_hash() -> None:
    hashed = bcrypt.hashpw(b"password1", bcrypt.gensalt(rounds=4)).decode("utf-8")
    repository = UserRepository(FakeDatabase(_user_row(password=hashed), _user_row(password=hashed)), bcrypt_rounds=4)

    user = _run(repository.authenticate("u1", "password1"))
    assert user == _user_row()

    with pytest.raises(RepositoryAuthenticationError, match="Invalid username/password"):
        _run(repository.authenticate("u1", "wrong"))


def test_user_authenticate_unknown_user() -> None:
    with pytest.raises(RepositoryAuthenticationError):
        _run(UserRepository(FakeDatabase(None)).authenticate("nope", "password"))


def test_user_find_many_is_admin_flag() -> None:
    database = FakeDatabase([_user_row("admin", is_admin=True)])

    users = _run(UserRepository(database).find_many({"isAdmin": ""}))

    _, query, args = database.calls[0]
    assert "where is_admin = true" in query
    assert args == ()
    assert users[0]["username"] == "admin"


def test_user_get_lists_applied_job_ids() -> None:
    database = FakeDatabase(_user_row(), [{"job_id": 1}, {"job_id": 3}])

    user = _run(UserRepository(database).get("u1"))

    assert user["jobs"] == [1, 3]


def test_user_update_rehashes_password_and_maps_columns() -> None:
    database = FakeDatabase(_user_row(first_name="Nf"))
    repository = UserRepository(database, bcrypt_rounds=4)

    _run(repository.update("u1", {"firstName": "Nf", "password": "new-password"}))

    _, query, args = database.calls[0]
    assert 'set "first_name"=$1, "password"=$2 where username = $3' in query
    assert args[0] == "Nf"
    assert bcrypt.checkpw(b"new-password", args[1].encode("utf-8"))
    assert args[2] == "u1"


def test_application_create_requires_user_and_job() -> None:
    with pytest.raises(RepositoryReferenceError, match="No user: nope"):
        _run(ApplicationRepository(FakeDatabase(None)).create(username="nope", job_id=1))

    with pytest.raises(RepositoryReferenceError, match="No job has the id: 0"):
        _run(ApplicationRepository(FakeDatabase("u1", None)).create(username="u1", job_id=0))


def test_application_create_reports_duplicate() -> None:
    database = FakeDatabase("u1", 1, RepositoryConflictError("duplicate"))

    with pytest.raises(RepositoryConflictError, match="User u1 already applied to job 1"):
        _run(ApplicationRepository(database).create(username="u1", job_id=1))


def test_application_find_many_joins_job_context() -> None:
    database = FakeDatabase(
        [{"username": "u1", "job_id": 1, "state": "applied", "title": "j1", "company_handle": "c1"}]
    )

    applications = _run(ApplicationRepository(database).find_many({"username": "u1", "companyHandle": "c1"}))

    _, query, args = database.calls[0]
    assert "join jobs j on j.id = a.job_id" in query
    assert "where a.username = $1 and j.company_handle = $2" in query
    assert args == ("u1", "c1")
    assert applications == [
        {"username": "u1", "job_id": 1, "state": "applied", "title": "j1", "company_handle": "c1"}
    ]


def test_application_update_keys_follow_set_values() -> None:
    database = FakeDatabase({"username": "u1", "job_id": 2, "state": "accepted"})

    application = _run(ApplicationRepository(database).update("u1", 2, {"state": "accepted"}))

    _, query, args = database.calls[0]
    assert 'set "state"=$1 where username = $2 and job_id = $3' in query
    assert args == ("accepted", "u1", 2)
    assert application == {"username": "u1", "job_id": 2, "state": "accepted"}


class FailingPool:
    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    async def fetch(self, query: str, *args: Any) -> Any:
        raise self._exc

    async def fetchrow(self, query: str, *args: Any) -> Any:
        raise self._exc


def _database_with_pool(pool: FailingPool) -> PostgresDatabase:
    database = PostgresDatabase("postgresql://jobly@localhost/jobly", 1, 1, 1.0)
    database._pool = pool
    return database


def test_argument_encoding_failure_is_invalid_input() -> None:
    error = pg_exc.DataError(
        "invalid input for query argument $1: 99999999999 (value out of int32 range)"
    )
    database = _database_with_pool(FailingPool(error))

    with pytest.raises(RepositoryValidationError) as exc_info:
        _run(JobRepository(database).get(99999999999))
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT
    assert ERROR_STATUS[exc_info.value.kind] == 400


def test_unclassified_database_error_propagates() -> None:
    database = _database_with_pool(FailingPool(pg_exc.DeadlockDetectedError("deadlock detected")))

    with pytest.raises(pg_exc.DeadlockDetectedError):
        _run(CompanyRepository(database).find_many())
