from decimal import Decimal
from typing import ClassVar

from pydantic import BaseModel, Field

from jobly.schemas.common import CamelModel, CreateRequest, PatchRequest
from jobly.services.sql import PG_INT_MAX


class JobCreateRequest(CreateRequest):
    title: str = Field(min_length=1)
    salary: int | None = Field(default=None, ge=0, le=PG_INT_MAX)
    equity: Decimal | None = Field(default=None, ge=0, le=1)
    company_handle: str = Field(min_length=1, max_length=25)


class JobPatchRequest(PatchRequest):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"title"})

    title: str | None = Field(default=None, min_length=1)
    salary: int | None = Field(default=None, ge=0, le=PG_INT_MAX)
    equity: Decimal | None = Field(default=None, ge=0, le=1)


class JobOut(CamelModel):
    id: int
    title: str
    salary: int | None = None
    equity: Decimal | None = None
    company_handle: str


class JobResponse(BaseModel):
    job: JobOut


class JobListResponse(BaseModel):
    jobs: list[JobOut]
