from decimal import Decimal
from typing import ClassVar

from pydantic import BaseModel, Field

from jobly.schemas.common import CamelModel, CreateRequest, PatchRequest
from jobly.services.sql import PG_INT_MAX


class CompanyCreateRequest(CreateRequest):
    handle: str = Field(min_length=1, max_length=25, pattern=r"^[a-z0-9-]+$")
    name: str = Field(min_length=1)
    description: str
    num_employees: int | None = Field(default=None, ge=0, le=PG_INT_MAX)
    logo_url: str | None = None


class CompanyPatchRequest(PatchRequest):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"name", "description"})

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    num_employees: int | None = Field(default=None, ge=0, le=PG_INT_MAX)
    logo_url: str | None = None


class CompanyJobOut(CamelModel):
    id: int
    title: str
    salary: int | None = None
    equity: Decimal | None = None


class CompanyOut(CamelModel):
    handle: str
    name: str
    description: str
    num_employees: int | None = None
    logo_url: str | None = None


class CompanyDetailOut(CompanyOut):
    jobs: list[CompanyJobOut] = Field(default_factory=list)


class CompanyResponse(BaseModel):
    company: CompanyOut


class CompanyDetailResponse(BaseModel):
    company: CompanyDetailOut


class CompanyListResponse(BaseModel):
    companies: list[CompanyOut]
