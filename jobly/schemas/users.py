from typing import ClassVar, Literal

from pydantic import BaseModel, Field

from jobly.schemas.common import CamelModel, CreateRequest, PatchRequest

ApplicationState = Literal["interested", "applied", "accepted", "rejected"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+$"


class TokenRequest(CreateRequest):
    username: str = Field(min_length=1, max_length=25)
    password: str = Field(min_length=1)


class RegisterRequest(CreateRequest):
    username: str = Field(min_length=1, max_length=25)
    password: str = Field(min_length=5, max_length=20)
    first_name: str = Field(min_length=1, max_length=30)
    last_name: str = Field(min_length=1, max_length=30)
    email: str = Field(min_length=6, max_length=60, pattern=EMAIL_PATTERN)


class UserCreateRequest(RegisterRequest):
    is_admin: bool = False


class UserPatchRequest(PatchRequest):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"first_name", "last_name", "password", "email"})

    first_name: str | None = Field(default=None, min_length=1, max_length=30)
    last_name: str | None = Field(default=None, min_length=1, max_length=30)
    password: str | None = Field(default=None, min_length=5, max_length=20)
    email: str | None = Field(default=None, min_length=6, max_length=60, pattern=EMAIL_PATTERN)


class UserOut(CamelModel):
    username: str
    first_name: str
    last_name: str
    email: str
    is_admin: bool = False


class UserDetailOut(UserOut):
    jobs: list[int] = Field(default_factory=list)


class TokenOut(BaseModel):
    token: str


class UserResponse(BaseModel):
    user: UserOut


class UserDetailResponse(BaseModel):
    user: UserDetailOut


class UserTokenResponse(BaseModel):
    user: UserOut
    token: str


class UserListResponse(BaseModel):
    users: list[UserOut]


class ApplicationPatchRequest(PatchRequest):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"state"})

    state: ApplicationState | None = None


class ApplicationOut(CamelModel):
    username: str
    job_id: int
    state: ApplicationState
    title: str | None = None
    company_handle: str | None = None


class ApplicationResponse(BaseModel):
    application: ApplicationOut


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationOut]


class AppliedOut(BaseModel):
    applied: int
