from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


class UnauthorizedError(PermissionError):
    """Raised when an operation needs a credential and none was presented."""


class ForbiddenError(PermissionError):
    """Raised when the presented credential does not grant the operation."""


@dataclass(frozen=True, slots=True)
class Principal:
    role: Role
    subject: str | None = None

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(role=Role.ANONYMOUS)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def require_authenticated(self) -> None:
        if self.role is Role.ANONYMOUS or not self.subject:
            raise UnauthorizedError("authentication required")

    def require_admin(self) -> None:
        if not self.is_admin:
            raise ForbiddenError("admin role required")

    def require_admin_or_self(self, target: str) -> None:
        if self.is_admin:
            return
        if self.subject is None or self.subject != target:
            raise ForbiddenError(f"not permitted to act on user: {target}")
