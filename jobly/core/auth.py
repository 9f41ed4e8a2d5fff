from dataclasses import dataclass
from enum import Enum

AUTHENTICATION_REQUIRED = "authentication required"
INSUFFICIENT_PERMISSION = "insufficient permission"
ADMIN_REQUIRED = "administrator privileges required"


class OperationClass(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    SELF_OR_ADMIN = "self_or_admin"
    ADMIN_ONLY = "admin_only"


@dataclass(frozen=True, slots=True)
class Principal:
    subject: str | None
    is_admin: bool = False

    @property
    def is_anonymous(self) -> bool:
        return self.subject is None


ANONYMOUS = Principal(subject=None)


@dataclass(frozen=True, slots=True)
class Decision:
    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)

    def require(self) -> None:
        if not self.allowed:
            raise AuthorizationError(self)


class AuthorizationError(PermissionError):
    def __init__(self, decision: Decision) -> None:
        super().__init__(decision.reason)
        self.decision = decision


def authorize(principal: Principal, operation: OperationClass, owner: str | None = None) -> Decision:
    """Decide whether ``principal`` may perform an operation of the given class.

    ``owner`` is the subject that owns the target resource. It is compared by
    identity only; whether the resource exists is checked later by the
    repository. The anonymous principal is denied under every class but
    PUBLIC, with that class's own reason.
    """
    if operation is OperationClass.PUBLIC:
        return Decision.allow()
    if operation is OperationClass.AUTHENTICATED:
        if principal.is_anonymous:
            return Decision.deny(AUTHENTICATION_REQUIRED)
        return Decision.allow()
    if operation is OperationClass.SELF_OR_ADMIN:
        if not principal.is_anonymous and (principal.is_admin or principal.subject == owner):
            return Decision.allow()
        return Decision.deny(INSUFFICIENT_PERMISSION)
    if operation is OperationClass.ADMIN_ONLY:
        if not principal.is_anonymous and principal.is_admin:
            return Decision.allow()
        return Decision.deny(ADMIN_REQUIRED)
    raise ValueError(f"unknown operation class: {operation!r}")
