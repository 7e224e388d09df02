from contextvars import ContextVar
from dataclasses import dataclass

from passbook.identity import OwnerIdentity


@dataclass
class AuthenticationContext:
    owner: OwnerIdentity
    contact: str | None = None


auth_context = ContextVar[AuthenticationContext]("auth_context")
