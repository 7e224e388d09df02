from dataclasses import dataclass

from passbook.enums import AccountKind


@dataclass(frozen=True)
class OwnerIdentity:
    """
    The account an operation acts for, resolved once at the edge of the
    system (JWT claims, CLI options).
    """

    id: str
    kind: AccountKind = AccountKind.USER

    @classmethod
    def user(cls, id: str) -> "OwnerIdentity":
        return cls(id=id, kind=AccountKind.USER)

    @classmethod
    def system(cls, id: str = "system") -> "OwnerIdentity":
        return cls(id=id, kind=AccountKind.SYSTEM)

    @property
    def holds_entitlements(self) -> bool:
        # guests and AI players always play on the free tier
        return self.kind in (AccountKind.USER, AccountKind.SYSTEM)

    @property
    def is_system(self) -> bool:
        return self.kind == AccountKind.SYSTEM

    def can_issue_for(self, issued_by: str | None) -> bool:
        if self.is_system:
            return True
        if self.kind != AccountKind.USER:
            return False
        return issued_by == self.id
