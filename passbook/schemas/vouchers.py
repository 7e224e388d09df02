import datetime
from typing import Annotated

from pydantic import Field

from passbook.enums import EntitlementKind, IssueStatus, VoucherPurpose
from passbook.schemas.core import BaseSchema, IdSchema
from passbook.schemas.entitlements import EntitlementRead


class VoucherCreate(BaseSchema):
    kind: Annotated[
        str,
        Field(
            min_length=1,
            max_length=64,
            pattern=r"^[^-\s]+$",
            examples=["pass", "pirates"],
            description="`pass` for generic passes, otherwise the era id",
        ),
    ]
    amount: Annotated[
        int | str | None,
        Field(examples=[10, "days7"], description="Defaults to the invitation amount"),
    ] = None
    purpose: VoucherPurpose | None = None
    issued_by: str | None = None
    addressed_to: Annotated[str | None, Field(max_length=255)] = None
    created_for: str | None = None
    signup_bonus: Annotated[int | None, Field(ge=0)] = None
    expires_at: datetime.datetime | None = None


class VoucherRead(IdSchema):
    code: Annotated[str, Field(examples=["pass-10-6f1c2a4e-8b0d-4c1e-9f3a-2d5b7e9c1a30"])]
    kind: EntitlementKind
    value: str
    uses: int | None = None
    duration_ms: int | None = None
    purpose: str | None = None
    issued_by: str | None = None
    addressed_to: str | None = None
    created_for: str | None = None
    signup_bonus: int
    expires_at: datetime.datetime | None = None
    redeemed_at: datetime.datetime | None = None
    redeemed_by: str | None = None
    created_at: datetime.datetime


class VoucherRedeemInput(BaseSchema):
    code: Annotated[str, Field(min_length=1, max_length=255)]
    contact: str | None = None


class VoucherInviteInput(BaseSchema):
    friend_contact: Annotated[str, Field(min_length=3, max_length=255, examples=["friend@example.com"])]
    unit_id: Annotated[str, Field(min_length=1, max_length=64, examples=["pirates"])]


class VoucherInviteRead(BaseSchema):
    code: str
    status: IssueStatus
    inviter_reward: EntitlementRead | None = None


class VoucherPreviewRead(BaseSchema):
    valid: bool
    title: str
    description: str
    kind: EntitlementKind | None = None
    value: str | None = None
    value_type: str | None = None
    display_text: str | None = None
