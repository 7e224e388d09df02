import datetime
from typing import Annotated

from pydantic import Field

from passbook.enums import EntitlementKind
from passbook.schemas.core import BaseSchema, IdSchema


class EntitlementRead(IdSchema):
    owner_id: str
    kind: EntitlementKind
    value: Annotated[str, Field(examples=["pirates"])]
    uses_remaining: Annotated[int, Field(examples=[5], description="-1 means unlimited")]
    expires_at: datetime.datetime | None = None
    purchase_ref: str | None = None
    voucher_ref: str | None = None
    created_at: datetime.datetime


class PassBalanceRead(BaseSchema):
    owner_id: str
    balance: int
