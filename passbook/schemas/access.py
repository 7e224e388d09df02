import datetime

from passbook.enums import AccessMethod
from passbook.schemas.core import BaseSchema


class AccessBadgeRead(BaseSchema):
    badge: str
    button: str
    style: str


class AccessDecisionRead(BaseSchema):
    unit_id: str
    authorized: bool
    method: AccessMethod
    entitlement_id: str | None = None
    uses_remaining: int | None = None
    expires_at: datetime.datetime | None = None
    voucher_code: str | None = None
    passes_required: int | None = None
    pass_balance: int | None = None
    plays_available: int | None = None
    reason: str | None = None
    badge: AccessBadgeRead | None = None


class ConsumptionRead(BaseSchema):
    method: AccessMethod
    remaining: int
    entitlement_id: str | None = None
