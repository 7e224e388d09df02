from typing import Annotated

from pydantic import Field

from passbook.enums import AccountKind
from passbook.schemas.core import BaseSchema


class ReferralCreate(BaseSchema):
    owner_id: Annotated[str, Field(min_length=1, max_length=255)]
    owner_kind: AccountKind = AccountKind.USER
    contact: Annotated[str, Field(min_length=3, max_length=255, examples=["friend@example.com"])]


class ReferralOutcomeRead(BaseSchema):
    rewarded: bool
    reason: str | None = None
    referrer_id: str | None = None
    amount: int = 0
    invitation_code: str | None = None
    referrer_reward_code: str | None = None
    new_account_reward_code: str | None = None
