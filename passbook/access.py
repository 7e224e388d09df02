"""
Decides whether an owner may play a content unit, and by which grant.

Priority, highest first: purchase, voucher, exclusive block, passes, free.
The resolver never writes. Its answers may be shown or cached by callers,
but `ConsumptionEngine` always re-derives them before mutating anything.
"""

import datetime
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from passbook.db.handlers import EntitlementHandler
from passbook.db.models import UNLIMITED_USES, Entitlement
from passbook.enums import AccessMethod
from passbook.identity import OwnerIdentity
from passbook.policies import ContentPolicy, ContentPolicyCache
from passbook.utils import as_utc

logger = logging.getLogger(__name__)

REQUIRES_VOUCHER = "Requires voucher"
NOT_ENOUGH_PASSES = "Not enough passes"


@dataclass(frozen=True)
class AccessDecision:
    authorized: bool
    method: AccessMethod
    unit_id: str
    entitlement_id: str | None = None
    uses_remaining: int | None = None
    expires_at: datetime.datetime | None = None
    voucher_code: str | None = None
    passes_required: int | None = None
    pass_balance: int | None = None
    plays_available: int | None = None
    reason: str | None = None


@dataclass(frozen=True)
class AccessBadge:
    badge: str
    button: str
    style: str


def pick_era_grant(rows: Sequence[Entitlement]) -> tuple[AccessMethod, Entitlement] | None:
    """
    Chooses the era row that authorizes play: a purchase beats a voucher.
    `rows` must already be filtered to usable rows.
    """
    purchase = next((row for row in rows if row.purchase_ref is not None), None)
    if purchase is not None:
        return AccessMethod.PURCHASE, purchase

    granted = next((row for row in rows if row.voucher_ref is not None), None)
    if granted is None and rows:
        # rows without provenance still grant access, ranked like vouchers
        granted = rows[0]
    if granted is not None:
        return AccessMethod.VOUCHER, granted

    return None


class AccessResolver:
    def __init__(self, session: AsyncSession, policies: ContentPolicyCache) -> None:
        self.entitlements = EntitlementHandler(session)
        self.policies = policies

    async def pass_balance(self, owner: OwnerIdentity) -> int:
        if not owner.holds_entitlements:
            return 0
        return await self.entitlements.get_pass_balance(owner.id)

    async def resolve(self, owner: OwnerIdentity, unit_id: str) -> AccessDecision:
        policy = await self.policies.get(unit_id)

        if owner.holds_entitlements:
            rows = await self.entitlements.get_era_rows(owner.id, unit_id)
            picked = pick_era_grant(rows)
            if picked is not None:
                method, row = picked
                logger.debug(f"{owner.id} may play {unit_id} by {method.value} ({row.id})")
                return AccessDecision(
                    authorized=True,
                    method=method,
                    unit_id=unit_id,
                    entitlement_id=row.id,
                    uses_remaining=(
                        UNLIMITED_USES if method == AccessMethod.PURCHASE else row.uses_remaining
                    ),
                    expires_at=row.expires_at,
                    voucher_code=row.voucher_ref if method == AccessMethod.VOUCHER else None,
                )

        if policy.exclusive:
            return AccessDecision(
                authorized=False,
                method=AccessMethod.EXCLUSIVE,
                unit_id=unit_id,
                reason=REQUIRES_VOUCHER,
            )

        if policy.passes_required > 0:
            balance = await self.pass_balance(owner)
            authorized = balance >= policy.passes_required
            return AccessDecision(
                authorized=authorized,
                method=AccessMethod.PASSES,
                unit_id=unit_id,
                passes_required=policy.passes_required,
                pass_balance=balance,
                plays_available=balance // policy.passes_required,
                reason=None if authorized else NOT_ENOUGH_PASSES,
            )

        return AccessDecision(authorized=True, method=AccessMethod.FREE, unit_id=unit_id)


def describe_access(
    decision: AccessDecision,
    policy: ContentPolicy,
    now: datetime.datetime | None = None,
) -> AccessBadge:
    """
    Display data for the era selection screen.
    """
    label = policy.exclusive_label or "EXCLUSIVE"

    match decision.method:
        case AccessMethod.PURCHASE:
            return AccessBadge(badge="OWNED", button="Play", style="badge-owned")
        case AccessMethod.VOUCHER:
            unlimited = decision.uses_remaining == UNLIMITED_USES
            count = "∞" if unlimited else str(decision.uses_remaining)
            badge = f"{count} {label}"
            if unlimited and decision.expires_at is not None:
                now = now or datetime.datetime.now(datetime.UTC)
                days_left = _days_left(decision.expires_at, now)
                if days_left <= 7:
                    badge = f"{badge} ({days_left}d left)"
            return AccessBadge(badge=badge, button="Play (using voucher)", style="badge-exclusive")
        case AccessMethod.EXCLUSIVE:
            return AccessBadge(badge=f"0 {label}", button="Get Vouchers", style="badge-locked")
        case AccessMethod.PASSES if decision.authorized:
            noun = "pass" if decision.passes_required == 1 else "passes"
            return AccessBadge(
                badge=f"{decision.plays_available} PLAYS",
                button=f"Play (using {decision.passes_required} {noun})",
                style="badge-plays",
            )
        case AccessMethod.PASSES:
            return AccessBadge(badge="0 PLAYS", button="Get Passes", style="badge-locked")
        case _:
            return AccessBadge(badge="FREE", button="Play", style="badge-free")


def _days_left(expires_at: datetime.datetime, now: datetime.datetime) -> int:
    seconds = (as_utc(expires_at) - now).total_seconds()
    return max(0, math.ceil(seconds / 86_400))
