"""
Takes one play out of the grant that authorizes it.

Must run inside the caller's transaction: the candidate rows are locked, the
authorization is re-derived from them, and every decrement is a guarded
conditional update. Any failure leaves the whole transaction to roll back.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from passbook.access import pick_era_grant
from passbook.db.handlers import EntitlementHandler
from passbook.db.models import UNLIMITED_USES
from passbook.enums import AccessMethod
from passbook.errors import ExclusiveLocked, InsufficientBalance
from passbook.identity import OwnerIdentity
from passbook.policies import ContentPolicyCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsumptionResult:
    method: AccessMethod
    # uses left on the voucher row, the new pass balance, or -1 when unmetered
    remaining: int
    entitlement_id: str | None = None


class ConsumptionEngine:
    def __init__(self, session: AsyncSession, policies: ContentPolicyCache) -> None:
        self.entitlements = EntitlementHandler(session)
        self.policies = policies

    async def consume(self, owner: OwnerIdentity, unit_id: str) -> ConsumptionResult:
        policy = await self.policies.get(unit_id)

        if owner.holds_entitlements:
            rows = await self.entitlements.get_era_rows(owner.id, unit_id, for_update=True)
            picked = pick_era_grant(rows)
            if picked is not None:
                method, row = picked
                if method == AccessMethod.PURCHASE or row.is_unlimited:
                    logger.info(f"{owner.id} played {unit_id} by {method.value} ({row.id})")
                    return ConsumptionResult(
                        method=method, remaining=UNLIMITED_USES, entitlement_id=row.id
                    )

                if not await self.entitlements.consume_uses(row, 1):
                    raise InsufficientBalance(
                        f"Voucher grant {row.id} was exhausted before it could be used"
                    )
                logger.info(
                    f"{owner.id} used a voucher play of {unit_id} ({row.id}), "
                    f"{row.uses_remaining} left"
                )
                return ConsumptionResult(
                    method=method, remaining=row.uses_remaining, entitlement_id=row.id
                )

        if policy.exclusive:
            raise ExclusiveLocked(f"{unit_id} is exclusive and {owner.id} holds no grant for it")

        if policy.passes_required > 0:
            remaining = await self.consume_passes(owner, policy.passes_required)
            logger.info(
                f"{owner.id} spent {policy.passes_required} passes on {unit_id}, "
                f"{remaining} left"
            )
            return ConsumptionResult(method=AccessMethod.PASSES, remaining=remaining)

        return ConsumptionResult(method=AccessMethod.FREE, remaining=UNLIMITED_USES)

    async def consume_passes(self, owner: OwnerIdentity, amount: int) -> int:
        """
        Spends `amount` passes, oldest rows first, all or nothing.
        Returns the balance left afterwards.
        """
        if not owner.holds_entitlements:
            raise InsufficientBalance(f"{owner.kind.value} accounts hold no passes")

        rows = await self.entitlements.get_pass_rows(owner.id, for_update=True)
        balance = sum(row.uses_remaining for row in rows)
        if balance < amount:
            raise InsufficientBalance(f"{owner.id} needs {amount} passes but holds {balance}")

        outstanding = amount
        for row in rows:
            if outstanding == 0:
                break
            take = min(row.uses_remaining, outstanding)
            if not await self.entitlements.consume_uses(row, take):
                raise InsufficientBalance(f"Pass row {row.id} changed while being spent")
            outstanding -= take

        return balance - amount
