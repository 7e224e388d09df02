"""
Direct grants that do not start from a voucher code held by the player:
pass credits, purchased era access and achievement rewards.
"""

import datetime
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from passbook.conf import Settings
from passbook.db.handlers import EntitlementHandler, VoucherHandler
from passbook.db.models import UNLIMITED_USES, Entitlement
from passbook.enums import EntitlementKind, PassSource, VoucherPurpose
from passbook.errors import AlreadyRewarded, InvalidFormat, PermissionDenied, wrap_storage_errors
from passbook.identity import OwnerIdentity
from passbook.vouchers import VoucherManager

logger = logging.getLogger(__name__)

PASSES_REWARD = "passes"


class GrantService:
    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self.settings = settings
        self.entitlements = EntitlementHandler(session)
        self.vouchers = VoucherHandler(session)
        self.voucher_manager = VoucherManager(session, settings)

    async def credit_passes(
        self,
        owner: OwnerIdentity,
        amount: int,
        source: PassSource | str,
        purchase_ref: str | None = None,
        voucher_ref: str | None = None,
    ) -> Entitlement:
        try:
            source = PassSource(source)
        except ValueError as e:
            raise InvalidFormat(f"Invalid pass source: {source}") from e

        if not owner.holds_entitlements:
            raise PermissionDenied(f"Cannot credit passes to {owner.kind.value} accounts")
        if amount <= 0:
            raise InvalidFormat(f"Pass amount must be positive, got {amount}")

        now = datetime.datetime.now(datetime.UTC)
        with wrap_storage_errors("Pass credit"):
            entitlement = await self.entitlements.create(
                Entitlement(
                    owner_id=owner.id,
                    kind=EntitlementKind.PASS,
                    value=source.value,
                    uses_remaining=amount,
                    expires_at=now + datetime.timedelta(days=self.settings.credit_validity_days),
                    purchase_ref=purchase_ref,
                    voucher_ref=voucher_ref,
                )
            )

        logger.info(f"Credited {amount} passes ({source.value}) to {owner.id} as {entitlement.id}")
        return entitlement

    async def grant_purchase(
        self, owner: OwnerIdentity, unit_id: str, purchase_ref: str
    ) -> tuple[Entitlement, bool]:
        """
        Records purchased, unlimited access to `unit_id`. A payment reference
        that was already recorded returns the existing row.
        """
        if not owner.holds_entitlements:
            raise PermissionDenied(f"Cannot grant purchases to {owner.kind.value} accounts")
        if not purchase_ref:
            raise InvalidFormat("A purchase needs a payment reference")

        with wrap_storage_errors("Purchase grant"):
            existing = await self.entitlements.get_by_purchase_ref(owner.id, purchase_ref)
            if existing is not None:
                logger.info(f"Purchase {purchase_ref} already recorded as {existing.id}")
                return existing, False

            now = datetime.datetime.now(datetime.UTC)
            entitlement = await self.entitlements.create(
                Entitlement(
                    owner_id=owner.id,
                    kind=EntitlementKind.ERA,
                    value=unit_id,
                    uses_remaining=UNLIMITED_USES,
                    expires_at=now + datetime.timedelta(days=self.settings.purchase_validity_days),
                    purchase_ref=purchase_ref,
                )
            )

        logger.info(f"Granted purchased access to {unit_id} for {owner.id} as {entitlement.id}")
        return entitlement, True

    async def reward_achievement(
        self,
        owner: OwnerIdentity,
        achievement_id: str,
        reward_type: str,
        reward_count: int,
    ) -> Entitlement:
        """
        Pays an achievement reward through a voucher created for the owner and
        redeemed on the spot. `reward_type` is either ``passes`` or a content
        unit id.
        """
        if not owner.holds_entitlements:
            raise PermissionDenied(f"Cannot reward {owner.kind.value} accounts")
        if reward_count <= 0:
            raise InvalidFormat(f"Reward count must be positive, got {reward_count}")

        with wrap_storage_errors("Achievement reward lookup"):
            already = await self.vouchers.get_achievement_reward(owner.id, achievement_id)
        if already is not None:
            raise AlreadyRewarded(f"Achievement {achievement_id} was already rewarded to {owner.id}")

        kind: EntitlementKind | str = (
            EntitlementKind.PASS if reward_type == PASSES_REWARD else reward_type
        )
        voucher = await self.voucher_manager.issue(
            kind,
            reward_count,
            purpose=VoucherPurpose.ACHIEVEMENT,
            created_for=owner.id,
            reward_for_achievement_id=achievement_id,
        )
        return await self.voucher_manager.redeem(owner, voucher.code)
