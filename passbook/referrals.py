"""
Two-sided referral reward, paid when an invited friend creates an account.

Marking the invitation redeemed is the linearization point: only the call
whose guarded update wins goes on to grant anything, so concurrent
account-created callbacks for the same contact pay out once.
"""

import datetime
import logging
from dataclasses import dataclass, replace

from sqlalchemy.ext.asyncio import AsyncSession

from passbook.conf import Settings
from passbook.db.handlers import EntitlementHandler, VoucherHandler
from passbook.db.models import UNLIMITED_USES, Entitlement, Voucher
from passbook.enums import EntitlementKind, VoucherPurpose
from passbook.errors import PermissionDenied, wrap_storage_errors
from passbook.identity import OwnerIdentity
from passbook.utils import normalize_contact
from passbook.vouchers import VoucherManager

logger = logging.getLogger(__name__)

NO_REFERRAL = "no_referral"
ALREADY_REDEEMED = "already_redeemed"
SELF_REFERRAL = "self_referral"
NO_BONUS = "no_bonus"


@dataclass(frozen=True)
class ReferralOutcome:
    rewarded: bool
    reason: str | None = None
    referrer_id: str | None = None
    amount: int = 0
    invitation_code: str | None = None
    referrer_reward_code: str | None = None
    new_account_reward_code: str | None = None


class ReferralOrchestrator:
    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self.vouchers = VoucherHandler(session)
        self.entitlements = EntitlementHandler(session)
        self.voucher_manager = VoucherManager(session, settings)

    async def on_account_created(self, new_owner: OwnerIdentity, contact: str) -> ReferralOutcome:
        if not new_owner.holds_entitlements:
            raise PermissionDenied(f"{new_owner.kind.value} accounts cannot be referred")

        contact = normalize_contact(contact)
        if contact is None:
            return ReferralOutcome(rewarded=False, reason=NO_REFERRAL)

        now = datetime.datetime.now(datetime.UTC)
        with wrap_storage_errors("Referral lookup"):
            invitation = await self.vouchers.find_pending_invitation(
                contact, now=now, for_update=True
            )
            if invitation is None:
                logger.info(f"No pending invitation for {contact}")
                return ReferralOutcome(rewarded=False, reason=NO_REFERRAL)

            if not await self.vouchers.mark_redeemed(invitation, new_owner.id, now):
                logger.info(f"Invitation {invitation.code} was claimed concurrently")
                return ReferralOutcome(
                    rewarded=False, reason=ALREADY_REDEEMED, invitation_code=invitation.code
                )

        referrer_id = invitation.issued_by
        outcome = ReferralOutcome(
            rewarded=False,
            referrer_id=referrer_id,
            invitation_code=invitation.code,
        )

        if referrer_id == new_owner.id:
            logger.warning(f"{new_owner.id} tried to refer themselves with {invitation.code}")
            return replace(outcome, reason=SELF_REFERRAL)

        await self._grant_invitation(invitation, new_owner, now)

        amount = invitation.signup_bonus
        if amount <= 0:
            return replace(outcome, reason=NO_BONUS)

        referrer_reward = await self._pay_signup_reward(
            OwnerIdentity.user(referrer_id), amount
        )
        new_account_reward = await self._pay_signup_reward(new_owner, amount)

        logger.info(
            f"Referral of {new_owner.id} by {referrer_id} paid {amount} passes to each side"
        )
        return ReferralOutcome(
            rewarded=True,
            referrer_id=referrer_id,
            amount=amount,
            invitation_code=invitation.code,
            referrer_reward_code=referrer_reward,
            new_account_reward_code=new_account_reward,
        )

    async def _grant_invitation(
        self, invitation: Voucher, new_owner: OwnerIdentity, now: datetime.datetime
    ) -> Entitlement:
        with wrap_storage_errors("Invitation grant"):
            return await self.entitlements.create(
                Entitlement(
                    owner_id=new_owner.id,
                    kind=invitation.kind,
                    value=invitation.value,
                    uses_remaining=UNLIMITED_USES if invitation.uses is None else invitation.uses,
                    expires_at=self.voucher_manager.grant_expiry(invitation, now),
                    voucher_ref=invitation.code,
                )
            )

    async def _pay_signup_reward(self, owner: OwnerIdentity, amount: int) -> str:
        voucher = await self.voucher_manager.issue(
            EntitlementKind.PASS,
            amount,
            purpose=VoucherPurpose.REFERRAL_SIGNUP_REWARD,
            created_for=owner.id,
        )
        await self.voucher_manager.redeem(owner, voucher.code)
        return voucher.code
