"""
Voucher lifecycle: issue, find-or-issue, redeem exactly once.

A voucher moves from issued to redeemed once and is never deleted. Redemption
marks the voucher with a guarded update and writes the entitlement row in the
same transaction, so a lost race never grants anything.
"""

import datetime
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from passbook import codec
from passbook.conf import Settings
from passbook.db.handlers import (
    ConstraintViolationError,
    EntitlementHandler,
    NotFoundError,
    VoucherHandler,
)
from passbook.db.models import UNLIMITED_USES, Entitlement, Voucher
from passbook.enums import DurationUnit, EntitlementKind, IssueStatus, VoucherPurpose
from passbook.errors import (
    AlreadyRedeemed,
    AlreadyRewarded,
    Expired,
    InvalidFormat,
    PermissionDenied,
    StorageFailure,
    VoucherNotFound,
    wrap_storage_errors,
)
from passbook.identity import OwnerIdentity
from passbook.utils import normalize_contact

logger = logging.getLogger(__name__)

CODE_MAX_RETRIES = 5

type Amount = int | str | tuple[DurationUnit | str, int]


@dataclass(frozen=True)
class FindOrIssueResult:
    code: str
    status: IssueStatus
    voucher: Voucher


@dataclass(frozen=True)
class InviteResult:
    code: str
    status: IssueStatus
    inviter_reward: Entitlement | None = None


class VoucherManager:
    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self.settings = settings
        self.vouchers = VoucherHandler(session)
        self.entitlements = EntitlementHandler(session)

    def validate(self, code: str) -> bool:
        return codec.is_valid(code)

    def preview(self, code: str) -> codec.VoucherPreview:
        return codec.describe(code)

    async def issue(
        self,
        kind: EntitlementKind | str,
        amount: Amount,
        purpose: VoucherPurpose | str = VoucherPurpose.MANUAL,
        issued_by: str | None = None,
        addressed_to: str | None = None,
        signup_bonus: int = 0,
        created_for: str | None = None,
        expires_at: datetime.datetime | None = None,
        reward_for_achievement_id: str | None = None,
        issuer: OwnerIdentity | None = None,
    ) -> Voucher:
        if issuer is not None and not issuer.is_system:
            self._check_invitation_terms(
                issuer,
                kind,
                amount,
                purpose,
                issued_by=issued_by,
                addressed_to=addressed_to,
                signup_bonus=signup_bonus,
                restricted=(created_for, expires_at, reward_for_achievement_id),
            )
        if signup_bonus < 0:
            raise InvalidFormat(f"Signup bonus must not be negative, got {signup_bonus}")

        with wrap_storage_errors("Voucher issuance"):
            grant = await self._fresh_grant(kind, amount)
            try:
                voucher = await self.vouchers.create(
                    Voucher(
                        code=grant.code,
                        kind=grant.kind,
                        value=grant.value,
                        uses=None if grant.is_time_based else grant.uses_remaining,
                        duration_ms=grant.duration_ms,
                        purpose=purpose.value if isinstance(purpose, VoucherPurpose) else purpose,
                        issued_by=issued_by,
                        addressed_to=normalize_contact(addressed_to),
                        created_for=created_for,
                        signup_bonus=signup_bonus,
                        expires_at=expires_at,
                        reward_for_achievement_id=reward_for_achievement_id,
                    )
                )
            except ConstraintViolationError as e:
                if reward_for_achievement_id is None:
                    raise
                raise AlreadyRewarded(
                    f"Achievement {reward_for_achievement_id} was already rewarded to {created_for}"
                ) from e

        logger.info(
            f"Issued voucher {voucher.id} ({voucher.code}) for {voucher.purpose}, "
            f"issued by {issued_by or 'system'}"
        )
        return voucher

    async def find_or_issue(
        self,
        kind: EntitlementKind | str,
        amount: Amount,
        issued_by: str,
        addressed_to: str,
        purpose: VoucherPurpose | str = VoucherPurpose.EMAIL_FRIEND,
        signup_bonus: int = 0,
        issuer: OwnerIdentity | None = None,
    ) -> FindOrIssueResult:
        """
        Returns the latest voucher `issued_by` already sent to `addressed_to`
        or issues a new one, so repeated invites never mint duplicates.
        """
        contact = normalize_contact(addressed_to)
        if contact is None:
            raise InvalidFormat("An invitation needs a contact address")

        with wrap_storage_errors("Voucher lookup"):
            existing = await self.vouchers.find_latest(issued_by, contact)

        if existing is not None:
            status = IssueStatus.ALREADY_REDEEMED if existing.is_redeemed else IssueStatus.REUSED
            logger.info(f"Found voucher {existing.code} already sent to {contact}: {status.value}")
            return FindOrIssueResult(code=existing.code, status=status, voucher=existing)

        voucher = await self.issue(
            kind,
            amount,
            purpose=purpose,
            issued_by=issued_by,
            addressed_to=contact,
            signup_bonus=signup_bonus,
            issuer=issuer,
        )
        return FindOrIssueResult(code=voucher.code, status=IssueStatus.CREATED, voucher=voucher)

    async def redeem(
        self, owner: OwnerIdentity, code: str, contact: str | None = None
    ) -> Entitlement:
        grant = codec.decode(code)

        if not owner.holds_entitlements:
            raise PermissionDenied(f"{owner.kind.value} accounts cannot redeem vouchers")

        with wrap_storage_errors("Voucher redemption"):
            try:
                voucher = await self.vouchers.get_by_code(grant.code, for_update=True)
            except NotFoundError as e:
                raise VoucherNotFound(str(e)) from e

            now = datetime.datetime.now(datetime.UTC)
            self._check_redeemable(voucher, owner, contact, now)

            if not await self.vouchers.mark_redeemed(voucher, owner.id, now):
                raise AlreadyRedeemed(f"Voucher {voucher.code} was redeemed concurrently")

            entitlement = await self.entitlements.create(
                Entitlement(
                    owner_id=owner.id,
                    kind=voucher.kind,
                    value=voucher.value,
                    uses_remaining=UNLIMITED_USES if voucher.uses is None else voucher.uses,
                    expires_at=self.grant_expiry(voucher, now),
                    voucher_ref=voucher.code,
                )
            )

        logger.info(f"{owner.id} redeemed {voucher.code} into {entitlement.id}")
        return entitlement

    async def invite(
        self,
        inviter: OwnerIdentity,
        inviter_contact: str | None,
        friend_contact: str,
        unit_id: str,
    ) -> InviteResult:
        """
        Sends a friend an era voucher, reusing a previous one when there is
        one. The inviter earns passes only when a new voucher was created.
        """
        friend = normalize_contact(friend_contact)
        if friend is not None and friend == normalize_contact(inviter_contact):
            raise PermissionDenied("You cannot invite yourself")

        result = await self.find_or_issue(
            unit_id,
            self.settings.invite_grant_amount,
            issued_by=inviter.id,
            addressed_to=friend_contact,
            purpose=VoucherPurpose.EMAIL_FRIEND,
            signup_bonus=self.settings.referral_signup_bonus,
            issuer=inviter,
        )
        if result.status != IssueStatus.CREATED or self.settings.invite_reward_passes <= 0:
            return InviteResult(code=result.code, status=result.status)

        reward = await self.issue(
            EntitlementKind.PASS,
            self.settings.invite_reward_passes,
            purpose=VoucherPurpose.INVITE_REWARD,
            created_for=inviter.id,
        )
        entitlement = await self.redeem(inviter, reward.code)
        return InviteResult(code=result.code, status=result.status, inviter_reward=entitlement)

    async def generate_batch(
        self,
        kind: EntitlementKind | str,
        amount: Amount,
        count: int,
        purpose: VoucherPurpose | str = VoucherPurpose.MANUAL,
    ) -> list[Voucher]:
        if count < 1:
            raise InvalidFormat(f"Voucher count must be positive, got {count}")
        return [await self.issue(kind, amount, purpose=purpose) for _ in range(count)]

    async def _fresh_grant(self, kind: EntitlementKind | str, amount: Amount) -> codec.GrantDescriptor:
        for _ in range(CODE_MAX_RETRIES):
            grant = codec.decode(codec.encode(kind, amount))
            if not await self.vouchers.code_exists(grant.code):
                return grant
        raise StorageFailure(f"Unable to generate a unique voucher code after {CODE_MAX_RETRIES} attempts")

    def _check_invitation_terms(
        self,
        issuer: OwnerIdentity,
        kind: EntitlementKind | str,
        amount: Amount,
        purpose: VoucherPurpose | str,
        issued_by: str | None,
        addressed_to: str | None,
        signup_bonus: int,
        restricted: tuple[object, ...],
    ) -> None:
        """
        End users may only issue friend invitations on their own behalf, on
        the configured invitation terms.
        """
        if not issuer.can_issue_for(issued_by):
            raise PermissionDenied(
                f"{issuer.kind.value} account {issuer.id} may not issue vouchers "
                f"on behalf of {issued_by!r}"
            )
        if purpose != VoucherPurpose.EMAIL_FRIEND or kind in (
            EntitlementKind.PASS,
            EntitlementKind.ERA,
        ):
            raise PermissionDenied(f"{issuer.id} may only issue era invitations for friends")
        if normalize_contact(addressed_to) is None:
            raise PermissionDenied(f"{issuer.id} must address the invitation to a friend")
        if any(value is not None for value in restricted):
            raise PermissionDenied(f"{issuer.id} may not set extra restrictions on an invitation")
        if (
            codec.format_amount(amount) != str(self.settings.invite_grant_amount)
            or signup_bonus != self.settings.referral_signup_bonus
        ):
            raise PermissionDenied(f"{issuer.id} may not change the invitation amount or bonus")

    def _check_redeemable(
        self,
        voucher: Voucher,
        owner: OwnerIdentity,
        contact: str | None,
        now: datetime.datetime,
    ) -> None:
        if voucher.is_redeemed:
            raise AlreadyRedeemed(f"Voucher {voucher.code} was redeemed by {voucher.redeemed_by}")
        if voucher.is_expired(now):
            raise Expired(f"Voucher {voucher.code} expired at {voucher.expires_at}")
        if voucher.created_for is not None and voucher.created_for != owner.id:
            raise PermissionDenied(f"Voucher {voucher.code} was created for another account")
        if voucher.issued_by is not None and voucher.issued_by == owner.id:
            raise PermissionDenied("You cannot redeem a voucher that you created")
        if (
            contact is not None
            and voucher.addressed_to is not None
            and normalize_contact(contact) != voucher.addressed_to
        ):
            raise PermissionDenied(f"Voucher {voucher.code} was sent to a different contact")

    def grant_expiry(self, voucher: Voucher, now: datetime.datetime) -> datetime.datetime | None:
        if voucher.duration_ms is not None:
            return now + datetime.timedelta(milliseconds=voucher.duration_ms)
        if self.settings.count_voucher_validity_days:
            return now + datetime.timedelta(days=self.settings.count_voucher_validity_days)
        return None
