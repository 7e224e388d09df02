from fastapi import APIRouter, status

from passbook import codec
from passbook.dependencies.auth import CurrentAuthContext, CurrentOwner
from passbook.dependencies.services import Vouchers
from passbook.enums import VoucherPurpose
from passbook.schemas.core import convert_model_to_schema
from passbook.schemas.entitlements import EntitlementRead
from passbook.schemas.vouchers import (
    VoucherCreate,
    VoucherInviteInput,
    VoucherInviteRead,
    VoucherPreviewRead,
    VoucherRead,
    VoucherRedeemInput,
)

router = APIRouter()


@router.post("", response_model=VoucherRead, status_code=status.HTTP_201_CREATED)
async def issue_voucher(data: VoucherCreate, owner: CurrentOwner, manager: Vouchers):
    settings = manager.settings
    if owner.is_system:
        terms = {"purpose": VoucherPurpose.MANUAL, "signup_bonus": 0}
    else:
        terms = {
            "purpose": VoucherPurpose.EMAIL_FRIEND,
            "signup_bonus": settings.referral_signup_bonus,
        }
    terms["amount"] = settings.invite_grant_amount
    terms.update(data.model_dump(include={"amount", "purpose", "signup_bonus"}, exclude_none=True))

    voucher = await manager.issue(
        data.kind,
        terms["amount"],
        purpose=terms["purpose"],
        issued_by=data.issued_by,
        addressed_to=data.addressed_to,
        signup_bonus=terms["signup_bonus"],
        created_for=data.created_for,
        expires_at=data.expires_at,
        issuer=owner,
    )
    return convert_model_to_schema(VoucherRead, voucher)


@router.post("/redeem", response_model=EntitlementRead, status_code=status.HTTP_201_CREATED)
async def redeem_voucher(
    data: VoucherRedeemInput,
    owner: CurrentOwner,
    auth_context: CurrentAuthContext,
    manager: Vouchers,
):
    contact = data.contact or (auth_context.contact if auth_context else None)
    entitlement = await manager.redeem(owner, data.code, contact=contact)
    return convert_model_to_schema(EntitlementRead, entitlement)


@router.post("/invite", response_model=VoucherInviteRead)
async def invite_friend(
    data: VoucherInviteInput,
    owner: CurrentOwner,
    auth_context: CurrentAuthContext,
    manager: Vouchers,
):
    result = await manager.invite(
        owner,
        auth_context.contact if auth_context else None,
        data.friend_contact,
        data.unit_id,
    )
    return VoucherInviteRead(
        code=result.code,
        status=result.status,
        inviter_reward=(
            convert_model_to_schema(EntitlementRead, result.inviter_reward)
            if result.inviter_reward is not None
            else None
        ),
    )


@router.get("/{code}/preview", response_model=VoucherPreviewRead)
async def preview_voucher(code: str):
    preview = codec.describe(code)
    return VoucherPreviewRead(
        valid=preview.valid,
        title=preview.title,
        description=preview.description,
        kind=preview.kind,
        value=preview.value,
        value_type=preview.value_type,
        display_text=preview.display_text,
    )
