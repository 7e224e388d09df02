from fastapi import APIRouter

from passbook.dependencies.services import Referrals
from passbook.identity import OwnerIdentity
from passbook.schemas.referrals import ReferralCreate, ReferralOutcomeRead

router = APIRouter()


@router.post("", response_model=ReferralOutcomeRead)
async def account_created(data: ReferralCreate, orchestrator: Referrals):
    outcome = await orchestrator.on_account_created(
        OwnerIdentity(id=data.owner_id, kind=data.owner_kind), data.contact
    )
    return ReferralOutcomeRead(**outcome.__dict__)
