from fastapi import APIRouter

from passbook.access import describe_access
from passbook.dependencies.auth import CurrentOwner
from passbook.dependencies.core import PolicyCache
from passbook.dependencies.services import Consumption, Resolver
from passbook.schemas.access import AccessBadgeRead, AccessDecisionRead, ConsumptionRead

router = APIRouter()


@router.get("/{unit_id}", response_model=AccessDecisionRead)
async def resolve_access(
    unit_id: str, owner: CurrentOwner, resolver: Resolver, policies: PolicyCache
):
    decision = await resolver.resolve(owner, unit_id)
    badge = describe_access(decision, await policies.get(unit_id))
    return AccessDecisionRead(
        **decision.__dict__,
        badge=AccessBadgeRead(**badge.__dict__),
    )


@router.post("/{unit_id}/consume", response_model=ConsumptionRead)
async def consume_access(unit_id: str, owner: CurrentOwner, engine: Consumption):
    result = await engine.consume(owner, unit_id)
    return ConsumptionRead(
        method=result.method,
        remaining=result.remaining,
        entitlement_id=result.entitlement_id,
    )
