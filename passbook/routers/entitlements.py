from typing import Annotated

from fastapi import APIRouter, Query

from passbook.db.models import Entitlement
from passbook.dependencies.auth import CurrentOwner
from passbook.dependencies.db import EntitlementRepository
from passbook.dependencies.services import Resolver
from passbook.enums import EntitlementKind
from passbook.pagination import LimitOffsetPage, paginate
from passbook.schemas.entitlements import EntitlementRead, PassBalanceRead

router = APIRouter()


@router.get("", response_model=LimitOffsetPage[EntitlementRead])
async def get_entitlements(
    owner: CurrentOwner,
    entitlement_repo: EntitlementRepository,
    kind: EntitlementKind | None = None,
    include_unusable: Annotated[bool, Query(description="Include exhausted and expired rows")] = False,
):
    base_query = entitlement_repo.owned_by(owner.id, include_unusable=include_unusable)
    where_clauses = [Entitlement.kind == kind] if kind is not None else None
    return await paginate(
        entitlement_repo,
        EntitlementRead,
        base_query=base_query,
        where_clauses=where_clauses,
    )


@router.get("/balance", response_model=PassBalanceRead)
async def get_pass_balance(owner: CurrentOwner, resolver: Resolver):
    return PassBalanceRead(owner_id=owner.id, balance=await resolver.pass_balance(owner))
