from fastapi import APIRouter, Response, status

from passbook.dependencies.services import Grants
from passbook.identity import OwnerIdentity
from passbook.schemas.core import convert_model_to_schema
from passbook.schemas.entitlements import EntitlementRead
from passbook.schemas.purchases import PurchaseCreate

router = APIRouter()


@router.post("", response_model=EntitlementRead, status_code=status.HTTP_201_CREATED)
async def record_purchase(data: PurchaseCreate, grants: Grants, response: Response):
    entitlement, created = await grants.grant_purchase(
        OwnerIdentity.user(data.owner_id), data.unit_id, data.purchase_ref
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return convert_model_to_schema(EntitlementRead, entitlement)
