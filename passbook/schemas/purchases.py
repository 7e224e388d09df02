from typing import Annotated

from pydantic import Field

from passbook.schemas.core import BaseSchema


class PurchaseCreate(BaseSchema):
    owner_id: Annotated[str, Field(min_length=1, max_length=255)]
    unit_id: Annotated[str, Field(min_length=1, max_length=64, examples=["midway"])]
    purchase_ref: Annotated[str, Field(min_length=1, max_length=255, examples=["pi_3NQ2x7"])]
