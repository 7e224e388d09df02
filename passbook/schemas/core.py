from typing import Any

from pydantic import BaseModel, ConfigDict

from passbook.db.models import Base


def convert_model_to_schema[M: Base, S: BaseModel](
    schema_cls: type[S], db_model: M, **override_attributes: Any
) -> S:
    """
    Serializes an ORM instance into `schema_cls`, taking every schema field
    the model has and letting `override_attributes` fill or replace the rest.
    """
    schema_data = {
        field_name: getattr(db_model, field_name)
        for field_name in schema_cls.model_fields.keys()
        if field_name not in override_attributes and hasattr(db_model, field_name)
    }
    return schema_cls(**schema_data, **override_attributes)


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")


class IdSchema(BaseSchema):
    id: str
