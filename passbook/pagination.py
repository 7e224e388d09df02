from __future__ import annotations

from collections.abc import Sequence

from fastapi import Query
from fastapi_pagination import create_page, resolve_params
from fastapi_pagination.bases import AbstractPage, AbstractParams, RawParams
from fastapi_pagination.limit_offset import LimitOffsetPage as _LimitOffsetPage
from fastapi_pagination.types import GreaterEqualZero
from pydantic import BaseModel
from sqlalchemy import ColumnExpressionArgument
from sqlalchemy.sql.selectable import Select

from passbook.db.handlers import ModelHandler
from passbook.db.models import Base, TimestampMixin
from passbook.schemas.core import BaseSchema, convert_model_to_schema


class LimitOffsetParams(BaseModel, AbstractParams):
    limit: int = Query(50, ge=0, le=1000, description="Page size limit")
    offset: int = Query(0, ge=0, description="Page offset")

    def to_raw_params(self) -> RawParams:
        return RawParams(
            limit=self.limit,
            offset=self.offset,
        )


class LimitOffsetPage[S: BaseSchema](_LimitOffsetPage[S]):
    limit: GreaterEqualZero | None

    __params_type__ = LimitOffsetParams  # type: ignore


async def paginate[M: Base, S: BaseSchema](
    handler: ModelHandler[M],
    schema_cls: type[S],
    *,
    base_query: Select | None = None,
    where_clauses: Sequence[ColumnExpressionArgument] | None = None,
    order_by: Sequence[ColumnExpressionArgument] | None = None,
) -> AbstractPage[S]:
    """
    Queries the handler's model for the requested window and serializes
    the rows into `schema_cls`. Newest rows come first unless `order_by`
    says otherwise.
    """
    params: LimitOffsetParams = resolve_params()
    total = await handler.count(base_query=base_query, where_clauses=where_clauses)
    items: Sequence[M] = []
    if params.limit > 0:
        if order_by is None:
            model_cls = handler.model_cls
            order_by = [
                model_cls.created_at.desc()  # type: ignore
                if issubclass(model_cls, TimestampMixin)
                else model_cls.id,
                model_cls.id,
            ]
        items = await handler.query_db(
            base_query=base_query,
            limit=params.limit,
            offset=params.offset,
            where_clauses=where_clauses,
            order_by=order_by,
        )

    return create_page(
        [convert_model_to_schema(schema_cls, item) for item in items],
        params=params,
        total=total,
    )
