from __future__ import annotations

import datetime
from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnExpressionArgument, Select, and_, exists, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.interfaces import ORMOption

from passbook.db.models import Base as BaseModel
from passbook.db.models import Entitlement, Voucher
from passbook.enums import EntitlementKind


class DatabaseError(Exception):
    pass


class NotFoundError(DatabaseError):
    pass


class ConstraintViolationError(DatabaseError):
    pass


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class ModelHandler[M: BaseModel]:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.default_options: list[ORMOption] = []

    @classmethod
    def _get_generic_cls_args(cls):
        """
        Retrieves the generic model class arg dynamically
        """
        return next(
            base_cls.__args__
            for base_cls in cls.__orig_bases__
            if base_cls.__origin__ is ModelHandler
        )

    @property
    def model_cls(self) -> type[M]:
        return self._get_generic_cls_args()[0]

    async def create(self, obj: M) -> M:
        self.session.add(obj)
        await self._save_changes(obj)

        return obj

    async def get(
        self, id: str, extra_conditions: list[ColumnExpressionArgument] | None = None
    ) -> M:
        query = select(self.model_cls).where(self.model_cls.id == id)
        if extra_conditions:
            query = query.where(*extra_conditions)

        if self.default_options:
            query = query.options(*self.default_options)

        result = await self.session.execute(query)
        instance = result.scalar_one_or_none()

        if instance is None:
            raise NotFoundError(f"{self.model_cls.__name__} with ID `{str(id)}` wasn't found.")

        return instance

    async def get_or_create(
        self, *, defaults: dict[str, Any] | None = None, **filters: Any
    ) -> tuple[M, bool]:
        defaults = defaults or {}
        query = select(self.model_cls).where(
            *(getattr(self.model_cls, key) == value for key, value in filters.items())
        )
        if self.default_options:
            query = query.options(*self.default_options)
        result = await self.session.execute(query)
        obj = result.scalars().first()

        if obj:
            return obj, False

        params = filters
        params.update(defaults)

        obj = await self.create(self.model_cls(**params))
        return obj, True

    async def update(self, id_or_obj: str | M, data: dict[str, Any] | None = None) -> M:
        obj = await self._get_model_obj(id_or_obj)

        if data:
            for key, value in data.items():
                setattr(obj, key, value)

        await self._save_changes(obj)
        return obj

    async def query_db(
        self,
        base_query: Select | None = None,
        where_clauses: Sequence[ColumnExpressionArgument] | None = None,
        limit: int | None = None,
        offset: int | None = None,
        order_by: Sequence[ColumnExpressionArgument] | None = None,
        options: Sequence[ORMOption] | None = None,
        for_update: bool = False,
    ) -> Sequence[M]:
        """
        Executes a select over the handler's model.

        Args:
            base_query: query to start from, `select(model)` when omitted.
            where_clauses: extra conditions applied with `.where()`.
            limit, offset: pagination window; no window when omitted.
            order_by: ordering columns.
            options: ORM options added to the handler's defaults.
            for_update: lock the selected rows until the transaction ends.

        Returns:
            The matching objects, an empty sequence when nothing matches.
        """
        query = select(self.model_cls) if base_query is None else base_query
        query = self._apply_conditions_to_the_query(
            query=query, where_clauses=where_clauses, options=options, order_by=order_by
        )
        if limit:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)
        if for_update:
            query = query.with_for_update()
        results = await self.session.scalars(query)
        return results.all()

    async def count(
        self,
        base_query: Select | None = None,
        where_clauses: Sequence[ColumnExpressionArgument] | None = None,
    ) -> int:
        if base_query is not None:
            query = select(func.count(self.model_cls.id)).select_from(
                base_query.get_final_froms()[0]
            )
            if base_query.whereclause is not None:
                query = query.where(base_query.whereclause)
        else:
            query = select(func.count(self.model_cls.id))
        if where_clauses:
            query = query.where(*where_clauses)
        result = await self.session.execute(query)
        return result.scalars().one()

    async def first(
        self,
        where_clauses: Sequence[ColumnExpressionArgument] | None = None,
        order_by: Sequence[ColumnExpressionArgument] | None = None,
        for_update: bool = False,
    ) -> M | None:
        query = select(self.model_cls)
        query = self._apply_conditions_to_the_query(
            query=query, where_clauses=where_clauses, order_by=order_by
        )
        if for_update:
            query = query.with_for_update()

        result = await self.session.execute(query.limit(1))
        return result.scalars().first()

    async def exists(self, where_clauses: Sequence[ColumnExpressionArgument]) -> bool:
        return bool(await self.session.scalar(select(exists().where(*where_clauses))))

    async def _get_model_obj(self, id_or_obj: str | M) -> M:
        if isinstance(id_or_obj, str):
            return await self.get(id_or_obj)

        return id_or_obj

    async def _save_changes(self, obj: M):
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConstraintViolationError(
                f"Failed to save changes to {self.model_cls.__name__}: {e}."
            ) from e
        await self.session.refresh(obj)

    def _apply_conditions_to_the_query(
        self,
        query: Select,
        where_clauses: Sequence[ColumnExpressionArgument] | None = None,
        options: Sequence[ORMOption] | None = None,
        order_by: Sequence[ColumnExpressionArgument] | None = None,
    ) -> Select:
        if where_clauses:
            query = query.where(*where_clauses)
        orm_options = list(self.default_options) + list(options or [])
        if order_by:
            query = query.order_by(*order_by)
        if orm_options:
            query = query.options(*orm_options)
        return query


class EntitlementHandler(ModelHandler[Entitlement]):
    FIFO_ORDER = (Entitlement.created_at.asc(), Entitlement.id.asc())

    @staticmethod
    def usable(now: datetime.datetime) -> ColumnExpressionArgument:
        return and_(
            Entitlement.uses_remaining != 0,
            or_(Entitlement.expires_at.is_(None), Entitlement.expires_at > now),
        )

    def owned_by(self, owner_id: str, include_unusable: bool = False) -> Select:
        query = select(Entitlement).where(Entitlement.owner_id == owner_id)
        if not include_unusable:
            query = query.where(self.usable(utcnow()))
        return query

    async def get_era_rows(
        self, owner_id: str, unit_id: str, for_update: bool = False
    ) -> Sequence[Entitlement]:
        return await self.query_db(
            where_clauses=[
                Entitlement.owner_id == owner_id,
                Entitlement.kind == EntitlementKind.ERA,
                Entitlement.value == unit_id,
                self.usable(utcnow()),
            ],
            order_by=self.FIFO_ORDER,
            for_update=for_update,
        )

    async def get_pass_rows(self, owner_id: str, for_update: bool = False) -> Sequence[Entitlement]:
        """
        Usable pass rows of `owner_id`, oldest first.
        """
        return await self.query_db(
            where_clauses=[
                Entitlement.owner_id == owner_id,
                Entitlement.kind == EntitlementKind.PASS,
                Entitlement.uses_remaining > 0,
                self.usable(utcnow()),
            ],
            order_by=self.FIFO_ORDER,
            for_update=for_update,
        )

    async def get_pass_balance(self, owner_id: str) -> int:
        stmt = select(func.coalesce(func.sum(Entitlement.uses_remaining), 0)).where(
            Entitlement.owner_id == owner_id,
            Entitlement.kind == EntitlementKind.PASS,
            Entitlement.uses_remaining > 0,
            self.usable(utcnow()),
        )
        return int(await self.session.scalar(stmt) or 0)

    async def get_by_purchase_ref(self, owner_id: str, purchase_ref: str) -> Entitlement | None:
        return await self.first(
            where_clauses=[
                Entitlement.owner_id == owner_id,
                Entitlement.purchase_ref == purchase_ref,
            ]
        )

    async def consume_uses(self, entitlement: Entitlement, uses: int = 1) -> bool:
        """
        Takes `uses` from a finite row, only if it still holds at least that
        many. Returns whether the row was changed.
        """
        stmt = (
            update(Entitlement)
            .where(
                Entitlement.id == entitlement.id,
                Entitlement.uses_remaining >= uses,
                Entitlement.uses_remaining > 0,
            )
            .values(
                uses_remaining=Entitlement.uses_remaining - uses,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.refresh(entitlement)
        return result.rowcount == 1


class VoucherHandler(ModelHandler[Voucher]):
    async def get_by_code(self, code: str, for_update: bool = False) -> Voucher:
        voucher = await self.first(where_clauses=[Voucher.code == code], for_update=for_update)
        if voucher is None:
            raise NotFoundError(f"Voucher with code `{code}` wasn't found.")
        return voucher

    async def code_exists(self, code: str) -> bool:
        return await self.exists([Voucher.code == code])

    async def mark_redeemed(
        self, voucher: Voucher, redeemed_by: str, now: datetime.datetime | None = None
    ) -> bool:
        """
        Marks the voucher redeemed unless someone else got there first.
        Returns whether this call won.
        """
        now = now or utcnow()
        stmt = (
            update(Voucher)
            .where(Voucher.id == voucher.id, Voucher.redeemed_at.is_(None))
            .values(redeemed_at=now, redeemed_by=redeemed_by, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.refresh(voucher)
        return result.rowcount == 1

    async def find_latest(self, issued_by: str, addressed_to: str) -> Voucher | None:
        return await self.first(
            where_clauses=[
                Voucher.issued_by == issued_by,
                Voucher.addressed_to == addressed_to,
            ],
            order_by=[Voucher.created_at.desc(), Voucher.id.desc()],
        )

    async def find_pending_invitation(
        self,
        addressed_to: str,
        now: datetime.datetime | None = None,
        for_update: bool = False,
    ) -> Voucher | None:
        now = now or utcnow()
        return await self.first(
            where_clauses=[
                Voucher.addressed_to == addressed_to,
                Voucher.issued_by.is_not(None),
                Voucher.redeemed_at.is_(None),
                or_(Voucher.expires_at.is_(None), Voucher.expires_at > now),
            ],
            order_by=[Voucher.created_at.asc(), Voucher.id.asc()],
            for_update=for_update,
        )

    async def get_achievement_reward(
        self, created_for: str, achievement_id: str
    ) -> Voucher | None:
        return await self.first(
            where_clauses=[
                Voucher.created_for == created_for,
                Voucher.reward_for_achievement_id == achievement_id,
            ]
        )
