"""
Project's ORM models: entitlement rows and vouchers.
"""

from __future__ import annotations

import datetime

import sqlalchemy as sa
from sqlalchemy import (
    BigInteger,
    Enum,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
)

from passbook.db.human_readable_pk import HumanReadablePKMixin
from passbook.enums import EntitlementKind
from passbook.utils import as_utc

UNLIMITED_USES = -1


class Base(DeclarativeBase):
    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        unique=True,
        index=True,
    )


class TimestampMixin:
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.datetime.now(datetime.UTC),
        server_default=sa.func.current_timestamp(),
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.datetime.now(datetime.UTC),
        server_default=sa.func.current_timestamp(),
        onupdate=lambda: datetime.datetime.now(datetime.UTC),
    )


class Entitlement(Base, HumanReadablePKMixin, TimestampMixin):
    __tablename__ = "entitlements"
    __table_args__ = (
        Index("ix_entitlements_owner_kind_value", "owner_id", "kind", "value"),
    )

    PK_PREFIX = "PENT"
    PK_NUM_LENGTH = 12

    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    kind: Mapped[EntitlementKind] = mapped_column(
        Enum(EntitlementKind, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    # content unit id for eras, provenance tag for passes
    value: Mapped[str] = mapped_column(String(255), nullable=False)
    uses_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=UNLIMITED_USES)
    expires_at: Mapped[datetime.datetime | None] = mapped_column(sa.DateTime(timezone=True))
    purchase_ref: Mapped[str | None] = mapped_column(String(255), index=True)
    voucher_ref: Mapped[str | None] = mapped_column(String(255), index=True)

    @property
    def is_unlimited(self) -> bool:
        return self.uses_remaining == UNLIMITED_USES

    def is_usable(self, now: datetime.datetime | None = None) -> bool:
        now = now or datetime.datetime.now(datetime.UTC)
        if self.uses_remaining == 0:
            return False
        return self.expires_at is None or as_utc(self.expires_at) > now


class Voucher(Base, HumanReadablePKMixin, TimestampMixin):
    __tablename__ = "vouchers"
    __table_args__ = (
        UniqueConstraint(
            "created_for",
            "reward_for_achievement_id",
            name="uq_vouchers_created_for_achievement",
        ),
        Index("ix_vouchers_issuer_addressee", "issued_by", "addressed_to"),
    )

    PK_PREFIX = "PVCH"
    PK_NUM_LENGTH = 12

    code: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    kind: Mapped[EntitlementKind] = mapped_column(
        Enum(EntitlementKind, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    value: Mapped[str] = mapped_column(String(255), nullable=False)
    uses: Mapped[int | None] = mapped_column(Integer)
    duration_ms: Mapped[int | None] = mapped_column(BigInteger)
    purpose: Mapped[str | None] = mapped_column(String(64))
    issued_by: Mapped[str | None] = mapped_column(String(255))
    addressed_to: Mapped[str | None] = mapped_column(String(255), index=True)
    created_for: Mapped[str | None] = mapped_column(String(255))
    signup_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reward_for_achievement_id: Mapped[str | None] = mapped_column(String(255))
    expires_at: Mapped[datetime.datetime | None] = mapped_column(sa.DateTime(timezone=True))
    redeemed_at: Mapped[datetime.datetime | None] = mapped_column(sa.DateTime(timezone=True))
    redeemed_by: Mapped[str | None] = mapped_column(String(255))

    @property
    def is_redeemed(self) -> bool:
        return self.redeemed_at is not None

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.datetime.now(datetime.UTC)
        return as_utc(self.expires_at) <= now
