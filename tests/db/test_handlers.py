from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from passbook.db.handlers import (
    ConstraintViolationError,
    EntitlementHandler,
    NotFoundError,
    VoucherHandler,
)
from passbook.db.models import Entitlement, Voucher
from passbook.enums import EntitlementKind
from passbook.identity import OwnerIdentity
from tests.types import ModelFactory


async def test_create_assigns_human_readable_id(db_session: AsyncSession, player: OwnerIdentity):
    handler = EntitlementHandler(db_session)

    entitlement = await handler.create(
        Entitlement(owner_id=player.id, kind=EntitlementKind.PASS, value="admin", uses_remaining=3)
    )

    assert entitlement.id.startswith("PENT-")
    assert entitlement.created_at is not None


async def test_get_not_found(db_session: AsyncSession):
    with pytest.raises(NotFoundError, match="PENT-0000"):
        await EntitlementHandler(db_session).get("PENT-0000")


async def test_get_or_create(db_session: AsyncSession, player: OwnerIdentity):
    handler = EntitlementHandler(db_session)

    first, created = await handler.get_or_create(
        owner_id=player.id,
        purchase_ref="pi_1",
        defaults={"kind": EntitlementKind.ERA, "value": "midway"},
    )
    second, created_again = await handler.get_or_create(owner_id=player.id, purchase_ref="pi_1")

    assert created is True
    assert created_again is False
    assert first.id == second.id


async def test_update(
    db_session: AsyncSession,
    player: OwnerIdentity,
    pass_factory: ModelFactory[Entitlement],
):
    row = await pass_factory(player, 5)

    updated = await EntitlementHandler(db_session).update(row.id, {"uses_remaining": 2})

    assert updated.uses_remaining == 2


async def test_get_pass_rows_fifo_and_usable(
    db_session: AsyncSession,
    player: OwnerIdentity,
    pass_factory: ModelFactory[Entitlement],
):
    now = datetime.now(UTC)
    newer = await pass_factory(player, 5, created_at=now - timedelta(days=1))
    older = await pass_factory(player, 3, created_at=now - timedelta(days=2))
    await pass_factory(player, 4, expires_at=now - timedelta(minutes=1))
    await pass_factory(player, 0)
    await pass_factory("someone-else", 7)

    rows = await EntitlementHandler(db_session).get_pass_rows(player.id)

    assert [row.id for row in rows] == [older.id, newer.id]


async def test_get_pass_balance(
    db_session: AsyncSession,
    player: OwnerIdentity,
    pass_factory: ModelFactory[Entitlement],
    entitlement_factory: ModelFactory[Entitlement],
):
    handler = EntitlementHandler(db_session)
    assert await handler.get_pass_balance(player.id) == 0

    await pass_factory(player, 3)
    await pass_factory(player, 5)
    await pass_factory(player, 10, expires_at=datetime.now(UTC) - timedelta(seconds=1))
    await entitlement_factory(player, kind=EntitlementKind.ERA, value="midway", uses_remaining=9)

    assert await handler.get_pass_balance(player.id) == 8


async def test_get_era_rows(
    db_session: AsyncSession,
    player: OwnerIdentity,
    entitlement_factory: ModelFactory[Entitlement],
):
    row = await entitlement_factory(player, kind=EntitlementKind.ERA, value="pirates")
    await entitlement_factory(player, kind=EntitlementKind.ERA, value="midway")
    await entitlement_factory(player, kind=EntitlementKind.ERA, value="pirates", uses_remaining=0)

    rows = await EntitlementHandler(db_session).get_era_rows(player.id, "pirates")

    assert [r.id for r in rows] == [row.id]


async def test_consume_uses(
    db_session: AsyncSession,
    player: OwnerIdentity,
    pass_factory: ModelFactory[Entitlement],
):
    handler = EntitlementHandler(db_session)
    row = await pass_factory(player, 3)

    assert await handler.consume_uses(row, 2) is True
    assert row.uses_remaining == 1

    assert await handler.consume_uses(row, 2) is False
    assert row.uses_remaining == 1


async def test_consume_uses_never_touches_unlimited_rows(
    db_session: AsyncSession,
    player: OwnerIdentity,
    entitlement_factory: ModelFactory[Entitlement],
):
    row = await entitlement_factory(player, kind=EntitlementKind.ERA, value="pirates")

    assert await EntitlementHandler(db_session).consume_uses(row) is False
    assert row.uses_remaining == -1


async def test_get_by_code(db_session: AsyncSession, voucher_factory: ModelFactory[Voucher]):
    voucher = await voucher_factory(code="pass-10-abcd")
    handler = VoucherHandler(db_session)

    assert (await handler.get_by_code("pass-10-abcd")).id == voucher.id
    assert await handler.code_exists("pass-10-abcd") is True
    assert await handler.code_exists("pass-10-dcba") is False
    with pytest.raises(NotFoundError):
        await handler.get_by_code("pass-10-dcba")


async def test_duplicate_code_is_a_constraint_violation(
    db_session: AsyncSession, voucher_factory: ModelFactory[Voucher]
):
    await voucher_factory(code="pass-10-abcd")

    with pytest.raises(ConstraintViolationError):
        await VoucherHandler(db_session).create(
            Voucher(code="pass-10-abcd", kind=EntitlementKind.PASS, value="voucher", uses=10)
        )


async def test_mark_redeemed_only_once(
    db_session: AsyncSession, voucher_factory: ModelFactory[Voucher]
):
    voucher = await voucher_factory()
    handler = VoucherHandler(db_session)

    assert await handler.mark_redeemed(voucher, "user-1") is True
    assert voucher.redeemed_by == "user-1"
    assert voucher.redeemed_at is not None

    assert await handler.mark_redeemed(voucher, "user-2") is False
    assert voucher.redeemed_by == "user-1"


async def test_find_latest(db_session: AsyncSession, voucher_factory: ModelFactory[Voucher]):
    now = datetime.now(UTC)
    await voucher_factory(
        issued_by="user-1", addressed_to="friend@example.com", created_at=now - timedelta(days=2)
    )
    latest = await voucher_factory(
        issued_by="user-1", addressed_to="friend@example.com", created_at=now - timedelta(days=1)
    )
    await voucher_factory(issued_by="user-2", addressed_to="friend@example.com")

    handler = VoucherHandler(db_session)

    assert (await handler.find_latest("user-1", "friend@example.com")).id == latest.id
    assert await handler.find_latest("user-1", "other@example.com") is None


async def test_find_pending_invitation(
    db_session: AsyncSession, voucher_factory: ModelFactory[Voucher]
):
    now = datetime.now(UTC)
    await voucher_factory(
        issued_by="user-1",
        addressed_to="friend@example.com",
        redeemed_at=now,
        redeemed_by="user-9",
        created_at=now - timedelta(days=3),
    )
    await voucher_factory(
        issued_by="user-4",
        addressed_to="friend@example.com",
        expires_at=now - timedelta(hours=1),
        created_at=now - timedelta(days=4),
    )
    await voucher_factory(addressed_to="friend@example.com", created_at=now - timedelta(days=2))
    oldest_pending = await voucher_factory(
        issued_by="user-2", addressed_to="friend@example.com", created_at=now - timedelta(days=1)
    )
    await voucher_factory(issued_by="user-3", addressed_to="friend@example.com")

    invitation = await VoucherHandler(db_session).find_pending_invitation("friend@example.com")

    assert invitation.id == oldest_pending.id


async def test_get_achievement_reward(
    db_session: AsyncSession, voucher_factory: ModelFactory[Voucher]
):
    handler = VoucherHandler(db_session)
    assert await handler.get_achievement_reward("user-1", "first_win") is None

    voucher = Voucher(
        code="pass-5-abcd",
        kind=EntitlementKind.PASS,
        value="voucher",
        uses=5,
        created_for="user-1",
        reward_for_achievement_id="first_win",
    )
    await handler.create(voucher)

    assert (await handler.get_achievement_reward("user-1", "first_win")).id == voucher.id
    with pytest.raises(ConstraintViolationError):
        await handler.create(
            Voucher(
                code="pass-5-efgh",
                kind=EntitlementKind.PASS,
                value="voucher",
                uses=5,
                created_for="user-1",
                reward_for_achievement_id="first_win",
            )
        )
