import os
import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

os.environ.setdefault("PASSBOOK_AUTH_JWT_SECRET", "test_jwt_secret")

import jwt  # noqa: E402
import pytest  # noqa: E402
from faker import Faker  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession  # noqa: E402

from passbook.conf import Settings, get_settings  # noqa: E402
from passbook.db.base import configure_db_engine, session_factory  # noqa: E402
from passbook.db.models import UNLIMITED_USES, Base, Entitlement, Voucher  # noqa: E402
from passbook.enums import AccountKind, EntitlementKind, PassSource  # noqa: E402
from passbook.identity import OwnerIdentity  # noqa: E402
from passbook.policies import ContentPolicy, ContentPolicyCache, StaticPolicySource  # noqa: E402
from tests.types import JWTTokenFactory, ModelFactory  # noqa: E402

TEST_POLICIES = [
    ContentPolicy(unit_id="traditional", name="Traditional Battle"),
    ContentPolicy(unit_id="midway", name="Midway Island", passes_required=1),
    ContentPolicy(unit_id="atlantic", name="Battle of the Atlantic", passes_required=4),
    ContentPolicy(unit_id="coral_sea", name="Coral Sea", passes_required=5),
    ContentPolicy(
        unit_id="pirates",
        name="Pirates of the Gulf",
        exclusive=True,
        exclusive_label="PIRATE",
    ),
]


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        auth_jwt_secret="test_jwt_secret",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'passbook.db'}",
        policy_file=tmp_path / "eras.json",
        cli_rich_logging=False,
    )


@pytest.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    engine = configure_db_engine(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def policy_cache() -> ContentPolicyCache:
    return ContentPolicyCache(StaticPolicySource(TEST_POLICIES), ttl_seconds=300)


@pytest.fixture
def fastapi_app(test_settings: Settings, policy_cache: ContentPolicyCache) -> FastAPI:
    from passbook.main import app

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.state.policy_cache = policy_cache
    return app


@pytest.fixture
async def api_client(
    fastapi_app: FastAPI,
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=fastapi_app),
        base_url="http://localhost/",
    ) as client:
        yield client


@pytest.fixture
def player(faker: Faker) -> OwnerIdentity:
    return OwnerIdentity.user(f"user-{faker.uuid4()}")


@pytest.fixture
def other_player(faker: Faker) -> OwnerIdentity:
    return OwnerIdentity.user(f"user-{faker.uuid4()}")


@pytest.fixture
def guest(faker: Faker) -> OwnerIdentity:
    return OwnerIdentity(id=f"guest-{faker.uuid4()}", kind=AccountKind.GUEST)


@pytest.fixture
def system_identity() -> OwnerIdentity:
    return OwnerIdentity.system("billing")


@pytest.fixture
def entitlement_factory(db_session: AsyncSession) -> ModelFactory[Entitlement]:
    async def _entitlement(
        owner: OwnerIdentity | str,
        kind: EntitlementKind = EntitlementKind.PASS,
        value: str | None = None,
        uses_remaining: int = UNLIMITED_USES,
        expires_at: datetime | None = None,
        purchase_ref: str | None = None,
        voucher_ref: str | None = None,
        created_at: datetime | None = None,
    ) -> Entitlement:
        entitlement = Entitlement(
            owner_id=owner.id if isinstance(owner, OwnerIdentity) else owner,
            kind=kind,
            value=value or PassSource.ADMIN.value,
            uses_remaining=uses_remaining,
            expires_at=expires_at,
            purchase_ref=purchase_ref,
            voucher_ref=voucher_ref,
        )
        if created_at is not None:
            entitlement.created_at = created_at
        db_session.add(entitlement)
        await db_session.commit()
        await db_session.refresh(entitlement)
        return entitlement

    return _entitlement


@pytest.fixture
def pass_factory(entitlement_factory: ModelFactory[Entitlement]) -> ModelFactory[Entitlement]:
    async def _pass(owner: OwnerIdentity | str, amount: int, **kwargs) -> Entitlement:
        return await entitlement_factory(
            owner, kind=EntitlementKind.PASS, uses_remaining=amount, **kwargs
        )

    return _pass


@pytest.fixture
def voucher_factory(db_session: AsyncSession) -> ModelFactory[Voucher]:
    async def _voucher(
        code: str | None = None,
        kind: EntitlementKind = EntitlementKind.PASS,
        value: str = "voucher",
        uses: int | None = 10,
        duration_ms: int | None = None,
        purpose: str | None = "manual",
        issued_by: str | None = None,
        addressed_to: str | None = None,
        created_for: str | None = None,
        signup_bonus: int = 0,
        expires_at: datetime | None = None,
        redeemed_at: datetime | None = None,
        redeemed_by: str | None = None,
        created_at: datetime | None = None,
    ) -> Voucher:
        if code is None:
            amount = uses if duration_ms is None else f"days{duration_ms // 86_400_000}"
            code = f"{'pass' if kind == EntitlementKind.PASS else value}-{amount}-{uuid.uuid4()}"
        voucher = Voucher(
            code=code,
            kind=kind,
            value=value,
            uses=uses if duration_ms is None else None,
            duration_ms=duration_ms,
            purpose=purpose,
            issued_by=issued_by,
            addressed_to=addressed_to,
            created_for=created_for,
            signup_bonus=signup_bonus,
            expires_at=expires_at,
            redeemed_at=redeemed_at,
            redeemed_by=redeemed_by,
        )
        if created_at is not None:
            voucher.created_at = created_at
        db_session.add(voucher)
        await db_session.commit()
        await db_session.refresh(voucher)
        return voucher

    return _voucher


@pytest.fixture
def jwt_token_factory() -> JWTTokenFactory:
    def _jwt_token(
        subject: str,
        secret: str | None = None,
        account_kind: AccountKind | None = None,
        email: str | None = None,
        exp: datetime | None = None,
        iat: datetime | None = None,
        nbf: datetime | None = None,
    ) -> str:
        now = datetime.now(UTC)
        claims = {
            "sub": subject,
            "iat": iat or now,
            "nbf": nbf or now,
            "exp": exp or now + timedelta(minutes=5),
        }
        if account_kind is not None:
            claims["account_kind"] = account_kind.value
        if email is not None:
            claims["email"] = email

        return jwt.encode(claims, secret or "test_jwt_secret", algorithm="HS256")

    return _jwt_token


@pytest.fixture
def auth_headers_factory(jwt_token_factory: JWTTokenFactory) -> Callable[..., dict[str, str]]:
    def _auth_headers(owner: OwnerIdentity, email: str | None = None) -> dict[str, str]:
        token = jwt_token_factory(owner.id, account_kind=owner.kind, email=email)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
