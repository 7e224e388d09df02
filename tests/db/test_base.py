from pytest_mock import MockerFixture
from sqlalchemy.ext.asyncio import AsyncEngine

from passbook.conf import Settings
from passbook.db.base import configure_db_engine, verify_db_connection


async def test_verify_db_connection(db_engine: AsyncEngine, test_settings: Settings):
    await verify_db_connection(test_settings)


async def test_configure_db_engine_postgres_options(mocker: MockerFixture, test_settings: Settings):
    test_settings.database_url = None
    mocked_create_engine = mocker.patch("passbook.db.base.create_async_engine")
    mocker.patch("passbook.db.base.session_factory")

    configure_db_engine(test_settings)

    mocked_create_engine.assert_called_once_with(
        str(test_settings.postgres_async_url),
        echo=False,
        pool_pre_ping=True,
        pool_recycle=280,
    )
