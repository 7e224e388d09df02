from datetime import UTC, datetime, timedelta

import pytest
from pytest_mock import MockerFixture
from sqlalchemy.ext.asyncio import AsyncEngine
from typer.testing import CliRunner

from passbook.cli import app
from passbook.commands.pass_balance import pass_balance
from passbook.conf import Settings
from passbook.db.models import Entitlement
from tests.types import ModelFactory


async def test_pass_balance(
    capsys: pytest.CaptureFixture,
    test_settings: Settings,
    pass_factory: ModelFactory[Entitlement],
):
    now = datetime.now(UTC)
    older = await pass_factory("user-1", 3, created_at=now - timedelta(days=1))
    newer = await pass_factory("user-1", 5, expires_at=now + timedelta(days=30))

    balance = await pass_balance(test_settings, "user-1")

    assert balance == 8
    out = capsys.readouterr().out
    assert "holds 8 passes" in out
    assert out.index(older.id) < out.index(newer.id)
    assert "expires never" in out


async def test_pass_balance_empty(
    capsys: pytest.CaptureFixture, test_settings: Settings, db_engine: AsyncEngine
):
    assert await pass_balance(test_settings, "nobody") == 0
    assert "holds 0 passes" in capsys.readouterr().out


def test_pass_balance_command(mocker: MockerFixture, test_settings: Settings):
    mock_balance_coro = mocker.MagicMock()
    mock_pass_balance = mocker.MagicMock(return_value=mock_balance_coro)
    mocker.patch("passbook.commands.pass_balance.pass_balance", mock_pass_balance)
    mocker.patch("passbook.commands.pass_balance.configure_db_engine")
    mock_run = mocker.patch("passbook.commands.pass_balance.asyncio.run")
    runner = CliRunner()

    result = runner.invoke(app, ["pass-balance", "user-1"])

    assert result.exit_code == 0
    mock_run.assert_called_once_with(mock_balance_coro)
    mock_pass_balance.assert_called_once_with(test_settings, "user-1")
