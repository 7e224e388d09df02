import pytest
from pytest_mock import MockerFixture
from sqlalchemy.ext.asyncio import AsyncSession
from typer.testing import CliRunner

from passbook.cli import app
from passbook.commands.credit_passes import credit_passes
from passbook.conf import Settings
from passbook.db.handlers import EntitlementHandler
from passbook.enums import PassSource


async def test_credit_passes(
    capsys: pytest.CaptureFixture,
    test_settings: Settings,
    db_session: AsyncSession,
):
    entitlement = await credit_passes(test_settings, "user-1", 15, PassSource.BUNDLE)

    assert entitlement.value == "bundle"
    assert entitlement.uses_remaining == 15
    assert entitlement.id in capsys.readouterr().out
    assert await EntitlementHandler(db_session).get_pass_balance("user-1") == 15


def test_credit_passes_command(mocker: MockerFixture, test_settings: Settings):
    mock_credit_coro = mocker.MagicMock()
    mock_credit_passes = mocker.MagicMock(return_value=mock_credit_coro)
    mocker.patch("passbook.commands.credit_passes.credit_passes", mock_credit_passes)
    mocker.patch("passbook.commands.credit_passes.configure_db_engine")
    mock_run = mocker.patch("passbook.commands.credit_passes.asyncio.run")
    runner = CliRunner()

    result = runner.invoke(app, ["credit-passes", "user-1", "10", "--source", "achievement"])

    assert result.exit_code == 0
    mock_run.assert_called_once_with(mock_credit_coro)
    mock_credit_passes.assert_called_once_with(
        test_settings, "user-1", 10, PassSource.ACHIEVEMENT
    )


def test_credit_passes_command_rejects_zero(mocker: MockerFixture):
    mock_run = mocker.patch("passbook.commands.credit_passes.asyncio.run")
    runner = CliRunner()

    result = runner.invoke(app, ["credit-passes", "user-1", "0"])

    assert result.exit_code != 0
    mock_run.assert_not_called()
