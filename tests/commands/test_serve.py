import multiprocessing

from pytest_mock import MockerFixture
from typer.testing import CliRunner

from passbook.cli import app
from passbook.commands.serve import get_gunicorn_options
from passbook.conf import Settings
from passbook.main import app as fastapi_app


def test_serve(mocker: MockerFixture):
    mocker.patch(
        "passbook.commands.serve.get_logging_config",
        return_value={"logging": "config"},
    )
    mocked_app = mocker.MagicMock()
    mocked_application = mocker.patch(
        "passbook.commands.serve.PassbookApplication", return_value=mocked_app
    )
    runner = CliRunner()

    result = runner.invoke(app, ["serve"])

    assert result.exit_code == 0
    mocked_application.assert_called_once_with(
        fastapi_app,
        {
            "bind": "127.0.0.1:8000",
            "workers": (multiprocessing.cpu_count() * 2) + 1,
            "worker_class": "uvicorn.workers.UvicornWorker",
            "timeout": 30,
            "proc_name": "passbook",
            "logconfig_dict": {"logging": "config"},
            "reload": False,
        },
    )
    mocked_app.run.assert_called_once()


def test_serve_with_options(mocker: MockerFixture, test_settings: Settings):
    test_settings.serve_workers = 4
    mocker.patch(
        "passbook.commands.serve.get_logging_config",
        return_value={"logging": "config"},
    )
    mocked_application = mocker.patch("passbook.commands.serve.PassbookApplication")
    runner = CliRunner()

    result = runner.invoke(
        app, ["serve", "--host", "0.0.0.0", "--port", "8080", "--workers", "2", "--reload"]
    )

    assert result.exit_code == 0
    options = mocked_application.call_args.args[1]
    assert options["bind"] == "0.0.0.0:8080"
    assert options["workers"] == 2
    assert options["reload"] is True


def test_serve_rejects_zero_workers(mocker: MockerFixture):
    mocked_application = mocker.patch("passbook.commands.serve.PassbookApplication")
    runner = CliRunner()

    result = runner.invoke(app, ["serve", "--workers", "0"])

    assert result.exit_code != 0
    mocked_application.assert_not_called()


def test_gunicorn_options_from_settings(test_settings: Settings):
    test_settings.serve_host = "0.0.0.0"
    test_settings.serve_port = 9000
    test_settings.serve_workers = 3
    test_settings.serve_worker_timeout_seconds = 120

    options = get_gunicorn_options(test_settings)

    assert options["bind"] == "0.0.0.0:9000"
    assert options["workers"] == 3
    assert options["timeout"] == 120
    assert options["proc_name"] == "passbook"
    assert options["logconfig_dict"]["version"] == 1
    assert options["reload"] is False
