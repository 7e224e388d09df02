from collections.abc import Callable
from typing import Annotated, Any

import typer
from gunicorn.app.base import BaseApplication

from passbook.conf import Settings
from passbook.logging import get_logging_config
from passbook.utils import get_default_number_of_workers


class PassbookApplication(BaseApplication):  # pragma: no cover
    def __init__(self, application: Callable, options: dict[str, Any] | None = None):
        self.options = options or {}
        self.application = application
        super().__init__()

    def load_config(self):
        for key, value in self.options.items():
            if key in self.cfg.settings and value is not None:
                self.cfg.set(key.lower(), value)

    def load(self):
        return self.application


def get_gunicorn_options(
    settings: Settings,
    host: str | None = None,
    port: int | None = None,
    workers: int | None = None,
    reload: bool = False,
) -> dict[str, Any]:
    """
    Command line values win over the `PASSBOOK_SERVE_*` settings.
    """
    host = host or settings.serve_host
    port = port or settings.serve_port
    workers = workers or settings.serve_workers or get_default_number_of_workers()
    return {
        "bind": f"{host}:{port}",
        "workers": workers,
        "worker_class": "uvicorn.workers.UvicornWorker",
        "timeout": settings.serve_worker_timeout_seconds,
        "proc_name": "passbook",
        "logconfig_dict": get_logging_config(settings),
        "reload": reload,
    }


def command(
    ctx: typer.Context,
    host: Annotated[
        str | None,
        typer.Option("--host", "-h", help="Host to bind to. Default: PASSBOOK_SERVE_HOST"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Port to bind to. Default: PASSBOOK_SERVE_PORT"),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option(
            "--workers",
            "-w",
            min=1,
            help="Number of workers. Default: PASSBOOK_SERVE_WORKERS or 2 * CPUs + 1",
        ),
    ] = None,
    dev: Annotated[
        bool,
        typer.Option("--reload", "-r", help="Enable auto-reload.", show_default=True),
    ] = False,
):
    """
    Run the entitlement API with Gunicorn and Uvicorn workers.
    """
    from passbook.main import app

    options = get_gunicorn_options(ctx.obj, host=host, port=port, workers=workers, reload=dev)
    PassbookApplication(app, options).run()
