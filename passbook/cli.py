import inspect

import typer

from passbook import commands
from passbook.conf import get_settings
from passbook.logging import setup_logging
from passbook.telemetry import setup_telemetry

app = typer.Typer(
    help="Passbook entitlement and voucher engine Command Line Interface",
    add_completion=False,
    rich_markup_mode="rich",
)


for name, module in inspect.getmembers(commands):
    if not inspect.ismodule(module):
        continue

    if hasattr(module, "command"):
        app.command(name=name.replace("_", "-"))(module.command)


@app.callback()
def main(
    ctx: typer.Context,
):
    ctx.obj = get_settings()
    setup_logging(ctx.obj)
    setup_telemetry(ctx.obj)
