import asyncio

import typer
from rich import print

from passbook.conf import Settings
from passbook.db.base import configure_db_engine, session_factory
from passbook.db.handlers import EntitlementHandler
from passbook.telemetry import capture_telemetry


@capture_telemetry(__name__, "Pass Balance")
async def pass_balance(settings: Settings, owner_id: str) -> int:
    async with session_factory() as session:
        entitlements = EntitlementHandler(session)
        balance = await entitlements.get_pass_balance(owner_id)
        rows = await entitlements.get_pass_rows(owner_id)

    print(f"[blue]{owner_id}[/blue] holds [green]{balance}[/green] passes.")
    for row in rows:
        expiry = row.expires_at.strftime("%Y-%m-%d") if row.expires_at else "never"
        print(f"  [blue]{row.id}[/blue] {row.value}: {row.uses_remaining} (expires {expiry})")
    return balance


def command(
    ctx: typer.Context,
    owner_id: str = typer.Argument(..., help="Account id of the player"),
):
    """
    Show the pass balance of a player, oldest passes first.
    """
    configure_db_engine(ctx.obj)
    asyncio.run(pass_balance(ctx.obj, owner_id))
