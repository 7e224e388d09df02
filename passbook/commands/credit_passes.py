import asyncio
from typing import Annotated

import typer
from rich import print

from passbook.conf import Settings
from passbook.db.base import configure_db_engine, session_factory
from passbook.db.models import Entitlement
from passbook.enums import PassSource
from passbook.grants import GrantService
from passbook.identity import OwnerIdentity
from passbook.telemetry import capture_telemetry


@capture_telemetry(__name__, "Credit Passes")
async def credit_passes(
    settings: Settings, owner_id: str, amount: int, source: PassSource
) -> Entitlement:
    async with session_factory.begin() as session:
        grants = GrantService(session, settings)
        entitlement = await grants.credit_passes(OwnerIdentity.user(owner_id), amount, source)

    print(
        f"[green]Credited {amount} passes to [/green][blue]{owner_id}[/blue] "
        f"([blue]{entitlement.id}[/blue])."
    )
    return entitlement


def command(
    ctx: typer.Context,
    owner_id: str = typer.Argument(..., help="Account id of the player"),
    amount: int = typer.Argument(..., min=1, help="Number of passes"),
    source: Annotated[
        PassSource,
        typer.Option("--source", "-s", help="Where the passes come from"),
    ] = PassSource.ADMIN,
):
    """
    Credit passes to a player.
    """
    configure_db_engine(ctx.obj)
    asyncio.run(credit_passes(ctx.obj, owner_id, amount, source))
