import asyncio
from typing import Annotated

import typer
from rich import print

from passbook.conf import Settings
from passbook.db.base import configure_db_engine, session_factory
from passbook.errors import PassbookError
from passbook.identity import OwnerIdentity
from passbook.telemetry import capture_telemetry
from passbook.vouchers import VoucherManager


@capture_telemetry(__name__, "Redeem Voucher")
async def redeem_voucher(
    settings: Settings, owner_id: str, code: str, contact: str | None = None
) -> bool:
    try:
        async with session_factory.begin() as session:
            manager = VoucherManager(session, settings)
            entitlement = await manager.redeem(OwnerIdentity.user(owner_id), code, contact=contact)
    except PassbookError as e:
        print(f"[red]Could not redeem [blue]{code}[/blue]: {e.user_message}[/red]")
        return False

    uses = "unlimited" if entitlement.is_unlimited else entitlement.uses_remaining
    print(
        "[green]Voucher redeemed: [/green]"
        f"[blue]{entitlement.id}[/blue] {entitlement.kind.value} {entitlement.value} ({uses})."
    )
    return True


def command(
    ctx: typer.Context,
    owner_id: str = typer.Argument(..., help="Account id of the player redeeming"),
    code: str = typer.Argument(..., help="Voucher code"),
    contact: Annotated[
        str | None,
        typer.Option("--contact", "-c", help="Contact address of the player"),
    ] = None,
):
    """
    Redeem a voucher code on behalf of a player.
    """
    configure_db_engine(ctx.obj)
    if not asyncio.run(redeem_voucher(ctx.obj, owner_id, code, contact)):
        raise typer.Exit(1)
