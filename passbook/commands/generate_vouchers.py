import asyncio
import logging
from typing import Annotated

import typer
from rich import print

from passbook.conf import Settings
from passbook.db.base import configure_db_engine, session_factory
from passbook.db.models import Voucher
from passbook.enums import VoucherPurpose
from passbook.telemetry import capture_telemetry
from passbook.vouchers import VoucherManager

logger = logging.getLogger(__name__)


def parse_amount(value: str) -> int | str:
    return int(value) if value.isdigit() else value


@capture_telemetry(__name__, "Generate Vouchers")
async def generate_vouchers(
    settings: Settings,
    voucher_type: str,
    amount: int | str,
    count: int,
    purpose: VoucherPurpose,
) -> list[Voucher]:
    async with session_factory.begin() as session:
        manager = VoucherManager(session, settings)
        vouchers = await manager.generate_batch(voucher_type, amount, count, purpose=purpose)

    logger.info(f"Generated {len(vouchers)} {voucher_type} vouchers")
    for voucher in vouchers:
        print(f"[blue]{voucher.code}[/blue]")
    return vouchers


def command(
    ctx: typer.Context,
    voucher_type: Annotated[
        str,
        typer.Option(
            "--type",
            "-t",
            help="`pass` for generic passes, otherwise the era id (e.g. pirates)",
        ),
    ] = "pass",
    amount: Annotated[
        str,
        typer.Option(
            "--amount",
            "-a",
            help="Use-count (10) or duration (days7, week2, month1)",
        ),
    ] = "1",
    count: Annotated[
        int,
        typer.Option("--count", "-n", min=1, help="Number of vouchers to generate"),
    ] = 1,
    purpose: Annotated[
        VoucherPurpose,
        typer.Option("--purpose", "-p", help="Why the vouchers are issued"),
    ] = VoucherPurpose.MANUAL,
):
    """
    Generate a batch of voucher codes.
    """
    configure_db_engine(ctx.obj)
    asyncio.run(generate_vouchers(ctx.obj, voucher_type, parse_amount(amount), count, purpose))
