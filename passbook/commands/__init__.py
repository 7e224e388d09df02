from passbook.commands import (
    credit_passes,
    generate_vouchers,
    pass_balance,
    redeem_voucher,
    serve,
)

__all__ = [
    "credit_passes",
    "generate_vouchers",
    "pass_balance",
    "redeem_voucher",
    "serve",
]
