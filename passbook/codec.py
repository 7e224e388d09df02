"""
Voucher code codec.

A voucher code is a copy-pasteable string ``<type>-<amount>-<uuid>``:

* ``type`` is either ``pass`` (fungible credits) or a content unit id,
* ``amount`` is either a use-count (``20``) or a unit letter-sequence followed
  by an integer (``days7``, ``week2``, ``month1``),
* ``uuid`` is the rest of the string, hyphens included.

Everything here is pure: no I/O, no clock.
"""

from __future__ import annotations

import re
import uuid as uuid_lib
from dataclasses import dataclass

from passbook.enums import DurationUnit, EntitlementKind, PassSource
from passbook.errors import InvalidFormat

PASS_TYPE = "pass"

COUNT_RE = re.compile(r"[0-9]+")
DURATION_RE = re.compile(r"([A-Za-z]+)([0-9]+)")

UNIT_ALIASES = {
    "day": DurationUnit.DAY,
    "days": DurationUnit.DAY,
    "week": DurationUnit.WEEK,
    "weeks": DurationUnit.WEEK,
    "month": DurationUnit.MONTH,
    "months": DurationUnit.MONTH,
}


@dataclass(frozen=True)
class GrantDescriptor:
    code: str
    type: str
    kind: EntitlementKind
    value: str
    amount: str
    uuid: str
    uses_remaining: int
    duration_ms: int | None = None
    duration_unit: DurationUnit | None = None
    duration_count: int | None = None

    @property
    def is_time_based(self) -> bool:
        return self.duration_ms is not None

    @property
    def display_text(self) -> str:
        if self.duration_unit is None:
            return f"{self.uses_remaining} plays"
        count = self.duration_count or 0
        plural = "s" if count > 1 else ""
        return f"{count} {self.duration_unit.value}{plural} unlimited"


@dataclass(frozen=True)
class VoucherPreview:
    title: str
    description: str
    kind: EntitlementKind | None = None
    value: str | None = None
    value_type: str | None = None
    display_text: str | None = None

    @property
    def valid(self) -> bool:
        return self.kind is not None


def format_amount(amount: int | str | tuple[DurationUnit | str, int]) -> str:
    """
    Normalizes the amount part of a code.

    Accepts a use-count, a ready-made token such as ``days7`` or a
    ``(unit, count)`` pair.
    """
    if isinstance(amount, bool):
        raise InvalidFormat(f"Invalid voucher amount {amount!r}")
    if isinstance(amount, int):
        if amount < 0:
            raise InvalidFormat(f"Voucher use-count must not be negative, got {amount}")
        return str(amount)
    if isinstance(amount, tuple):
        unit, count = amount
        unit_value = unit.value if isinstance(unit, DurationUnit) else str(unit)
        token = f"{unit_value}{count}"
    else:
        token = str(amount).strip()

    _parse_amount(token)
    return token


def encode(
    kind: EntitlementKind | str,
    amount: int | str | tuple[DurationUnit | str, int],
    uuid: str | None = None,
) -> str:
    if isinstance(kind, EntitlementKind):
        if kind == EntitlementKind.ERA:
            raise InvalidFormat("An era voucher must be encoded with its content unit id")
        type_ = PASS_TYPE
    else:
        type_ = str(kind).strip()

    if not type_ or "-" in type_:
        raise InvalidFormat(f"Invalid voucher type {type_!r}")

    suffix = uuid if uuid is not None else str(uuid_lib.uuid4())
    if not suffix or suffix != suffix.strip():
        raise InvalidFormat(f"Invalid voucher uuid {suffix!r}")

    return f"{type_}-{format_amount(amount)}-{suffix}"


def decode(code: str) -> GrantDescriptor:
    if not isinstance(code, str) or not code.strip():
        raise InvalidFormat("Voucher code is required")

    normalized = code.strip()
    parts = normalized.split("-")
    if len(parts) < 3:
        raise InvalidFormat("Invalid voucher format: must be {type}-{amount}-{uuid}")

    type_, amount = parts[0], parts[1]
    uuid = "-".join(parts[2:])
    if not type_ or not uuid:
        raise InvalidFormat("Invalid voucher format: must be {type}-{amount}-{uuid}")

    uses_remaining, unit, count = _parse_amount(amount)

    if type_ == PASS_TYPE:
        kind, value = EntitlementKind.PASS, PassSource.VOUCHER.value
    else:
        kind, value = EntitlementKind.ERA, type_

    return GrantDescriptor(
        code=normalized,
        type=type_,
        kind=kind,
        value=value,
        amount=amount,
        uuid=uuid,
        uses_remaining=uses_remaining,
        duration_ms=unit.milliseconds * count if unit and count is not None else None,
        duration_unit=unit,
        duration_count=count,
    )


def is_valid(code: str) -> bool:
    try:
        decode(code)
    except InvalidFormat:
        return False
    return True


def describe(code: str) -> VoucherPreview:
    try:
        grant = decode(code)
    except InvalidFormat as e:
        return VoucherPreview(title="Invalid Voucher", description=str(e))

    if grant.kind == EntitlementKind.PASS:
        title = "Generic Passes"
    else:
        title = f"{grant.value.replace('_', ' ').title()} Access"

    return VoucherPreview(
        title=title,
        description=f"Redeem for {grant.display_text}",
        kind=grant.kind,
        value=grant.value,
        value_type="time" if grant.is_time_based else "count",
        display_text=grant.display_text,
    )


def _parse_amount(amount: str) -> tuple[int, DurationUnit | None, int | None]:
    if COUNT_RE.fullmatch(amount):
        return int(amount), None, None

    match = DURATION_RE.fullmatch(amount)
    if not match:
        raise InvalidFormat(f"Invalid amount {amount!r}. Use a count like 10 or a duration like days7")

    unit = UNIT_ALIASES.get(match.group(1).lower())
    if unit is None:
        raise InvalidFormat(f"Unknown time unit {match.group(1)!r}")

    return -1, unit, int(match.group(2))
