import pytest
from sqlalchemy.exc import OperationalError

from passbook.db.handlers import NotFoundError
from passbook.errors import (
    AlreadyRedeemed,
    AlreadyRewarded,
    ExclusiveLocked,
    Expired,
    InsufficientBalance,
    InvalidFormat,
    PassbookError,
    PermissionDenied,
    StorageFailure,
    UnknownContentUnit,
    VoucherNotFound,
    wrap_storage_errors,
)


@pytest.mark.parametrize(
    ("error_cls", "status_code"),
    [
        (InvalidFormat, 400),
        (VoucherNotFound, 404),
        (AlreadyRedeemed, 409),
        (Expired, 410),
        (PermissionDenied, 403),
        (InsufficientBalance, 402),
        (ExclusiveLocked, 403),
        (StorageFailure, 503),
        (UnknownContentUnit, 404),
        (AlreadyRewarded, 409),
    ],
)
def test_error_status_codes(error_cls: type[PassbookError], status_code: int):
    error = error_cls("internal detail")

    assert isinstance(error, PassbookError)
    assert error.status_code == status_code
    assert str(error) == "internal detail"
    assert "internal detail" not in error.user_message


def test_error_without_message_uses_user_message():
    assert str(Expired()) == Expired.user_message


@pytest.mark.parametrize(
    "exc",
    [
        NotFoundError("gone"),
        OperationalError("SELECT 1", {}, Exception("database is locked")),
    ],
)
def test_wrap_storage_errors(exc: Exception):
    with pytest.raises(StorageFailure, match="Lookup failed") as exc_info:
        with wrap_storage_errors("Lookup"):
            raise exc

    assert exc_info.value.__cause__ is exc


def test_wrap_storage_errors_lets_domain_errors_through():
    with pytest.raises(AlreadyRedeemed):
        with wrap_storage_errors("Redemption"):
            raise AlreadyRedeemed()
