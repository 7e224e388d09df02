"""
Domain errors raised by the entitlement engine.

Every error carries a short ``user_message`` safe to show to a player and the
HTTP status the API answers with. Internal details only go to ``str(error)``
and the logs.
"""

import contextlib
import logging

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError

from passbook.db.handlers import DatabaseError

logger = logging.getLogger(__name__)


class PassbookError(Exception):
    user_message = "Something went wrong. Please try again."
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class InvalidFormat(PassbookError):
    user_message = "That voucher code doesn't look right. Please check it and try again."
    status_code = status.HTTP_400_BAD_REQUEST


class VoucherNotFound(PassbookError):
    user_message = "We couldn't find that voucher code."
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyRedeemed(PassbookError):
    user_message = "This voucher code has already been used."
    status_code = status.HTTP_409_CONFLICT


class Expired(PassbookError):
    user_message = "This voucher code has expired."
    status_code = status.HTTP_410_GONE


class PermissionDenied(PassbookError):
    user_message = "You are not allowed to do that."
    status_code = status.HTTP_403_FORBIDDEN


class InsufficientBalance(PassbookError):
    user_message = "You don't have enough passes. Get more passes to keep playing."
    status_code = status.HTTP_402_PAYMENT_REQUIRED


class ExclusiveLocked(PassbookError):
    user_message = "This era requires a voucher or a purchase."
    status_code = status.HTTP_403_FORBIDDEN


class StorageFailure(PassbookError):
    user_message = "We couldn't complete that right now. Please try again in a moment."
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class UnknownContentUnit(PassbookError):
    user_message = "That era doesn't exist."
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyRewarded(PassbookError):
    user_message = "This reward has already been granted."
    status_code = status.HTTP_409_CONFLICT


@contextlib.contextmanager
def wrap_storage_errors(operation: str):
    """
    Turns storage-layer failures raised inside the block into `StorageFailure`.
    """
    try:
        yield
    except (DatabaseError, SQLAlchemyError) as e:
        logger.exception(f"{operation} failed in the storage layer")
        raise StorageFailure(f"{operation} failed: {e}") from e
