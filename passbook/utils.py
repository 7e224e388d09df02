import datetime
import multiprocessing


def get_default_number_of_workers():
    return (multiprocessing.cpu_count() * 2) + 1


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """
    Returns `value` as an aware UTC datetime. Naive values are assumed to
    already be in UTC, which is how every timestamp is written.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value.astimezone(datetime.UTC)


def normalize_contact(contact: str | None) -> str | None:
    if contact is None:
        return None
    contact = contact.strip().lower()
    return contact or None
