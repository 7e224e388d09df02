import random

from sqlalchemy import event, exists, select
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Mapper


class HumanReadablePKMixin:
    """
    Mixin for models whose primary key is a prefixed, grouped random number,
    e.g. ``PENT-1234-5678-9012``.
    """

    PK_MAX_RETRIES = 15
    PK_PREFIX = "DEF"
    PK_NUM_LENGTH = 12
    PK_GROUP_SIZE = 4

    @classmethod
    def generate_human_readable_pk(cls) -> str:
        random_number = (
            f"{random.randint(10 ** (cls.PK_NUM_LENGTH - 1), 10**cls.PK_NUM_LENGTH - 1)}"  # nosec: B311
        )
        grouped_number = "-".join(
            random_number[i : i + cls.PK_GROUP_SIZE]
            for i in range(0, len(random_number), cls.PK_GROUP_SIZE)
        )

        return f"{cls.PK_PREFIX}-{grouped_number}"

    @classmethod
    def build_id_regex(cls) -> str:
        groups_count = (cls.PK_NUM_LENGTH + cls.PK_GROUP_SIZE - 1) // cls.PK_GROUP_SIZE
        group_part = (r"-\d{" + str(cls.PK_GROUP_SIZE) + r"}") * groups_count

        return f"^{cls.PK_PREFIX}{group_part}$"


@event.listens_for(HumanReadablePKMixin, "before_insert", propagate=True)
def on_before_insert(mapper: Mapper, connection: Connection, obj: HumanReadablePKMixin) -> None:
    from passbook.db.models import Base

    if not isinstance(obj, Base):  # pragma: no cover
        return

    if obj.id is not None:
        return

    model_cls = obj.__class__

    for _ in range(model_cls.PK_MAX_RETRIES):
        pk = obj.generate_human_readable_pk()
        taken = connection.scalar(select(exists().where(model_cls.id == pk)))
        if not taken:
            obj.id = pk
            return

    raise ValueError(
        f"Unable to generate unique primary key after {model_cls.PK_MAX_RETRIES} attempts."
    )
