"""Column types that keep every stored instant in UTC."""
from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from live_auction.clock import to_utc


class UTCDateTime(TypeDecorator):
    """DateTime that is always written as UTC and always read back timezone-aware.

    SQLite drops tzinfo on the way in, so values are stored as naive UTC there and
    the zone is re-attached on the way out. Postgres gets a real timestamptz.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:  # noqa: ANN001
        if value is None:
            return None
        value = to_utc(value)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:  # noqa: ANN001
        if value is None:
            return None
        return to_utc(value)
