"""
pysqlcopy: Copy sequences and table data between relational databases.

This module converts values read from a source database into values a target database driver accepts.
"""

import datetime
import numbers
import re
from typing import Any, Iterable, Optional

from ..model.descriptors import ColumnKind

# fully qualified names of driver-specific timestamp representations that are normalized through their text form
TIMESTAMP_TYPES: frozenset[str] = frozenset(["numpy.datetime64"])

# number of characters or bytes read from a large object in a single call
LOB_CHUNK_SIZE = 65536

# value types every driver accepts as a bind parameter
PORTABLE_TYPES: tuple[type, ...] = (
    str,
    bool,
    numbers.Number,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    bytes,
    bytearray,
    memoryview,
)

_LARGE_KINDS = (ColumnKind.LARGE_TEXT, ColumnKind.LARGE_BINARY)

_FRACTION = re.compile(r"\.(\d+)")


def _qualified_name(typ: type) -> str:
    return f"{typ.__module__}.{typ.__qualname__}"


def parse_timestamp(text: str) -> Optional[datetime.datetime]:
    """
    Parses an ISO 8601 timestamp with any number of fractional digits.

    Digits beyond microsecond precision are dropped; `NaT` (not a time) yields `None`.
    """

    if text == "NaT":
        return None
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.datetime.fromisoformat(text)


def is_large_object(value: Any) -> bool:
    "True if the value is a handle to a large object whose content has to be read explicitly."

    return callable(getattr(value, "read", None))


class RowCoercer:
    """
    Converts a single value read from the source into one acceptable for the target.

    Large objects are always materialized into `str` or `bytes` because a handle is only valid as long as the source
    cursor is positioned on the row. Further conversions are applied only when source and target are different
    engines.

    :param timestamp_types: Fully qualified names of value types to convert to `datetime` via their ISO text form.
    :param chunk_size: Number of characters or bytes to read from a large object at a time.
    """

    timestamp_types: frozenset[str]
    chunk_size: int

    def __init__(
        self,
        *,
        timestamp_types: Optional[Iterable[str]] = None,
        chunk_size: int = LOB_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk size must be positive")

        self.timestamp_types = TIMESTAMP_TYPES.union(timestamp_types or ())
        self.chunk_size = chunk_size

    def coerce(
        self,
        value: Any,
        source_kind: ColumnKind,
        target_kind: ColumnKind,
        cross_vendor: bool,
    ) -> Any:
        """
        Converts a value.

        :param value: The value read from the source cursor.
        :param source_kind: The logical type of the source column.
        :param target_kind: The logical type of the target column.
        :param cross_vendor: Whether source and target are different database engines.
        :returns: The value to bind in the target statement.
        """

        if value is None:
            return None

        if source_kind in _LARGE_KINDS or is_large_object(value):
            return self.materialize(value, source_kind)

        if not cross_vendor:
            return value

        value_type = type(value)
        if _qualified_name(value_type) in self.timestamp_types:
            return parse_timestamp(str(value))

        if (
            target_kind is ColumnKind.BOOLEAN
            and isinstance(value, numbers.Number)
            and not isinstance(value, bool)
        ):
            return value != 0

        if isinstance(value, datetime.datetime):
            if value_type is datetime.datetime:
                return value
            return datetime.datetime(
                value.year,
                value.month,
                value.day,
                value.hour,
                value.minute,
                value.second,
                value.microsecond,
                value.tzinfo,
                fold=value.fold,
            )

        if isinstance(value, datetime.date):
            if value_type is datetime.date:
                return value
            return datetime.date(value.year, value.month, value.day)

        if isinstance(value, PORTABLE_TYPES):
            return value

        return str(value)

    def materialize(self, value: Any, kind: ColumnKind) -> Any:
        """
        Reads the full content of a large object into memory.

        Database LOB handles (which report their `size()`) are read with 1-based offsets; file-like objects are read
        until exhausted.
        """

        if isinstance(value, (str, bytes)):
            return value
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        if not is_large_object(value):
            return value

        parts: list[Any] = []
        if callable(getattr(value, "size", None)):
            total = value.size()
            offset = 1
            while offset <= total:
                chunk = value.read(offset, self.chunk_size)
                if not chunk:
                    break
                parts.append(chunk)
                offset += len(chunk)
        else:
            while True:
                chunk = value.read(self.chunk_size)
                if not chunk:
                    break
                parts.append(chunk)

        if not parts:
            return b"" if kind is ColumnKind.LARGE_BINARY else ""
        return parts[0][:0].join(parts)
