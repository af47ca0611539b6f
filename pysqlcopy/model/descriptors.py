"""
pysqlcopy: Copy sequences and table data between relational databases.

This module defines read-only descriptors of database objects as captured in a snapshot.

:see: `pysqlcopy.base.Explorer` for the component that takes a snapshot of a database.
"""

import enum
import re
from dataclasses import dataclass, field
from typing import Optional


@enum.unique
class ColumnKind(enum.Enum):
    "Logical type tag of a column, independent of the database engine."

    TEXT = "text"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    TEMPORAL = "temporal"
    BINARY = "binary"
    LARGE_TEXT = "large-text"
    LARGE_BINARY = "large-binary"
    OTHER = "other"


# checked in order; the first matching pattern wins
_KIND_PATTERNS: list[tuple[re.Pattern[str], ColumnKind]] = [
    (
        re.compile(r"^(n?clob|(tiny|medium|long)?text|ntext|dbclob|long)$"),
        ColumnKind.LARGE_TEXT,
    ),
    (
        re.compile(r"^((tiny|medium|long)?blob|bytea|image|long raw|bfile)$"),
        ColumnKind.LARGE_BINARY,
    ),
    (re.compile(r"^(bool|boolean)$"), ColumnKind.BOOLEAN),
    (
        re.compile(
            r"^(n?char|n?varchar2?|character( varying)?|national char(acter)?( varying)?|string|citext|bpchar|"
            r"nvarchar|sysname|uniqueidentifier|uuid|json|jsonb|xml|enum|set)$"
        ),
        ColumnKind.TEXT,
    ),
    (
        re.compile(
            r"^(tinyint|smallint|mediumint|int|integer|bigint|int2|int4|int8|serial|bigserial|smallserial|"
            r"numeric|decimal|number|dec|float|float4|float8|real|double( precision)?|binary_float|binary_double|"
            r"money|smallmoney)$"
        ),
        ColumnKind.NUMERIC,
    ),
    (
        re.compile(
            r"^(date|time|timetz|timestamp|timestamptz|datetime|datetime2|smalldatetime|datetimeoffset|year|"
            r"interval)"
        ),
        ColumnKind.TEMPORAL,
    ),
    (re.compile(r"^(binary|varbinary|raw|bit varying|varbit)$"), ColumnKind.BINARY),
]


def column_kind(type_name: str) -> ColumnKind:
    """
    Maps a database catalog type name to a logical type tag.

    Length, precision and scale qualifiers are ignored, e.g. `VARCHAR(255)` is the same as `varchar`.

    :param type_name: Type name as reported by the database catalog.
    """

    name = re.sub(r"\(.*?\)", "", type_name.lower()).strip()
    name = re.sub(r"\s+", " ", name)
    name = re.sub(r" (unsigned|signed|zerofill)$", "", name)
    for pattern, kind in _KIND_PATTERNS:
        if pattern.match(name):
            return kind
    return ColumnKind.OTHER


@dataclass(frozen=True)
class ColumnDescriptor:
    """
    A column of a table.

    :param name: Column name as stored in the catalog (case-preserving; compared case-insensitively).
    :param position: Ordinal position of the column in the table, starting at 1.
    :param kind: Logical type tag.
    :param type_name: Database-specific type name as reported by the catalog.
    """

    name: str
    position: int
    kind: ColumnKind
    type_name: str = ""


@dataclass(frozen=True)
class ForeignKeyDescriptor:
    """
    A foreign key constraint.

    :param table: Name of the table that owns (declares) the constraint.
    :param name: Constraint name.
    """

    table: str
    name: str


@dataclass(frozen=True)
class TableDescriptor:
    """
    A table with its columns and the foreign keys it owns.

    :param name: Table name as stored in the catalog.
    :param columns: Columns in declaration order; this order is used when generating `INSERT` statements.
    :param foreign_keys: Foreign key constraints owned by the table.
    """

    name: str
    columns: tuple[ColumnDescriptor, ...]
    foreign_keys: frozenset[ForeignKeyDescriptor] = frozenset()

    def get_column(self, name: str) -> Optional[ColumnDescriptor]:
        "Looks up a column by name, ignoring case."

        key = name.lower()
        for column in self.columns:
            if column.name.lower() == key:
                return column
        return None


@dataclass(frozen=True)
class SequenceDescriptor:
    """
    A sequence. Numeric values are arbitrary-precision integers; some engines allow values beyond 64 bits.

    :param name: Sequence name as stored in the catalog.
    :param start_value: First value the sequence returns.
    :param increment: Step between consecutive values.
    :param min_value: Lower bound.
    :param max_value: Upper bound, `None` if unbounded or unknown.
    :param cache_size: Number of values pre-allocated in memory.
    :param cycle: Whether the sequence wraps around when a bound is reached.
    :param ordered: Whether values are guaranteed to be issued in order (Oracle RAC).
    """

    name: str
    start_value: int
    increment: int = 1
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    cache_size: Optional[int] = None
    cycle: bool = False
    ordered: bool = False


@dataclass
class Snapshot:
    """
    A point-in-time description of the objects in the default schema of a database.

    :param engine: Name of the database engine the snapshot was taken from (e.g. `postgresql`).
    :param tables: Tables in the order reported by the catalog.
    :param sequences: Sequences in the order reported by the catalog.
    """

    engine: str
    tables: list[TableDescriptor] = field(default_factory=list)
    sequences: list[SequenceDescriptor] = field(default_factory=list)

    @property
    def foreign_keys(self) -> list[ForeignKeyDescriptor]:
        "All foreign key constraints in the snapshot, grouped by owning table."

        return [
            fk
            for table in self.tables
            for fk in sorted(table.foreign_keys, key=lambda fk: fk.name)
        ]

    def get_table(self, name: str) -> Optional[TableDescriptor]:
        "Looks up a table by name, ignoring case."

        key = name.lower()
        for table in self.tables:
            if table.name.lower() == key:
                return table
        return None

    def get_sequence(self, name: str) -> Optional[SequenceDescriptor]:
        "Looks up a sequence by name, ignoring case."

        key = name.lower()
        for sequence in self.sequences:
            if sequence.name.lower() == key:
                return sequence
        return None
