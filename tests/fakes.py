"""
In-memory stand-ins for database connections that record the statements executed against them.
"""

import re
from collections.abc import Sequence
from typing import Iterable, Optional

from pysqlcopy.base import BaseConnection, BaseContext, BasePolicy, RecordType, ResultStream
from pysqlcopy.connection import ConnectionParameters
from pysqlcopy.model.descriptors import ColumnDescriptor, TableDescriptor, column_kind
from pysqlcopy.util.typing import override


def table(name: str, *columns: str) -> TableDescriptor:
    "Creates a table descriptor from `name:type` column specifications."

    descriptors = []
    for position, spec in enumerate(columns, start=1):
        column_name, _, type_name = spec.partition(":")
        type_name = type_name or "integer"
        descriptors.append(ColumnDescriptor(column_name, position, column_kind(type_name), type_name))
    return TableDescriptor(name, tuple(descriptors))


class FakeResultStream(ResultStream):
    context: "RecordingContext"
    rows: list[RecordType]
    offset: int

    def __init__(
        self,
        context: "RecordingContext",
        statement: str,
        columns: tuple[str, ...],
        rows: list[RecordType],
        fetch_size: int,
    ) -> None:
        super().__init__(statement, columns, fetch_size)
        self.context = context
        self.rows = rows
        self.offset = 0

    @override
    async def _fetch(self) -> Sequence[RecordType]:
        chunk = self.rows[self.offset : self.offset + self.fetch_size]
        self.offset += len(chunk)
        return chunk

    @override
    async def close(self) -> None:
        self.context.events.append("CLOSE")


class RecordingConnection(BaseConnection):
    context: "RecordingContext"

    def __init__(self, policy: BasePolicy) -> None:
        super().__init__(policy, ConnectionParameters(), log_sql=False)
        self.context = RecordingContext(self)

    @override
    async def open(self) -> BaseContext:
        return self.context

    @override
    async def close(self) -> None:
        pass


class RecordingContext(BaseContext):
    """
    Records statements, batches and transaction boundaries in `events`.

    Tables served to queries are registered in `data`; a statement that contains any of the strings in `failures`
    raises an error.
    """

    events: list[str]
    data: dict[str, tuple[tuple[str, ...], list[RecordType]]]
    inserted: dict[str, list[RecordType]]
    failures: list[str]

    def __init__(self, connection: RecordingConnection) -> None:
        super().__init__(connection)
        self.events = []
        self.data = {}
        self.inserted = {}
        self.failures = []

    @classmethod
    def create(cls, policy: BasePolicy, failures: Optional[Iterable[str]] = None) -> "RecordingContext":
        context = RecordingConnection(policy).context
        if failures:
            context.failures.extend(failures)
        return context

    def add_table(self, name: str, columns: tuple[str, ...], rows: list[RecordType]) -> None:
        self.data[name] = (columns, rows)

    def _check(self, statement: str) -> None:
        for failure in self.failures:
            if failure in statement:
                raise RuntimeError(f"injected failure: {failure}")

    def _table_of(self, statement: str) -> str:
        m = re.search(r'(?:FROM|INTO) "([^"]+)"', statement)
        if m is None:
            raise ValueError(f"no table in statement: {statement}")
        return m.group(1)

    @override
    async def _execute(self, statement: str) -> None:
        self.events.append(statement)
        self._check(statement)

    @override
    async def _execute_many(self, statement: str, records: list[RecordType]) -> None:
        name = self._table_of(statement)
        self.events.append(f"BATCH {name} {len(records)}")
        self._check(statement)
        self.inserted.setdefault(name, []).extend(records)

    @override
    async def _query_all(self, statement: str) -> list[RecordType]:
        self._check(statement)
        _, rows = self.data[self._table_of(statement)]
        return [(len(rows),)]

    @override
    async def _open_stream(self, statement: str, fetch_size: int) -> ResultStream:
        self._check(statement)
        columns, rows = self.data[self._table_of(statement)]
        return FakeResultStream(self, statement, columns, rows, fetch_size)

    @override
    async def _commit(self) -> None:
        self.events.append("COMMIT")

    @override
    async def _rollback(self) -> None:
        self.events.append("ROLLBACK")
