"""
pysqlcopy: Copy sequences and table data between relational databases.

This module implements a connection context on top of a blocking DB-API 2.0 (PEP 249) driver. Each driver call is
dispatched to a worker thread.
"""

import abc
import contextlib
from collections.abc import Sequence
from typing import Any

from .base import BaseContext, RecordType, ResultStream
from .util.dispatch import thread_dispatch
from .util.typing import override


class DBAPIResultStream(ResultStream):
    "A forward-only cursor backed by a DB-API cursor."

    cursor: Any

    def __init__(self, cursor: Any, statement: str, fetch_size: int) -> None:
        columns = tuple(str(item[0]) for item in cursor.description or ())
        super().__init__(statement, columns, fetch_size)
        self.cursor = cursor

    @override
    @thread_dispatch
    def _fetch(self) -> Sequence[RecordType]:
        return self.cursor.fetchmany(self.fetch_size)

    @override
    @thread_dispatch
    def close(self) -> None:
        self.cursor.close()


class DBAPIContext(BaseContext):
    """
    Context for drivers that implement the Python Database API.

    The driver connection must not be in auto-commit mode.
    """

    @property
    @abc.abstractmethod
    def native_connection(self) -> Any: ...

    def _adapt_statement(self, statement: str) -> str:
        "Rewrites a statement into a form the driver accepts. Override in derived classes."

        return statement

    def _prepare_cursor(self, cursor: Any, *, many: bool) -> None:
        "Sets driver-specific cursor options. Override in derived classes."

        pass

    @override
    @thread_dispatch
    def _execute(self, statement: str) -> None:
        with contextlib.closing(self.native_connection.cursor()) as cur:
            self._prepare_cursor(cur, many=False)
            cur.execute(self._adapt_statement(statement))

    @override
    @thread_dispatch
    def _execute_many(self, statement: str, records: list[RecordType]) -> None:
        with contextlib.closing(self.native_connection.cursor()) as cur:
            self._prepare_cursor(cur, many=True)
            cur.executemany(self._adapt_statement(statement), records)

    @override
    @thread_dispatch
    def _query_all(self, statement: str) -> list[RecordType]:
        with contextlib.closing(self.native_connection.cursor()) as cur:
            cur.execute(self._adapt_statement(statement))
            return [tuple(row) for row in cur.fetchall()]

    @thread_dispatch
    def _open_cursor(self, statement: str, fetch_size: int) -> Any:
        cur = self.native_connection.cursor()
        try:
            cur.arraysize = fetch_size
            cur.execute(self._adapt_statement(statement))
        except Exception:
            cur.close()
            raise
        return cur

    @override
    async def _open_stream(self, statement: str, fetch_size: int) -> ResultStream:
        cursor = await self._open_cursor(statement, fetch_size)
        return DBAPIResultStream(cursor, statement, fetch_size)

    @override
    @thread_dispatch
    def _commit(self) -> None:
        self.native_connection.commit()

    @override
    @thread_dispatch
    def _rollback(self) -> None:
        self.native_connection.rollback()
