import logging
import ssl
import typing
from collections.abc import Sequence
from typing import Optional

import asyncpg
from asyncpg.cursor import Cursor
from asyncpg.transaction import Transaction

from pysqlcopy.base import BaseConnection, BaseContext, RecordType, ResultStream
from pysqlcopy.connection import ConnectionSSLMode, create_context
from pysqlcopy.util.typing import override

LOGGER = logging.getLogger("pysqlcopy.postgresql")


class PostgreSQLConnection(BaseConnection):
    native: asyncpg.Connection

    @override
    async def open(self) -> BaseContext:
        LOGGER.info("connecting to %s", self.params)

        ssl_mode = self.params.ssl
        if ssl_mode is None or ssl_mode is ConnectionSSLMode.disable:
            return await self._open()
        elif ssl_mode is ConnectionSSLMode.prefer:
            try:
                return await self._open(create_context(ssl_mode))
            except ConnectionError:
                return await self._open()
        elif ssl_mode is ConnectionSSLMode.allow:
            try:
                return await self._open()
            except ConnectionError:
                return await self._open(create_context(ssl_mode))
        elif (
            ssl_mode is ConnectionSSLMode.require
            or ssl_mode is ConnectionSSLMode.verify_ca
            or ssl_mode is ConnectionSSLMode.verify_full
        ):
            return await self._open(create_context(ssl_mode))
        else:
            raise ValueError(f"unsupported SSL mode: {ssl_mode}")

    async def _open(self, ctx: Optional[ssl.SSLContext] = None) -> BaseContext:
        conn = await asyncpg.connect(
            host=self.params.host,
            port=self.params.port,
            user=self.params.username,
            password=self.params.password,
            database=self.params.database,
            ssl=ctx,
        )

        ver = conn.get_server_version()
        LOGGER.info(
            "PostgreSQL version %d.%d.%d %s",
            ver.major,
            ver.minor,
            ver.micro,
            ver.releaselevel,
        )

        self.native = conn
        return PostgreSQLContext(self)

    @override
    async def close(self) -> None:
        await self.native.close()


class PostgreSQLResultStream(ResultStream):
    "Iterates over a server-side cursor; the cursor is released when the enclosing transaction ends."

    cursor: Cursor

    def __init__(
        self,
        cursor: Cursor,
        statement: str,
        columns: tuple[str, ...],
        fetch_size: int,
    ) -> None:
        super().__init__(statement, columns, fetch_size)
        self.cursor = cursor

    @override
    async def _fetch(self) -> Sequence[RecordType]:
        records: list[asyncpg.Record] = await self.cursor.fetch(self.fetch_size)
        return [tuple(record) for record in records]

    @override
    async def close(self) -> None:
        pass


class PostgreSQLContext(BaseContext):
    "Statements run in a transaction started implicitly by the first statement, like in a DB-API driver."

    _transaction: Optional[Transaction]

    def __init__(self, connection: PostgreSQLConnection) -> None:
        super().__init__(connection)
        self._transaction = None

    @property
    def native_connection(self) -> asyncpg.Connection:
        return typing.cast(PostgreSQLConnection, self.connection).native

    async def _begin(self) -> None:
        if self._transaction is None:
            transaction = self.native_connection.transaction()
            await transaction.start()
            self._transaction = transaction

    @override
    async def _execute(self, statement: str) -> None:
        await self._begin()
        await self.native_connection.execute(statement)

    @override
    async def _execute_many(self, statement: str, records: list[RecordType]) -> None:
        await self._begin()
        await self.native_connection.executemany(statement, records)

    @override
    async def _query_all(self, statement: str) -> list[RecordType]:
        await self._begin()
        records: list[asyncpg.Record] = await self.native_connection.fetch(statement)
        return [tuple(record) for record in records]

    @override
    async def _open_stream(self, statement: str, fetch_size: int) -> ResultStream:
        await self._begin()
        stmt = await self.native_connection.prepare(statement)
        columns = tuple(attr.name for attr in stmt.get_attributes())
        cursor = await stmt.cursor(prefetch=fetch_size)
        return PostgreSQLResultStream(cursor, statement, columns, fetch_size)

    @override
    async def _commit(self) -> None:
        transaction, self._transaction = self._transaction, None
        if transaction is not None:
            await transaction.commit()

    @override
    async def _rollback(self) -> None:
        transaction, self._transaction = self._transaction, None
        if transaction is not None:
            await transaction.rollback()
