import logging
import ssl
import typing
from collections.abc import Sequence
from typing import Optional

import aiomysql
import pymysql

from pysqlcopy.base import BaseConnection, BaseContext, RecordType, ResultStream
from pysqlcopy.connection import ConnectionSSLMode, create_context
from pysqlcopy.util.typing import override

LOGGER = logging.getLogger("pysqlcopy.mysql")


class MySQLConnection(BaseConnection):
    native: aiomysql.Connection

    @override
    async def open(self) -> BaseContext:
        LOGGER.info("connecting to %s (with aiomysql)", self.params)

        ssl_mode = self.params.ssl
        if ssl_mode is None or ssl_mode is ConnectionSSLMode.disable:
            return await self._open()
        elif ssl_mode is ConnectionSSLMode.prefer:
            try:
                return await self._open(create_context(ssl_mode))
            except pymysql.err.OperationalError:
                return await self._open()
        elif ssl_mode is ConnectionSSLMode.allow:
            try:
                return await self._open()
            except pymysql.err.OperationalError:
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
        sql_mode = ",".join(
            [
                "ANSI_QUOTES",
                "NO_AUTO_VALUE_ON_ZERO",
                "STRICT_ALL_TABLES",
            ]
        )
        self.native = await aiomysql.connect(
            host=self.params.host or "localhost",
            port=self.params.port or 3306,
            user=self.params.username,
            password=self.params.password or "",
            db=self.params.database,
            sql_mode=f"'{sql_mode}'",
            init_command='SET @@session.time_zone = "+00:00";',
            autocommit=False,
            ssl=ctx,
        )
        return MySQLContext(self)

    @override
    async def close(self) -> None:
        self.native.close()


class MySQLResultStream(ResultStream):
    "Iterates over an unbuffered cursor, which holds the connection until all rows are consumed or it is closed."

    cursor: aiomysql.SSCursor

    def __init__(self, cursor: aiomysql.SSCursor, statement: str, fetch_size: int) -> None:
        columns = tuple(str(item[0]) for item in cursor.description or ())
        super().__init__(statement, columns, fetch_size)
        self.cursor = cursor

    @override
    async def _fetch(self) -> Sequence[RecordType]:
        return await self.cursor.fetchmany(self.fetch_size)

    @override
    async def close(self) -> None:
        await self.cursor.close()


class MySQLContext(BaseContext):
    def __init__(self, connection: MySQLConnection) -> None:
        super().__init__(connection)

    @property
    def native_connection(self) -> aiomysql.Connection:
        return typing.cast(MySQLConnection, self.connection).native

    @override
    async def _execute(self, statement: str) -> None:
        async with self.native_connection.cursor() as cur:
            await cur.execute(statement)

    @override
    async def _execute_many(self, statement: str, records: list[RecordType]) -> None:
        async with self.native_connection.cursor() as cur:
            await cur.executemany(statement, records)

    @override
    async def _query_all(self, statement: str) -> list[RecordType]:
        async with self.native_connection.cursor() as cur:
            await cur.execute(statement)
            records = await cur.fetchall()
            return [tuple(record) for record in records]

    @override
    async def _open_stream(self, statement: str, fetch_size: int) -> ResultStream:
        cur = await self.native_connection.cursor(aiomysql.SSCursor)
        try:
            await cur.execute(statement)
        except Exception:
            await cur.close()
            raise
        return MySQLResultStream(cur, statement, fetch_size)

    @override
    async def _commit(self) -> None:
        await self.native_connection.commit()

    @override
    async def _rollback(self) -> None:
        await self.native_connection.rollback()
