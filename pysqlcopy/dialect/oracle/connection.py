import logging
import re
import typing

import oracledb

from pysqlcopy.base import BaseConnection, BaseContext
from pysqlcopy.dbapi import DBAPIContext
from pysqlcopy.util.dispatch import thread_dispatch
from pysqlcopy.util.typing import override

LOGGER = logging.getLogger("pysqlcopy.oracle")


class OracleConnection(BaseConnection):
    native: oracledb.Connection

    @override
    @thread_dispatch
    def open(self) -> BaseContext:
        LOGGER.info("connecting to %s", self.params)

        host = self.params.host or "localhost"
        port = self.params.port or 1521
        database = self.params.database or "FREEPDB1"

        conn = oracledb.connect(
            user=self.params.username,
            password=self.params.password,
            dsn=f"{host}:{port}/{database}",
        )
        conn.autocommit = False
        with conn.cursor() as cur:
            cur.execute("ALTER SESSION SET NLS_DATE_FORMAT = 'YYYY-MM-DD HH24:MI:SS'")
        LOGGER.info("Oracle version %s", conn.version)

        self.native = conn
        return OracleContext(self)

    @override
    @thread_dispatch
    def close(self) -> None:
        self.native.close()


class OracleContext(DBAPIContext):
    def __init__(self, connection: OracleConnection) -> None:
        super().__init__(connection)

    @property
    @override
    def native_connection(self) -> oracledb.Connection:
        return typing.cast(OracleConnection, self.connection).native

    @override
    def _adapt_statement(self, statement: str) -> str:
        # PL/SQL blocks end with a semicolon; plain SQL statements must not
        if re.match(r"^\s*(BEGIN|DECLARE)\b", statement, re.IGNORECASE):
            return statement
        return statement.rstrip("\r\n\t\v ;")
