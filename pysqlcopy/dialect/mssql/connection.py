import logging
import typing
from typing import Any

import pyodbc

from pysqlcopy.base import BaseConnection, BaseContext
from pysqlcopy.dbapi import DBAPIContext
from pysqlcopy.util.dispatch import thread_dispatch
from pysqlcopy.util.typing import override

LOGGER = logging.getLogger("pysqlcopy.mssql")


class MSSQLConnection(BaseConnection):
    """
    Represents a connection to a Microsoft SQL Server.
    """

    native: pyodbc.Connection

    @override
    @thread_dispatch
    def open(self) -> BaseContext:
        LOGGER.info("connecting to %s", self.params)
        params = {
            "DRIVER": "{ODBC Driver 18 for SQL Server}",
            "SERVER": (
                f"{self.params.host},{self.params.port}"
                if self.params.port is not None
                else self.params.host
            ),
            "UID": self.params.username,
            "PWD": self.params.password,
            "TrustServerCertificate": "yes",
        }
        if self.params.database is not None:
            params["DATABASE"] = self.params.database
        conn_string = ";".join(
            f"{key}={value}" for key, value in params.items() if value is not None
        )
        conn = pyodbc.connect(conn_string, autocommit=False)
        cur = conn.cursor()
        try:
            for row in cur.execute("SELECT @@VERSION").fetchall():
                LOGGER.info(row[0])
        finally:
            cur.close()

        self.native = conn
        return MSSQLContext(self)

    @override
    @thread_dispatch
    def close(self) -> None:
        self.native.close()


class MSSQLContext(DBAPIContext):
    def __init__(self, connection: MSSQLConnection) -> None:
        super().__init__(connection)

    @property
    @override
    def native_connection(self) -> pyodbc.Connection:
        return typing.cast(MSSQLConnection, self.connection).native

    @override
    def _prepare_cursor(self, cursor: Any, *, many: bool) -> None:
        if many:
            cursor.fast_executemany = True
