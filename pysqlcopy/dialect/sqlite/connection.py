import logging
import sqlite3
import typing

from pysqlcopy.base import BaseConnection, BaseContext
from pysqlcopy.dbapi import DBAPIContext
from pysqlcopy.util.dispatch import thread_dispatch
from pysqlcopy.util.typing import override

LOGGER = logging.getLogger("pysqlcopy.sqlite")


class SQLiteConnection(BaseConnection):
    """
    Represents a connection to an SQLite database file.

    The database parameter is a file path, or `:memory:` for a transient in-memory database.
    """

    native: sqlite3.Connection

    @override
    @thread_dispatch
    def open(self) -> BaseContext:
        database = self.params.database or ":memory:"
        LOGGER.info("connecting to %s", database)

        # statements run in an implicitly started transaction until `commit` or `rollback`
        conn = sqlite3.connect(database, check_same_thread=False)
        conn.execute("PRAGMA foreign_keys = ON")
        LOGGER.info("SQLite version %s", sqlite3.sqlite_version)

        self.native = conn
        return SQLiteContext(self)

    @override
    @thread_dispatch
    def close(self) -> None:
        self.native.close()


class SQLiteContext(DBAPIContext):
    def __init__(self, connection: SQLiteConnection) -> None:
        super().__init__(connection)

    @property
    @override
    def native_connection(self) -> sqlite3.Connection:
        return typing.cast(SQLiteConnection, self.connection).native
