"""
pysqlcopy: Copy sequences and table data between relational databases.

This module defines base classes to create a connection, execute and stream SQL, discover database objects, and
capture the behavior specific to a database engine.
"""

import abc
import contextlib
import logging
import types
from collections.abc import Sequence
from typing import Any, AsyncIterator, Optional

from .connection import ConnectionParameters
from .errors import VendorUnsupportedError
from .model.descriptors import (
    ColumnDescriptor,
    ColumnKind,
    ForeignKeyDescriptor,
    SequenceDescriptor,
    Snapshot,
    TableDescriptor,
    column_kind,
)

RecordType = Sequence[Any]

LOGGER = logging.getLogger("pysqlcopy")
SQL_LOGGER = logging.getLogger("pysqlcopy.sql")

# number of rows retrieved from the server in a single round trip when streaming a result-set
FETCH_SIZE = 1000

ID_QUOTE_CHAR = '"'

BIGINT_MAX = 2**63 - 1

# the largest sequence bound an engine accepts; a sequence whose maximum equals this value is effectively unbounded
SEQUENCE_MAX_BOUNDS: dict[str, int] = {
    "oracle": 10**28 - 1,  # 28 digits
    "postgresql": BIGINT_MAX,
    "mssql": BIGINT_MAX,
}


class QueryException(RuntimeError):
    query: str

    def __init__(self, query: str) -> None:
        super().__init__()
        self.query = query

    def __str__(self) -> str:
        query = f"{self.query[:1000]}..." if len(self.query) > 1000 else self.query
        return f"error executing query:\n{query}"


class BasePolicy(abc.ABC):
    """
    Captures the behavioral facts of a database engine: identifier quoting, statement forms for truncating tables,
    suspending foreign key checks and triggers, and creating sequences.

    Engines that have no way to toggle foreign key checks raise `VendorUnsupportedError` when the statements are
    requested. Engines that have no way to toggle triggers return an empty list of statements.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str: ...

    @property
    def foreign_key_toggle_optional(self) -> bool:
        "True if a failure to toggle foreign key checks is to be logged rather than treated as fatal."

        return False

    def quote(self, name: str) -> str:
        "Quotes an identifier to be embedded in a SQL statement."

        return ID_QUOTE_CHAR + name.replace(ID_QUOTE_CHAR, 2 * ID_QUOTE_CHAR) + ID_QUOTE_CHAR

    @abc.abstractmethod
    def placeholder(self, index: int) -> str:
        """
        Returns a placeholder for a positional argument in a prepared statement.

        :param index: An index starting at 1 for the first position.
        """
        ...

    def max_sequence_bound(self) -> Optional[int]:
        "The largest maximum value a sequence may have, or `None` if the engine imposes no known limit."

        return SEQUENCE_MAX_BOUNDS.get(self.name)

    def get_count_stmt(self, table: str) -> str:
        return f"SELECT COUNT(*) FROM {self.quote(table)}"

    def get_select_stmt(self, table: str) -> str:
        return f"SELECT * FROM {self.quote(table)}"

    def get_insert_stmt(self, table: TableDescriptor) -> str:
        "Returns a SQL statement to insert a row into a table, with columns in declaration order."

        column_list = ", ".join(self.quote(column.name) for column in table.columns)
        value_list = ", ".join(
            self.placeholder(index) for index, _ in enumerate(table.columns, start=1)
        )
        return f"INSERT INTO {self.quote(table.name)} ({column_list}) VALUES ({value_list})"

    def get_truncate_stmt(self, table: str, foreign_keys_disabled: bool) -> str:
        """
        Returns a SQL statement that removes all rows from a table.

        :param table: The table to empty.
        :param foreign_keys_disabled: Whether foreign key checks are currently suspended.
        """

        return f"DELETE FROM {self.quote(table)}"

    def get_disable_foreign_keys_stmts(
        self, foreign_keys: list[ForeignKeyDescriptor]
    ) -> list[str]:
        raise VendorUnsupportedError(self.name, "disabling foreign keys")

    def get_enable_foreign_keys_stmts(
        self, foreign_keys: list[ForeignKeyDescriptor]
    ) -> list[str]:
        raise VendorUnsupportedError(self.name, "enabling foreign keys")

    def get_disable_triggers_stmts(self) -> list[str]:
        return []

    def get_enable_triggers_stmts(self) -> list[str]:
        return []

    def get_create_sequence_stmt(self, sequence: SequenceDescriptor) -> str:
        "Returns a SQL statement that creates a sequence with exactly the given attributes."

        clauses: list[Optional[str]] = [
            f"CREATE SEQUENCE {self.quote(sequence.name)}",
            f"START WITH {sequence.start_value}",
            f"INCREMENT BY {sequence.increment}",
            (
                f"MINVALUE {sequence.min_value}"
                if sequence.min_value is not None
                else None
            ),
            (
                f"MAXVALUE {sequence.max_value}"
                if sequence.max_value is not None
                else None
            ),
            self.cache_clause(sequence.cache_size),
            self.cycle_clause(sequence.cycle),
            self.order_clause(sequence.ordered),
        ]
        return " ".join(clause for clause in clauses if clause)

    def get_drop_sequence_stmt(self, sequence: str) -> str:
        return f"DROP SEQUENCE {self.quote(sequence)}"

    def cache_clause(self, cache_size: Optional[int]) -> Optional[str]:
        if cache_size is not None and cache_size > 0:
            return f"CACHE {cache_size}"
        else:
            return None

    def cycle_clause(self, cycle: bool) -> Optional[str]:
        return "CYCLE" if cycle else "NO CYCLE"

    def order_clause(self, ordered: bool) -> Optional[str]:
        return None


class BaseConnection(abc.ABC):
    """
    An active connection to a database.

    :param policy: Behavior specific to the database engine.
    :param params: Connection parameters.
    :param log_sql: Whether statements executed over this connection are logged unless requested otherwise.
    """

    policy: BasePolicy
    params: ConnectionParameters
    log_sql: bool

    def __init__(
        self,
        policy: BasePolicy,
        params: ConnectionParameters,
        *,
        log_sql: bool = True,
    ) -> None:
        self.policy = policy
        self.params = params
        self.log_sql = log_sql

    async def __aenter__(self) -> "BaseContext":
        return await self.open()

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[types.TracebackType],
    ) -> None:
        await self.close()

    @abc.abstractmethod
    async def open(self) -> "BaseContext": ...

    @abc.abstractmethod
    async def close(self) -> None: ...


class ResultStream(abc.ABC):
    """
    A forward-only cursor over the rows of a result-set.

    Rows are retrieved from the server in chunks as the stream is iterated; the whole result-set is never held in
    memory.
    """

    statement: str
    columns: tuple[str, ...]
    fetch_size: int

    def __init__(self, statement: str, columns: tuple[str, ...], fetch_size: int) -> None:
        self.statement = statement
        self.columns = columns
        self.fetch_size = fetch_size

    async def __aiter__(self) -> AsyncIterator[RecordType]:
        while True:
            try:
                rows = await self._fetch()
            except QueryException:
                raise
            except Exception as e:
                raise QueryException(self.statement) from e
            if not rows:
                return
            for row in rows:
                yield row

    @abc.abstractmethod
    async def _fetch(self) -> Sequence[RecordType]:
        "Retrieves the next chunk of rows; an empty sequence signals the end of the result-set."
        ...

    @abc.abstractmethod
    async def close(self) -> None: ...


class BatchStatement:
    """
    A reusable parameterized statement that accumulates rows and submits them together.

    Rows added with `add_batch` are sent to the database only when `execute_batch` is called.
    """

    context: "BaseContext"
    statement: str
    records: list[RecordType]

    def __init__(self, context: "BaseContext", statement: str) -> None:
        self.context = context
        self.statement = statement
        self.records = []

    def __len__(self) -> int:
        return len(self.records)

    def add_batch(self, record: RecordType) -> None:
        self.records.append(record)

    async def execute_batch(self) -> int:
        "Submits all accumulated rows, and returns the number of rows submitted."

        records = self.records
        self.records = []
        if records:
            await self.context.execute_many(self.statement, records, log_sql=False)
        return len(records)

    def close(self) -> None:
        self.records.clear()


class BaseContext(abc.ABC):
    """
    Context object returned by a connection object.

    Statements run in an explicit transaction that is ended only by `commit` or `rollback`.
    """

    connection: BaseConnection

    def __init__(self, connection: BaseConnection) -> None:
        self.connection = connection

    @property
    def policy(self) -> BasePolicy:
        return self.connection.policy

    def _log_statement(self, statement: str, log_sql: Optional[bool]) -> None:
        enabled = self.connection.log_sql if log_sql is None else log_sql
        if enabled:
            SQL_LOGGER.info("%s", statement)
        else:
            LOGGER.debug("execute SQL:\n%s", statement)

    async def execute(self, statement: str, *, log_sql: Optional[bool] = None) -> None:
        """
        Executes a SQL statement.

        :param statement: The statement to execute.
        :param log_sql: Whether to log the statement; `None` to use the connection default.
        """

        if not statement:
            raise ValueError("empty statement")
        if not statement.strip():
            raise ValueError("blank statement")

        self._log_statement(statement, log_sql)
        try:
            await self._execute(statement)
        except QueryException:
            raise
        except Exception as e:
            raise QueryException(statement) from e

    @abc.abstractmethod
    async def _execute(self, statement: str) -> None: ...

    async def execute_many(
        self,
        statement: str,
        records: list[RecordType],
        *,
        log_sql: Optional[bool] = None,
    ) -> None:
        "Executes a SQL statement with several records of data."

        if not statement:
            raise ValueError("empty statement")
        if not statement.strip():
            raise ValueError("blank statement")

        if not records:
            LOGGER.warning("no data to execute statement with")
            return

        LOGGER.debug("execute SQL with %d rows", len(records))
        self._log_statement(statement, log_sql)
        try:
            await self._execute_many(statement, records)
        except QueryException:
            raise
        except Exception as e:
            raise QueryException(statement) from e

    @abc.abstractmethod
    async def _execute_many(self, statement: str, records: list[RecordType]) -> None: ...

    async def query_all(
        self, statement: str, *, log_sql: Optional[bool] = None
    ) -> list[RecordType]:
        "Runs a query to produce a result-set of one or more columns, and multiple rows."

        self._log_statement(statement, log_sql)
        try:
            return await self._query_all(statement)
        except QueryException:
            raise
        except Exception as e:
            raise QueryException(statement) from e

    @abc.abstractmethod
    async def _query_all(self, statement: str) -> list[RecordType]: ...

    async def query_one(
        self, statement: str, *, log_sql: Optional[bool] = None
    ) -> RecordType:
        "Runs a query to produce a result-set of one or more columns, and a single row."

        rows = await self.query_all(statement, log_sql=log_sql)
        if len(rows) != 1:
            raise QueryException(statement) from ValueError(
                f"expected: exactly one row; got: {len(rows)}"
            )
        return rows[0]

    @contextlib.asynccontextmanager
    async def stream(
        self,
        statement: str,
        *,
        fetch_size: int = FETCH_SIZE,
        log_sql: Optional[bool] = None,
    ) -> AsyncIterator[ResultStream]:
        """
        Opens a forward-only cursor over the result-set of a query.

        The cursor is released when the context is exited, whether normally or with an exception.
        """

        self._log_statement(statement, log_sql)
        try:
            result = await self._open_stream(statement, fetch_size)
        except QueryException:
            raise
        except Exception as e:
            raise QueryException(statement) from e
        try:
            yield result
        finally:
            await result.close()

    @abc.abstractmethod
    async def _open_stream(self, statement: str, fetch_size: int) -> ResultStream: ...

    @contextlib.asynccontextmanager
    async def prepare(
        self, statement: str, *, log_sql: Optional[bool] = None
    ) -> AsyncIterator[BatchStatement]:
        """
        Creates a reusable statement to execute with batches of rows.

        Pending rows are discarded when the context is exited.
        """

        self._log_statement(statement, log_sql)
        batch = BatchStatement(self, statement)
        try:
            yield batch
        finally:
            batch.close()

    async def commit(self) -> None:
        try:
            await self._commit()
        except Exception as e:
            raise QueryException("COMMIT") from e

    async def rollback(self) -> None:
        try:
            await self._rollback()
        except Exception as e:
            raise QueryException("ROLLBACK") from e

    @abc.abstractmethod
    async def _commit(self) -> None: ...

    @abc.abstractmethod
    async def _rollback(self) -> None: ...


class Explorer(abc.ABC):
    """
    Takes a snapshot of the objects in the default schema of a database.

    Catalog queries are executed without SQL logging.
    """

    conn: BaseContext

    def __init__(self, conn: BaseContext) -> None:
        self.conn = conn

    async def _query(self, statement: str) -> list[RecordType]:
        return await self.conn.query_all(statement, log_sql=False)

    @abc.abstractmethod
    async def get_table_names(self) -> list[str]:
        "Names of tables in the default schema, in catalog order."
        ...

    @abc.abstractmethod
    async def get_columns(self) -> list[tuple[str, str, int, str]]:
        "Columns in the default schema as tuples of table name, column name, ordinal position and type name."
        ...

    @abc.abstractmethod
    async def get_foreign_keys(self) -> list[tuple[str, str]]:
        "Foreign keys in the default schema as tuples of owning table name and constraint name."
        ...

    async def get_sequences(self) -> list[SequenceDescriptor]:
        "Sequences in the default schema."

        return []

    def get_column_kind(self, type_name: str) -> ColumnKind:
        "Maps a catalog type name to a logical type tag. Override for engine-specific type names."

        return column_kind(type_name)

    async def get_tables(self, *, foreign_keys: bool = False) -> list[TableDescriptor]:
        names = await self.get_table_names()

        columns: dict[str, list[ColumnDescriptor]] = {name: [] for name in names}
        for table_name, column_name, position, type_name in await self.get_columns():
            if table_name not in columns:
                continue
            columns[table_name].append(
                ColumnDescriptor(
                    column_name,
                    int(position),
                    self.get_column_kind(type_name),
                    type_name,
                )
            )

        constraints: dict[str, set[ForeignKeyDescriptor]] = {name: set() for name in names}
        if foreign_keys:
            for table_name, constraint_name in await self.get_foreign_keys():
                if table_name in constraints:
                    constraints[table_name].add(
                        ForeignKeyDescriptor(table_name, constraint_name)
                    )

        return [
            TableDescriptor(
                name,
                tuple(sorted(columns[name], key=lambda c: c.position)),
                frozenset(constraints[name]),
            )
            for name in names
        ]

    async def snapshot(
        self,
        *,
        tables: bool = True,
        sequences: bool = False,
        foreign_keys: bool = False,
    ) -> Snapshot:
        """
        Captures the requested categories of database objects.

        :param tables: Whether to discover tables and their columns.
        :param sequences: Whether to discover sequences.
        :param foreign_keys: Whether to discover the foreign keys of tables.
        """

        result = Snapshot(self.conn.policy.name)
        if tables:
            result.tables = await self.get_tables(foreign_keys=foreign_keys)
        if sequences:
            result.sequences = await self.get_sequences()

        LOGGER.debug(
            "found %d table(s) and %d sequence(s) in %s",
            len(result.tables),
            len(result.sequences),
            result.engine,
        )
        return result


class BaseEngine(abc.ABC):
    "Represents a specific database server type."

    @property
    @abc.abstractmethod
    def name(self) -> str: ...

    @abc.abstractmethod
    def get_policy_type(self) -> type[BasePolicy]: ...

    @abc.abstractmethod
    def get_connection_type(self) -> type[BaseConnection]: ...

    @abc.abstractmethod
    def get_explorer_type(self) -> type[Explorer]: ...

    def create_policy(self) -> BasePolicy:
        "Instantiates the engine-specific behavior."

        return self.get_policy_type()()

    def create_connection(
        self, params: ConnectionParameters, *, log_sql: bool = True
    ) -> BaseConnection:
        "Opens a connection to a database server."

        connection_type = self.get_connection_type()
        return connection_type(self.create_policy(), params, log_sql=log_sql)

    def create_explorer(self, conn: BaseContext) -> Explorer:
        "Instantiates an explorer that can discover objects in a database."

        explorer_type = self.get_explorer_type()
        return explorer_type(conn)
