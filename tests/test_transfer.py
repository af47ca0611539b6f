import io
import threading
import unittest
from typing import Optional

from pysqlcopy.base import QueryException
from pysqlcopy.data.transfer import TableCopyEngine, TableProgress
from pysqlcopy.dialect.oracle.policy import OraclePolicy
from pysqlcopy.dialect.postgresql.policy import PostgreSQLPolicy
from pysqlcopy.errors import BatchExecutionError, RowConversionError
from tests.fakes import RecordingContext, table


class Cancelled(Exception):
    pass


class RecordingReader(io.StringIO):
    "A file-like large object that records the threads it is read from."

    def __init__(self, content: str) -> None:
        super().__init__(content)
        self.threads: set[str] = set()

    def read(self, size: Optional[int] = -1) -> str:
        self.threads.add(threading.current_thread().name)
        return super().read(size)


class TestTableProgress(unittest.TestCase):
    def test_percent(self) -> None:
        self.assertEqual(TableProgress("t", 500, 1201).percent, 41)
        self.assertEqual(TableProgress("t", 1000, 1201).percent, 83)
        self.assertEqual(TableProgress("t", 1201, 1201).percent, 100)
        self.assertEqual(TableProgress("t", 0, 0).percent, 100)
        self.assertEqual(str(TableProgress("t", 500, 1201)), "Loading t 500/1201 rows (41%)")


class TestTableCopyEngine(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.source = RecordingContext.create(OraclePolicy())
        self.target = RecordingContext.create(PostgreSQLPolicy())
        self.table = table("items", "id", "name:varchar(32)")

    def add_rows(self, count: int) -> None:
        self.source.add_table(
            "items", ("ID", "NAME"), [(i, f"item {i}") for i in range(count)]
        )

    async def test_batches(self) -> None:
        self.add_rows(1201)
        reports: list[TableProgress] = []
        engine = TableCopyEngine(self.source, self.target, batch_size=500, progress=reports.append)

        self.assertEqual(await engine.copy(self.table, self.table), 1201)
        self.assertEqual(
            self.target.events,
            ["BATCH items 500", "COMMIT", "BATCH items 500", "COMMIT", "BATCH items 201", "COMMIT"],
        )
        self.assertEqual([p.percent for p in reports], [41, 83, 100])
        self.assertEqual([p.copied for p in reports], [500, 1000, 1201])
        self.assertEqual(self.target.inserted["items"][1200], (1200, "item 1200"))
        self.assertEqual(self.source.events, ["CLOSE", "ROLLBACK"])

    async def test_empty(self) -> None:
        self.add_rows(0)
        reports: list[TableProgress] = []
        engine = TableCopyEngine(self.source, self.target, progress=reports.append)

        self.assertEqual(await engine.copy(self.table, self.table), 0)
        self.assertEqual(self.target.events, [])
        self.assertEqual(reports, [])

    async def test_column_order(self) -> None:
        self.source.add_table("items", ("NAME", "ID"), [("a", 1), ("b", 2)])
        engine = TableCopyEngine(self.source, self.target)

        await engine.copy(table("items", "name:varchar(32)", "id"), self.table)
        self.assertEqual(self.target.inserted["items"], [(1, "a"), (2, "b")])

    async def test_missing_column(self) -> None:
        self.source.add_table("items", ("ID",), [(1,)])
        engine = TableCopyEngine(self.source, self.target)

        with self.assertRaises(RowConversionError) as ctx:
            await engine.copy(table("items", "id"), self.table)
        self.assertEqual(ctx.exception.column, "name")
        self.assertEqual(self.target.events, [])
        self.assertEqual(self.source.events, ["CLOSE", "ROLLBACK"])

    async def test_batch_failure(self) -> None:
        self.add_rows(1201)
        self.target.failures.append("INSERT")
        engine = TableCopyEngine(self.source, self.target, batch_size=500)

        with self.assertRaises(BatchExecutionError) as ctx:
            await engine.copy(self.table, self.table)
        self.assertEqual(ctx.exception.table, "items")
        self.assertEqual(ctx.exception.row, 500)
        self.assertEqual(self.target.events, ["BATCH items 500", "ROLLBACK"])
        self.assertEqual(self.source.events, ["CLOSE", "ROLLBACK"])

    async def test_cancel(self) -> None:
        self.add_rows(1201)

        def cancel(progress: TableProgress) -> None:
            raise Cancelled()

        engine = TableCopyEngine(self.source, self.target, batch_size=500, progress=cancel)
        with self.assertRaises(Cancelled):
            await engine.copy(self.table, self.table)
        self.assertEqual(self.target.events, ["BATCH items 500", "COMMIT"])
        self.assertEqual(self.source.events, ["CLOSE", "ROLLBACK"])

    async def test_read_transaction_released(self) -> None:
        self.source.add_table("items", ("ID", "NAME"), [(1, "a")])
        self.source.failures.append("COUNT")
        engine = TableCopyEngine(self.source, self.target)

        with self.assertRaises(QueryException):
            await engine.copy(self.table, self.table)
        self.assertEqual(self.source.events, ["ROLLBACK"])
        self.assertEqual(self.target.events, [])

    async def test_large_object_read_on_worker_thread(self) -> None:
        notes = RecordingReader("x" * 5000)
        self.source.add_table("items", ("ID", "NAME"), [(1, notes), (2, "plain")])
        engine = TableCopyEngine(self.source, self.target)

        await engine.copy(self.table, self.table)
        self.assertEqual(self.target.inserted["items"], [(1, "x" * 5000), (2, "plain")])
        self.assertTrue(notes.threads)
        self.assertTrue(all(name.startswith("pysqlcopy") for name in notes.threads))

    def test_batch_size(self) -> None:
        with self.assertRaises(ValueError):
            TableCopyEngine(self.source, self.target, batch_size=0)


if __name__ == "__main__":
    unittest.main()
