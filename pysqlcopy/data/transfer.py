"""
pysqlcopy: Copy sequences and table data between relational databases.

This module streams the rows of a table from a source database into a target database in batches.
"""

import contextlib
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..base import BaseContext, BatchStatement, RecordType
from ..errors import BatchExecutionError, RowConversionError
from ..model.descriptors import ColumnKind, TableDescriptor
from ..util.dispatch import thread_dispatch
from .coercion import RowCoercer, is_large_object

LOGGER = logging.getLogger("pysqlcopy")

# number of rows inserted and committed together
BATCH_SIZE = 500


@dataclass(frozen=True)
class TableProgress:
    """
    Progress of copying a single table, reported after each committed batch.

    :param table: Name of the target table.
    :param copied: Number of rows committed so far.
    :param total: Number of rows in the source table when the copy started.
    """

    table: str
    copied: int
    total: int

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return 100 * self.copied // self.total

    def __str__(self) -> str:
        return f"Loading {self.table} {self.copied}/{self.total} rows ({self.percent}%)"


ProgressCallback = Callable[[TableProgress], None]


@dataclass(frozen=True)
class _ColumnMapping:
    name: str
    index: int
    source_kind: ColumnKind
    target_kind: ColumnKind


class TableCopyEngine:
    """
    Copies all rows of a source table into the matching target table.

    Rows are read through a forward-only cursor and inserted with a reusable parameterized statement. Every batch is
    committed on its own, which means a failure leaves the rows of earlier batches in the target.

    :param source: Connection to the source database.
    :param target: Connection to the target database.
    :param batch_size: Number of rows to insert and commit together.
    :param coercer: Converts values read from the source.
    :param progress: Invoked after each committed batch; an exception raised from it stops the copy.
    """

    source: BaseContext
    target: BaseContext
    batch_size: int
    coercer: RowCoercer
    progress: Optional[ProgressCallback]

    def __init__(
        self,
        source: BaseContext,
        target: BaseContext,
        *,
        batch_size: int = BATCH_SIZE,
        coercer: Optional[RowCoercer] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch size must be positive")

        self.source = source
        self.target = target
        self.batch_size = batch_size
        self.coercer = coercer or RowCoercer()
        self.progress = progress

    @property
    def cross_vendor(self) -> bool:
        return self.source.policy.name != self.target.policy.name

    def _map_columns(
        self,
        columns: tuple[str, ...],
        source_table: TableDescriptor,
        target_table: TableDescriptor,
    ) -> list[_ColumnMapping]:
        "Matches each target column with a column of the source result-set by name."

        indices = {name.lower(): index for index, name in reversed(list(enumerate(columns)))}
        mappings: list[_ColumnMapping] = []
        for column in target_table.columns:
            index = indices.get(column.name.lower())
            if index is None:
                raise RowConversionError(
                    target_table.name, column.name, "column not found in source"
                )
            source_column = source_table.get_column(column.name)
            mappings.append(
                _ColumnMapping(
                    column.name,
                    index,
                    source_column.kind if source_column is not None else ColumnKind.OTHER,
                    column.kind,
                )
            )
        return mappings

    def _convert(
        self,
        row: RecordType,
        mappings: list[_ColumnMapping],
        table: str,
        cross_vendor: bool,
    ) -> RecordType:
        record = []
        for mapping in mappings:
            try:
                value = self.coercer.coerce(
                    row[mapping.index],
                    mapping.source_kind,
                    mapping.target_kind,
                    cross_vendor,
                )
            except Exception as e:
                raise RowConversionError(table, mapping.name, str(e)) from e
            record.append(value)
        return tuple(record)

    async def copy(self, source_table: TableDescriptor, target_table: TableDescriptor) -> int:
        """
        Copies the rows of a table.

        The read transaction of the source is ended when the table is done, which releases server-side cursors on
        engines that tie them to the transaction.

        :param source_table: The table to read from.
        :param target_table: The table to insert into; its column order defines the insert statement.
        :returns: The number of rows copied.
        :raises RowConversionError: A value cannot be converted, or the column sets do not align.
        :raises BatchExecutionError: A batch fails to insert or commit; the current batch is rolled back.
        """

        try:
            return await self._copy(source_table, target_table)
        finally:
            try:
                await self.source.rollback()
            except Exception as e:
                LOGGER.warning("failed to end read transaction for table %s: %s", source_table.name, e)

    async def _copy(self, source_table: TableDescriptor, target_table: TableDescriptor) -> int:
        source_policy = self.source.policy
        total = int((await self.source.query_one(source_policy.get_count_stmt(source_table.name)))[0])
        LOGGER.info("Copying table %s (%d rows)", target_table.name, total)

        insert_stmt = self.target.policy.get_insert_stmt(target_table)
        cross_vendor = self.cross_vendor
        copied = 0

        # large object handles are read through the driver, whose calls are bound to the worker thread
        convert_on_worker = thread_dispatch(self._convert)

        async with contextlib.AsyncExitStack() as stack:
            rows = await stack.enter_async_context(
                self.source.stream(
                    source_policy.get_select_stmt(source_table.name),
                    fetch_size=self.batch_size,
                )
            )
            batch = await stack.enter_async_context(self.target.prepare(insert_stmt))
            mappings = self._map_columns(rows.columns, source_table, target_table)

            async for row in rows:
                if any(is_large_object(value) for value in row):
                    record = await convert_on_worker(row, mappings, target_table.name, cross_vendor)
                else:
                    record = self._convert(row, mappings, target_table.name, cross_vendor)

                batch.add_batch(record)
                copied += 1
                if len(batch) >= self.batch_size:
                    await self._flush(batch, target_table.name, copied, total)

            if len(batch) > 0:
                await self._flush(batch, target_table.name, copied, total)

        return copied

    async def _flush(self, batch: BatchStatement, table: str, copied: int, total: int) -> None:
        try:
            await batch.execute_batch()
            await self.target.commit()
        except Exception as e:
            try:
                await self.target.rollback()
            except Exception as rollback_error:
                LOGGER.warning("rollback failed for table %s: %s", table, rollback_error)
            raise BatchExecutionError(table, copied) from e

        progress = TableProgress(table, copied, total)
        LOGGER.info("%s", progress)
        if self.progress is not None:
            self.progress(progress)
