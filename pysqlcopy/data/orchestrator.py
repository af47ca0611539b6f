"""
pysqlcopy: Copy sequences and table data between relational databases.

This module drives a copy run: sequences first, then tables with integrity checks suspended for the duration.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..base import BaseContext
from ..errors import (
    CopyAbortedError,
    SchemaMismatchError,
    SequenceSyncError,
)
from ..filter import ObjectFilter
from ..model.descriptors import Snapshot, TableDescriptor
from .coercion import RowCoercer
from .constraints import ConstraintToggle, ToggleKind
from .sequences import SequenceSynchronizer
from .transfer import BATCH_SIZE, ProgressCallback, TableCopyEngine

LOGGER = logging.getLogger("pysqlcopy")


@enum.unique
class CopyState(enum.Enum):
    IDLE = "idle"
    TRUNCATING = "truncating"
    CONSTRAINTS_DISABLED = "constraints disabled"
    COPYING_TABLES = "copying tables"
    CONSTRAINTS_RESTORED = "constraints restored"
    DONE = "done"
    FAILING = "failing"


@dataclass
class CopyOptions:
    """
    Options that govern a copy run.

    :param tables: Selects and orders the tables to copy.
    :param sequences: Selects and orders the sequences to copy.
    :param batch_size: Number of rows to insert and commit together.
    :param truncate: Whether to empty target tables before copying.
    :param disable_foreign_keys: Whether to suspend foreign key checks in the target while copying.
    :param disable_triggers: Whether to suspend triggers in the target while copying.
    """

    tables: ObjectFilter = field(default_factory=ObjectFilter)
    sequences: ObjectFilter = field(default_factory=lambda: ObjectFilter(False))
    batch_size: int = BATCH_SIZE
    truncate: bool = False
    disable_foreign_keys: bool = True
    disable_triggers: bool = True

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError(f"batch size must be positive; got: {self.batch_size}")


@dataclass
class TableStats:
    table: str
    rows: int


@dataclass
class CopyOutcome:
    """
    Result of a copy run.

    :param tables: Tables copied completely, in copy order, with the number of rows copied.
    :param sequences: Names of sequences re-created in the target.
    :param sequence_errors: Sequences that failed to synchronize; these do not stop the run.
    :param skipped: Selected objects that exist in only one of the databases.
    :param error: The error that stopped the run, if any.
    :param secondary_errors: Failures to restore foreign key checks or triggers, in the order they occurred.
    """

    tables: list[TableStats] = field(default_factory=list)
    sequences: list[str] = field(default_factory=list)
    sequence_errors: list[SequenceSyncError] = field(default_factory=list)
    skipped: list[SchemaMismatchError] = field(default_factory=list)
    error: Optional[Exception] = None
    secondary_errors: list[Exception] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        "Raises `CopyAbortedError` if the run has stopped on a fatal error."

        if self.error is not None:
            raise CopyAbortedError(self.error, self.secondary_errors) from self.error


class CopyOrchestrator:
    """
    Copies sequences and table data from a source database into a target database.

    Tables are processed one at a time in filter order. Once foreign key checks or triggers have been suspended, they
    are restored whether the copy completes or fails.

    :param source: Connection to the source database.
    :param target: Connection to the target database.
    :param options: Options that govern the run.
    :param coercer: Converts values read from the source.
    :param progress: Invoked after each committed batch.
    """

    source: BaseContext
    target: BaseContext
    options: CopyOptions
    coercer: RowCoercer
    progress: Optional[ProgressCallback]
    state: CopyState

    def __init__(
        self,
        source: BaseContext,
        target: BaseContext,
        options: Optional[CopyOptions] = None,
        *,
        coercer: Optional[RowCoercer] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.source = source
        self.target = target
        self.options = options or CopyOptions()
        self.coercer = coercer or RowCoercer()
        self.progress = progress
        self.state = CopyState.IDLE

    def _set_state(self, state: CopyState) -> None:
        LOGGER.debug("copy state: %s -> %s", self.state.value, state.value)
        self.state = state

    async def run(self, source: Snapshot, target: Snapshot) -> CopyOutcome:
        """
        Performs a copy run.

        Fatal errors are not raised but captured in the outcome; call `raise_for_error` on the outcome to raise them.

        :param source: Objects in the source database.
        :param target: Objects in the target database.
        """

        outcome = CopyOutcome()
        if self.options.sequences.enabled:
            await self.copy_sequences(source, target, outcome)
        if self.options.tables.enabled:
            await self.copy_tables(source, target, outcome)
        return outcome

    async def copy_sequences(self, source: Snapshot, target: Snapshot, outcome: CopyOutcome) -> None:
        "Re-creates selected sequences in the target; a failure is recorded and the next sequence is processed."

        sequence_filter = self.options.sequences
        if sequence_filter.excludes_all:
            return

        synchronizer = SequenceSynchronizer(self.source.policy, self.target)
        sequences = sequence_filter.sort(
            (s for s in source.sequences if sequence_filter.contains(s.name)),
            lambda s: s.name,
        )
        for sequence in sequences:
            try:
                if await synchronizer.synchronize(sequence, target.get_sequence(sequence.name)):
                    outcome.sequences.append(sequence.name)
            except SequenceSyncError as e:
                LOGGER.error("%s: %s", e, e.__cause__)
                outcome.sequence_errors.append(e)

    def _match_tables(
        self, source: Snapshot, target: Snapshot, outcome: CopyOutcome
    ) -> list[tuple[TableDescriptor, TableDescriptor]]:
        "Pairs selected target tables with source tables of the same name, in copy order."

        table_filter = self.options.tables
        source_tables = {t.name.lower(): t for t in source.tables if table_filter.contains(t.name)}
        target_tables = [t for t in target.tables if table_filter.contains(t.name)]

        for table in target_tables:
            if table.name.lower() not in source_tables:
                error = SchemaMismatchError(table.name, "table not found in source")
                LOGGER.debug("skipping %s", error)
                outcome.skipped.append(error)

        target_names = {t.name.lower() for t in target_tables}
        for key, table in source_tables.items():
            if key not in target_names:
                error = SchemaMismatchError(table.name, "table not found in target")
                LOGGER.debug("skipping %s", error)
                outcome.skipped.append(error)

        tables = table_filter.sort(
            (t for t in target_tables if t.name.lower() in source_tables),
            lambda t: t.name,
        )
        return [(source_tables[t.name.lower()], t) for t in tables]

    async def copy_tables(self, source: Snapshot, target: Snapshot, outcome: CopyOutcome) -> None:
        "Copies the rows of selected tables; a failure stops the run after integrity checks are restored."

        if self.options.tables.excludes_all:
            return

        pairs = self._match_tables(source, target, outcome)
        if not pairs:
            LOGGER.info("No tables to copy")
            return

        toggles: list[ConstraintToggle] = []
        try:
            if self.options.truncate:
                self._set_state(CopyState.TRUNCATING)
                for _, table in pairs:
                    await self.truncate(table.name, foreign_keys_disabled=False)

            if self.options.disable_foreign_keys:
                await self._disable(
                    ConstraintToggle(self.target, ToggleKind.FOREIGN_KEYS, target.foreign_keys),
                    toggles,
                )
            if self.options.disable_triggers:
                await self._disable(ConstraintToggle(self.target, ToggleKind.TRIGGERS), toggles)
            if toggles:
                self._set_state(CopyState.CONSTRAINTS_DISABLED)

            self._set_state(CopyState.COPYING_TABLES)
            engine = TableCopyEngine(
                self.source,
                self.target,
                batch_size=self.options.batch_size,
                coercer=self.coercer,
                progress=self.progress,
            )
            for source_table, target_table in pairs:
                rows = await engine.copy(source_table, target_table)
                outcome.tables.append(TableStats(target_table.name, rows))
        except Exception as e:
            self._set_state(CopyState.FAILING)
            LOGGER.error("copy failed: %s", e)
            outcome.error = e
            outcome.secondary_errors.extend(await self._restore(toggles))
            return
        except BaseException:
            # task cancellation or keyboard interrupt; integrity checks are restored before propagating
            self._set_state(CopyState.FAILING)
            LOGGER.warning("copy interrupted; restoring integrity checks")
            try:
                await self.target.rollback()
            except Exception as rollback_error:
                LOGGER.warning("rollback failed: %s", rollback_error)
            await self._restore(toggles)
            raise

        errors = await self._restore(toggles)
        self._set_state(CopyState.CONSTRAINTS_RESTORED)
        if errors:
            outcome.error = errors[0]
            outcome.secondary_errors.extend(errors[1:])
        self._set_state(CopyState.DONE)

    async def truncate(self, table: str, *, foreign_keys_disabled: bool) -> None:
        "Removes all rows from a target table, and commits."

        LOGGER.info("Truncating table %s", table)
        try:
            await self.target.execute(
                self.target.policy.get_truncate_stmt(table, foreign_keys_disabled)
            )
            await self.target.commit()
        except Exception:
            try:
                await self.target.rollback()
            except Exception as rollback_error:
                LOGGER.warning("rollback failed for table %s: %s", table, rollback_error)
            raise

    async def _disable(self, toggle: ConstraintToggle, toggles: list[ConstraintToggle]) -> None:
        await toggle.disable()
        if toggle.disabled:
            toggles.append(toggle)

    async def _restore(self, toggles: list[ConstraintToggle]) -> list[Exception]:
        "Re-enables suspended toggles in reverse order, collecting errors instead of raising them."

        errors: list[Exception] = []
        for toggle in reversed(toggles):
            try:
                await toggle.enable()
            except Exception as e:
                LOGGER.error("%s: %s", e, e.__cause__)
                errors.append(e)
        return errors
