"""
pysqlcopy: Copy sequences and table data between relational databases.

This module re-creates sequences in a target database such that they continue from where the source left off.
"""

import logging
from typing import Optional

from ..base import BaseContext, BasePolicy
from ..errors import SequenceSyncError
from ..model.descriptors import SequenceDescriptor

LOGGER = logging.getLogger("pysqlcopy")


class SequenceSynchronizer:
    """
    Makes a sequence in the target database continue from the source sequence's current position.

    The target sequence is dropped (if it exists) and created anew with the source attributes in a single transaction.

    :param source_policy: Behavior of the source engine, used to recognize an unbounded maximum value.
    :param target: Connection to the target database.
    """

    source_policy: BasePolicy
    target: BaseContext

    def __init__(self, source_policy: BasePolicy, target: BaseContext) -> None:
        self.source_policy = source_policy
        self.target = target

    def resolve_max_value(self, sequence: SequenceDescriptor) -> Optional[int]:
        """
        Determines the maximum value to set on the target sequence.

        A maximum that equals the source engine's largest bound means "no limit", and is omitted. A maximum beyond
        what the target accepts is clamped to the target bound.
        """

        if sequence.max_value is None:
            return None

        source_bound = self.source_policy.max_sequence_bound()
        if source_bound is not None and sequence.max_value == source_bound:
            return None

        target_bound = self.target.policy.max_sequence_bound()
        if target_bound is not None and target_bound < sequence.max_value:
            return target_bound

        return sequence.max_value

    def get_statements(
        self, source: SequenceDescriptor, target: Optional[SequenceDescriptor]
    ) -> list[str]:
        "SQL statements that replace the target sequence with one that has the source attributes."

        policy = self.target.policy
        statements: list[str] = []
        if target is not None:
            statements.append(policy.get_drop_sequence_stmt(target.name))

        sequence = SequenceDescriptor(
            name=target.name if target is not None else source.name,
            start_value=source.start_value,
            increment=source.increment,
            min_value=source.min_value,
            max_value=self.resolve_max_value(source),
            cache_size=source.cache_size,
            cycle=source.cycle,
            ordered=source.ordered,
        )
        statements.append(policy.get_create_sequence_stmt(sequence))
        return statements

    async def synchronize(
        self, source: SequenceDescriptor, target: Optional[SequenceDescriptor] = None
    ) -> bool:
        """
        Brings a target sequence in line with a source sequence.

        :param source: The sequence in the source database.
        :param target: The sequence with the same name in the target database, or `None` if it does not exist.
        :returns: True if the target sequence has been re-created, false if it was already up to date.
        :raises SequenceSyncError: The sequence could not be re-created; the target transaction is rolled back.
        """

        if target is not None and target.start_value == source.start_value:
            LOGGER.debug("sequence %s is up to date", source.name)
            return False

        LOGGER.info(
            "Synchronizing sequence %s to start with %d", source.name, source.start_value
        )
        try:
            for statement in self.get_statements(source, target):
                await self.target.execute(statement)
            await self.target.commit()
        except Exception as e:
            try:
                await self.target.rollback()
            except Exception as rollback_error:
                LOGGER.warning(
                    "rollback failed after sequence %s: %s", source.name, rollback_error
                )
            raise SequenceSyncError(source.name) from e

        return True
