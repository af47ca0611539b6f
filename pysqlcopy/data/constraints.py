"""
pysqlcopy: Copy sequences and table data between relational databases.

This module suspends and restores foreign key checks and triggers in a target database.
"""

import enum
import logging
from typing import Iterable, Optional

from ..base import BaseContext
from ..errors import ConstraintToggleError
from ..model.descriptors import ForeignKeyDescriptor

LOGGER = logging.getLogger("pysqlcopy")


@enum.unique
class ToggleKind(enum.Enum):
    FOREIGN_KEYS = "foreign key checks"
    TRIGGERS = "triggers"


class ConstraintToggle:
    """
    Suspends and restores one kind of integrity mechanism in the target database.

    Statements are executed without SQL logging, and each direction is committed as a unit.

    :param context: Connection to the target database.
    :param kind: Whether foreign key checks or triggers are toggled.
    :param foreign_keys: Foreign keys in the target database, for engines that toggle constraints one by one.
    """

    context: BaseContext
    kind: ToggleKind
    foreign_keys: list[ForeignKeyDescriptor]
    disabled: bool

    def __init__(
        self,
        context: BaseContext,
        kind: ToggleKind,
        foreign_keys: Optional[Iterable[ForeignKeyDescriptor]] = None,
    ) -> None:
        self.context = context
        self.kind = kind
        self.foreign_keys = list(foreign_keys) if foreign_keys else []
        self.disabled = False

    def __str__(self) -> str:
        return f"{self.kind.value} in {self.context.policy.name}"

    def get_statements(self, enable: bool) -> list[str]:
        policy = self.context.policy
        if self.kind is ToggleKind.FOREIGN_KEYS:
            if enable:
                return policy.get_enable_foreign_keys_stmts(self.foreign_keys)
            else:
                return policy.get_disable_foreign_keys_stmts(self.foreign_keys)
        else:
            if enable:
                return policy.get_enable_triggers_stmts()
            else:
                return policy.get_disable_triggers_stmts()

    async def disable(self) -> None:
        """
        Suspends the mechanism.

        :raises VendorUnsupportedError: The engine has no means to suspend the mechanism.
        :raises ConstraintToggleError: The statements failed.
        """

        self.disabled = await self._toggle(enable=False)

    async def enable(self) -> None:
        """
        Restores the mechanism.

        :raises ConstraintToggleError: The statements failed.
        """

        await self._toggle(enable=True)
        self.disabled = False

    async def _toggle(self, enable: bool) -> bool:
        action = "enable" if enable else "disable"
        statements = self.get_statements(enable)
        if not statements:
            LOGGER.debug("nothing to %s for %s", action, self)
            return False

        LOGGER.info("Will %s %s", action, self)
        try:
            for statement in statements:
                await self.context.execute(statement, log_sql=False)
            await self.context.commit()
        except Exception as e:
            try:
                await self.context.rollback()
            except Exception as rollback_error:
                LOGGER.warning("rollback failed for %s: %s", self, rollback_error)

            if (
                self.kind is ToggleKind.FOREIGN_KEYS
                and self.context.policy.foreign_key_toggle_optional
            ):
                LOGGER.warning("could not %s %s: %s", action, self, e.__cause__ or e)
                return False

            raise ConstraintToggleError(self.kind.value, enable) from e

        return True
