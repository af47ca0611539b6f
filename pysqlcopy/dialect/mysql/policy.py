from pysqlcopy.base import BasePolicy
from pysqlcopy.errors import VendorUnsupportedError
from pysqlcopy.model.descriptors import ForeignKeyDescriptor, SequenceDescriptor
from pysqlcopy.util.typing import override


class MySQLPolicy(BasePolicy):
    """
    Behavior specific to MySQL and MariaDB.

    Sessions run with `ANSI_QUOTES` such that identifiers are quoted with double quotes. MySQL has no sequences.
    """

    @property
    def name(self) -> str:
        return "mysql"

    @override
    def placeholder(self, index: int) -> str:
        return "%s"

    @override
    def get_truncate_stmt(self, table: str, foreign_keys_disabled: bool) -> str:
        # `TRUNCATE` fails on a table referenced by a foreign key while checks are enabled
        if foreign_keys_disabled:
            return f"TRUNCATE TABLE {self.quote(table)}"
        else:
            return f"DELETE FROM {self.quote(table)}"

    @override
    def get_disable_foreign_keys_stmts(
        self, foreign_keys: list[ForeignKeyDescriptor]
    ) -> list[str]:
        return ["SET FOREIGN_KEY_CHECKS=0"]

    @override
    def get_enable_foreign_keys_stmts(
        self, foreign_keys: list[ForeignKeyDescriptor]
    ) -> list[str]:
        return ["SET FOREIGN_KEY_CHECKS=1"]

    @override
    def get_create_sequence_stmt(self, sequence: SequenceDescriptor) -> str:
        raise VendorUnsupportedError(self.name, "creating sequences")

    @override
    def get_drop_sequence_stmt(self, sequence: str) -> str:
        raise VendorUnsupportedError(self.name, "dropping sequences")
