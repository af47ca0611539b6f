from pysqlcopy.base import BasePolicy
from pysqlcopy.errors import VendorUnsupportedError
from pysqlcopy.model.descriptors import ForeignKeyDescriptor, SequenceDescriptor
from pysqlcopy.util.typing import override


class SQLitePolicy(BasePolicy):
    """
    Behavior specific to SQLite.

    Foreign key enforcement is a connection-level setting, which takes no effect inside an open transaction. SQLite has
    no sequences.
    """

    @property
    def name(self) -> str:
        return "sqlite"

    @override
    def placeholder(self, index: int) -> str:
        return "?"

    @override
    def get_disable_foreign_keys_stmts(
        self, foreign_keys: list[ForeignKeyDescriptor]
    ) -> list[str]:
        return ["PRAGMA foreign_keys = OFF"]

    @override
    def get_enable_foreign_keys_stmts(
        self, foreign_keys: list[ForeignKeyDescriptor]
    ) -> list[str]:
        return ["PRAGMA foreign_keys = ON"]

    @override
    def get_create_sequence_stmt(self, sequence: SequenceDescriptor) -> str:
        raise VendorUnsupportedError(self.name, "creating sequences")

    @override
    def get_drop_sequence_stmt(self, sequence: str) -> str:
        raise VendorUnsupportedError(self.name, "dropping sequences")
