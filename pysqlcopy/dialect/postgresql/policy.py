from pysqlcopy.base import BasePolicy
from pysqlcopy.model.descriptors import ForeignKeyDescriptor
from pysqlcopy.util.typing import override


class PostgreSQLPolicy(BasePolicy):
    """
    Behavior specific to PostgreSQL.

    Foreign key checks (and triggers) are suspended for the whole session by switching the replication role, which
    requires superuser privileges. When the role cannot be switched, the copy continues with checks enabled.
    """

    @property
    def name(self) -> str:
        return "postgresql"

    @property
    @override
    def foreign_key_toggle_optional(self) -> bool:
        return True

    @override
    def placeholder(self, index: int) -> str:
        return f"${index}"

    @override
    def get_truncate_stmt(self, table: str, foreign_keys_disabled: bool) -> str:
        return f"TRUNCATE TABLE {self.quote(table)} CASCADE"

    @override
    def get_disable_foreign_keys_stmts(
        self, foreign_keys: list[ForeignKeyDescriptor]
    ) -> list[str]:
        return ["SET session_replication_role = 'replica'"]

    @override
    def get_enable_foreign_keys_stmts(
        self, foreign_keys: list[ForeignKeyDescriptor]
    ) -> list[str]:
        return ["SET session_replication_role = 'origin'"]
