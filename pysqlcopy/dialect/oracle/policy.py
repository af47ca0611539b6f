from typing import Optional

from pysqlcopy.base import BasePolicy
from pysqlcopy.model.descriptors import ForeignKeyDescriptor
from pysqlcopy.util.typing import override


def _toggle_triggers_block(action: str) -> str:
    return (
        "BEGIN\n"
        "    FOR r_trigger IN (SELECT trigger_name FROM user_triggers)\n"
        "    LOOP\n"
        f"        EXECUTE IMMEDIATE 'ALTER TRIGGER \"' || r_trigger.trigger_name || '\" {action}';\n"
        "    END LOOP;\n"
        "END;"
    )


class OraclePolicy(BasePolicy):
    """
    Behavior specific to Oracle.

    Foreign key constraints are disabled one by one; triggers are disabled with a PL/SQL block that iterates over the
    triggers owned by the current user.
    """

    @property
    def name(self) -> str:
        return "oracle"

    @override
    def placeholder(self, index: int) -> str:
        return f":{index}"

    @override
    def get_truncate_stmt(self, table: str, foreign_keys_disabled: bool) -> str:
        return f"TRUNCATE TABLE {self.quote(table)} DROP ALL STORAGE CASCADE"

    def _alter_constraints(
        self, foreign_keys: list[ForeignKeyDescriptor], action: str
    ) -> list[str]:
        return [
            f"ALTER TABLE {self.quote(fk.table)} {action} CONSTRAINT {self.quote(fk.name)}"
            for fk in foreign_keys
        ]

    @override
    def get_disable_foreign_keys_stmts(
        self, foreign_keys: list[ForeignKeyDescriptor]
    ) -> list[str]:
        return self._alter_constraints(foreign_keys, "DISABLE")

    @override
    def get_enable_foreign_keys_stmts(
        self, foreign_keys: list[ForeignKeyDescriptor]
    ) -> list[str]:
        return self._alter_constraints(foreign_keys, "ENABLE")

    @override
    def get_disable_triggers_stmts(self) -> list[str]:
        return [_toggle_triggers_block("DISABLE")]

    @override
    def get_enable_triggers_stmts(self) -> list[str]:
        return [_toggle_triggers_block("ENABLE")]

    @override
    def cache_clause(self, cache_size: Optional[int]) -> Optional[str]:
        # Oracle requires a cache of at least 2 values
        if cache_size is not None and cache_size >= 2:
            return f"CACHE {cache_size}"
        else:
            return "NOCACHE"

    @override
    def cycle_clause(self, cycle: bool) -> Optional[str]:
        return "CYCLE" if cycle else "NOCYCLE"

    @override
    def order_clause(self, ordered: bool) -> Optional[str]:
        return "ORDER" if ordered else "NOORDER"
