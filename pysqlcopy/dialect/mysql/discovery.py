import re

from pysqlcopy.base import Explorer
from pysqlcopy.model.descriptors import ColumnKind
from pysqlcopy.util.typing import override


class MySQLExplorer(Explorer):
    "Discovers objects in the current database (a.k.a. `USE`)."

    @override
    def get_column_kind(self, type_name: str) -> ColumnKind:
        # MySQL has no Boolean type, `BOOLEAN` is an alias of `TINYINT(1)`
        if re.match(r"^tinyint\(1\)", type_name, re.IGNORECASE):
            return ColumnKind.BOOLEAN
        return super().get_column_kind(type_name)

    @override
    async def get_table_names(self) -> list[str]:
        rows = await self._query(
            "SELECT table_name\n"
            "FROM information_schema.tables\n"
            "WHERE table_schema = DATABASE() AND table_type = 'BASE TABLE'\n"
            "ORDER BY table_name"
        )
        return [row[0] for row in rows]

    @override
    async def get_columns(self) -> list[tuple[str, str, int, str]]:
        rows = await self._query(
            "SELECT table_name, column_name, ordinal_position, column_type\n"
            "FROM information_schema.columns\n"
            "WHERE table_schema = DATABASE()\n"
            "ORDER BY table_name, ordinal_position"
        )
        return [(row[0], row[1], int(row[2]), row[3]) for row in rows]

    @override
    async def get_foreign_keys(self) -> list[tuple[str, str]]:
        rows = await self._query(
            "SELECT table_name, constraint_name\n"
            "FROM information_schema.table_constraints\n"
            "WHERE table_schema = DATABASE() AND constraint_type = 'FOREIGN KEY'\n"
            "ORDER BY table_name, constraint_name"
        )
        return [(row[0], row[1]) for row in rows]
