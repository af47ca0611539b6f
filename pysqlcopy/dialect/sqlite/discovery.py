from pysqlcopy.base import Explorer
from pysqlcopy.util.typing import override


class SQLiteExplorer(Explorer):
    "Discovers objects in the main database. Internal tables such as `sqlite_sequence` are omitted."

    @override
    async def get_table_names(self) -> list[str]:
        rows = await self._query(
            "SELECT name\n"
            "FROM sqlite_master\n"
            "WHERE type = 'table' AND name NOT LIKE 'sqlite~_%' ESCAPE '~'\n"
            "ORDER BY name"
        )
        return [row[0] for row in rows]

    @override
    async def get_columns(self) -> list[tuple[str, str, int, str]]:
        rows = await self._query(
            "SELECT m.name, p.name, p.cid + 1, p.type\n"
            "FROM sqlite_master AS m JOIN pragma_table_info(m.name) AS p\n"
            "WHERE m.type = 'table'\n"
            "ORDER BY m.name, p.cid"
        )
        return [(row[0], row[1], int(row[2]), row[3]) for row in rows]

    @override
    async def get_foreign_keys(self) -> list[tuple[str, str]]:
        # foreign keys are anonymous; synthesize a name from the owning table and the constraint index
        rows = await self._query(
            "SELECT DISTINCT m.name, f.id\n"
            "FROM sqlite_master AS m JOIN pragma_foreign_key_list(m.name) AS f\n"
            "WHERE m.type = 'table'\n"
            "ORDER BY m.name, f.id"
        )
        return [(row[0], f"fk_{row[0]}_{row[1]}") for row in rows]
