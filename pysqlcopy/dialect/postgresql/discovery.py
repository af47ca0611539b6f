from pysqlcopy.base import Explorer
from pysqlcopy.model.descriptors import SequenceDescriptor
from pysqlcopy.util.typing import override


class PostgreSQLExplorer(Explorer):
    "Discovers objects in the current schema (first schema on the search path)."

    @override
    async def get_table_names(self) -> list[str]:
        rows = await self._query(
            "SELECT table_name\n"
            "FROM information_schema.tables\n"
            "WHERE table_schema = current_schema() AND table_type = 'BASE TABLE'\n"
            "ORDER BY table_name"
        )
        return [row[0] for row in rows]

    @override
    async def get_columns(self) -> list[tuple[str, str, int, str]]:
        rows = await self._query(
            "SELECT table_name, column_name, ordinal_position, data_type\n"
            "FROM information_schema.columns\n"
            "WHERE table_schema = current_schema()\n"
            "ORDER BY table_name, ordinal_position"
        )
        return [(row[0], row[1], int(row[2]), row[3]) for row in rows]

    @override
    async def get_foreign_keys(self) -> list[tuple[str, str]]:
        rows = await self._query(
            "SELECT table_name, constraint_name\n"
            "FROM information_schema.table_constraints\n"
            "WHERE table_schema = current_schema() AND constraint_type = 'FOREIGN KEY'\n"
            "ORDER BY table_name, constraint_name"
        )
        return [(row[0], row[1]) for row in rows]

    @override
    async def get_sequences(self) -> list[SequenceDescriptor]:
        # `last_value` is NULL until `nextval` is first called
        rows = await self._query(
            "SELECT\n"
            "    sequencename,\n"
            "    COALESCE(last_value + increment_by, start_value),\n"
            "    increment_by,\n"
            "    min_value,\n"
            "    max_value,\n"
            "    cache_size,\n"
            "    cycle\n"
            "FROM pg_catalog.pg_sequences\n"
            "WHERE schemaname = current_schema()\n"
            "ORDER BY sequencename"
        )
        return [
            SequenceDescriptor(
                name=name,
                start_value=int(start_value),
                increment=int(increment),
                min_value=int(min_value),
                max_value=int(max_value),
                cache_size=int(cache_size),
                cycle=bool(cycle),
            )
            for name, start_value, increment, min_value, max_value, cache_size, cycle in rows
        ]
