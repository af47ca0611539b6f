from pysqlcopy.base import Explorer
from pysqlcopy.model.descriptors import ColumnKind, SequenceDescriptor
from pysqlcopy.util.typing import override


class MSSQLExplorer(Explorer):
    "Discovers objects in the default schema of the current user (typically `dbo`)."

    @override
    def get_column_kind(self, type_name: str) -> ColumnKind:
        name = type_name.lower()
        if name == "bit":
            return ColumnKind.BOOLEAN
        if name in ("varchar(max)", "nvarchar(max)"):
            return ColumnKind.LARGE_TEXT
        if name == "varbinary(max)":
            return ColumnKind.LARGE_BINARY
        return super().get_column_kind(type_name)

    @override
    async def get_table_names(self) -> list[str]:
        rows = await self._query(
            "SELECT table_name\n"
            "FROM information_schema.tables\n"
            "WHERE table_schema = SCHEMA_NAME() AND table_type = 'BASE TABLE'\n"
            "ORDER BY table_name"
        )
        return [row[0] for row in rows]

    @override
    async def get_columns(self) -> list[tuple[str, str, int, str]]:
        # maximum length is -1 for types declared with `MAX`
        rows = await self._query(
            "SELECT\n"
            "    table_name,\n"
            "    column_name,\n"
            "    ordinal_position,\n"
            "    CASE WHEN character_maximum_length = -1 THEN data_type + '(max)' ELSE data_type END\n"
            "FROM information_schema.columns\n"
            "WHERE table_schema = SCHEMA_NAME()\n"
            "ORDER BY table_name, ordinal_position"
        )
        return [(row[0], row[1], int(row[2]), row[3]) for row in rows]

    @override
    async def get_foreign_keys(self) -> list[tuple[str, str]]:
        rows = await self._query(
            "SELECT table_name, constraint_name\n"
            "FROM information_schema.table_constraints\n"
            "WHERE table_schema = SCHEMA_NAME() AND constraint_type = 'FOREIGN KEY'\n"
            "ORDER BY table_name, constraint_name"
        )
        return [(row[0], row[1]) for row in rows]

    @override
    async def get_sequences(self) -> list[SequenceDescriptor]:
        # `last_used_value` is NULL until the first value is generated;
        # values are read as decimal(38,0) because sequences declared as `decimal` or `numeric` exceed the range of bigint
        rows = await self._query(
            "SELECT\n"
            "    name,\n"
            "    COALESCE(CAST(last_used_value AS decimal(38, 0)) + CAST(increment AS decimal(38, 0)), CAST(start_value AS decimal(38, 0))),\n"
            "    CAST(increment AS decimal(38, 0)),\n"
            "    CAST(minimum_value AS decimal(38, 0)),\n"
            "    CAST(maximum_value AS decimal(38, 0)),\n"
            "    cache_size,\n"
            "    is_cycling\n"
            "FROM sys.sequences\n"
            "WHERE schema_id = SCHEMA_ID()\n"
            "ORDER BY name"
        )
        return [
            SequenceDescriptor(
                name=name,
                start_value=int(start_value),
                increment=int(increment),
                min_value=int(min_value),
                max_value=int(max_value),
                cache_size=int(cache_size) if cache_size is not None else None,
                cycle=bool(cycle),
            )
            for name, start_value, increment, min_value, max_value, cache_size, cycle in rows
        ]
