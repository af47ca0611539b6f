from pysqlcopy.base import Explorer
from pysqlcopy.model.descriptors import SequenceDescriptor
from pysqlcopy.util.typing import override


class OracleExplorer(Explorer):
    "Discovers objects owned by the current user."

    @override
    async def get_table_names(self) -> list[str]:
        rows = await self._query(
            "SELECT table_name\n"
            "FROM user_tables\n"
            "WHERE nested = 'NO' AND secondary = 'N'\n"
            "ORDER BY table_name"
        )
        return [row[0] for row in rows]

    @override
    async def get_columns(self) -> list[tuple[str, str, int, str]]:
        rows = await self._query(
            "SELECT table_name, column_name, column_id, data_type\n"
            "FROM user_tab_columns\n"
            "ORDER BY table_name, column_id"
        )
        return [(row[0], row[1], int(row[2]), row[3]) for row in rows]

    @override
    async def get_foreign_keys(self) -> list[tuple[str, str]]:
        rows = await self._query(
            "SELECT table_name, constraint_name\n"
            "FROM user_constraints\n"
            "WHERE constraint_type = 'R'\n"
            "ORDER BY table_name, constraint_name"
        )
        return [(row[0], row[1]) for row in rows]

    @override
    async def get_sequences(self) -> list[SequenceDescriptor]:
        # `last_number` is the next value to be written to disk, which is at or past the next value to be issued;
        # large numbers are fetched as text to avoid a conversion to floating-point
        rows = await self._query(
            "SELECT\n"
            "    sequence_name,\n"
            "    TO_CHAR(last_number),\n"
            "    TO_CHAR(increment_by),\n"
            "    TO_CHAR(min_value),\n"
            "    TO_CHAR(max_value),\n"
            "    cache_size,\n"
            "    cycle_flag,\n"
            "    order_flag\n"
            "FROM user_sequences\n"
            "ORDER BY sequence_name"
        )
        return [
            SequenceDescriptor(
                name=name,
                start_value=int(start_value),
                increment=int(increment),
                min_value=int(min_value),
                max_value=int(max_value),
                cache_size=int(cache_size),
                cycle=cycle_flag == "Y",
                ordered=order_flag == "Y",
            )
            for name, start_value, increment, min_value, max_value, cache_size, cycle_flag, order_flag in rows
        ]
