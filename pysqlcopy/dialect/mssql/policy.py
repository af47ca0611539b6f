from typing import Optional

from pysqlcopy.base import BasePolicy
from pysqlcopy.util.typing import override


class MSSQLPolicy(BasePolicy):
    """
    Behavior specific to Microsoft SQL Server.

    There is no statement that suspends foreign key checks for a session, and `TRUNCATE` is rejected on tables
    referenced by a foreign key; tables are emptied with `DELETE`.
    """

    @property
    def name(self) -> str:
        return "mssql"

    @override
    def placeholder(self, index: int) -> str:
        return "?"

    @override
    def cache_clause(self, cache_size: Optional[int]) -> Optional[str]:
        if cache_size is not None and cache_size > 0:
            return f"CACHE {cache_size}"
        else:
            return "NO CACHE"
