from pysqlcopy.base import BaseConnection, BaseEngine, BasePolicy, Explorer

from .connection import SQLiteConnection
from .discovery import SQLiteExplorer
from .policy import SQLitePolicy


class SQLiteEngine(BaseEngine):
    @property
    def name(self) -> str:
        return "sqlite"

    def get_policy_type(self) -> type[BasePolicy]:
        return SQLitePolicy

    def get_connection_type(self) -> type[BaseConnection]:
        return SQLiteConnection

    def get_explorer_type(self) -> type[Explorer]:
        return SQLiteExplorer
