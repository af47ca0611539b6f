from pysqlcopy.base import BaseConnection, BaseEngine, BasePolicy, Explorer

from .connection import PostgreSQLConnection
from .discovery import PostgreSQLExplorer
from .policy import PostgreSQLPolicy


class PostgreSQLEngine(BaseEngine):
    @property
    def name(self) -> str:
        return "postgresql"

    def get_policy_type(self) -> type[BasePolicy]:
        return PostgreSQLPolicy

    def get_connection_type(self) -> type[BaseConnection]:
        return PostgreSQLConnection

    def get_explorer_type(self) -> type[Explorer]:
        return PostgreSQLExplorer
