from pysqlcopy.base import BaseConnection, BaseEngine, BasePolicy, Explorer

from .connection import MSSQLConnection
from .discovery import MSSQLExplorer
from .policy import MSSQLPolicy


class MSSQLEngine(BaseEngine):
    @property
    def name(self) -> str:
        return "mssql"

    def get_policy_type(self) -> type[BasePolicy]:
        return MSSQLPolicy

    def get_connection_type(self) -> type[BaseConnection]:
        return MSSQLConnection

    def get_explorer_type(self) -> type[Explorer]:
        return MSSQLExplorer
