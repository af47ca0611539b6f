from pysqlcopy.base import BaseConnection, BaseEngine, BasePolicy, Explorer

from .connection import MySQLConnection
from .discovery import MySQLExplorer
from .policy import MySQLPolicy


class MySQLEngine(BaseEngine):
    @property
    def name(self) -> str:
        return "mysql"

    def get_policy_type(self) -> type[BasePolicy]:
        return MySQLPolicy

    def get_connection_type(self) -> type[BaseConnection]:
        return MySQLConnection

    def get_explorer_type(self) -> type[Explorer]:
        return MySQLExplorer
