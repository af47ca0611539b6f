from pysqlcopy.base import BaseConnection, BaseEngine, BasePolicy, Explorer

from .connection import OracleConnection
from .discovery import OracleExplorer
from .policy import OraclePolicy


class OracleEngine(BaseEngine):
    @property
    def name(self) -> str:
        return "oracle"

    def get_policy_type(self) -> type[BasePolicy]:
        return OraclePolicy

    def get_connection_type(self) -> type[BaseConnection]:
        return OracleConnection

    def get_explorer_type(self) -> type[Explorer]:
        return OracleExplorer
