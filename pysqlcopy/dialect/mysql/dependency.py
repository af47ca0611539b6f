"""
pysqlcopy: Copy sequences and table data between relational databases.

This module defines dependencies required for MySQL and MariaDB.
"""

import aiomysql  # pyright: ignore[reportUnusedImport] # noqa: F401
import cryptography  # pyright: ignore[reportUnusedImport] # noqa: F401
