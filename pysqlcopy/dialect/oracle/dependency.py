"""
pysqlcopy: Copy sequences and table data between relational databases.

This module defines dependencies required for Oracle.
"""

import oracledb  # pyright: ignore[reportUnusedImport] # noqa: F401
