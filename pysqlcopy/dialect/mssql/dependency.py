"""
pysqlcopy: Copy sequences and table data between relational databases.

This module defines dependencies required for Microsoft SQL Server.
"""

import pyodbc  # noqa: F401
