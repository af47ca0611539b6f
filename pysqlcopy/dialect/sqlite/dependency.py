"""
pysqlcopy: Copy sequences and table data between relational databases.

This module defines dependencies required for SQLite.
"""

import sqlite3  # noqa: F401
