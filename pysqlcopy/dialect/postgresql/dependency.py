"""
pysqlcopy: Copy sequences and table data between relational databases.

This module defines dependencies required for PostgreSQL.
"""

import asyncpg  # noqa: F401
