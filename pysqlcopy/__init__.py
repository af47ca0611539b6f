"""
pysqlcopy: Copy sequences and table data between relational databases.

This library copies the contents of selected tables and sequences from a source database to a target database,
streaming rows in batches, suspending foreign key checks and triggers around the bulk load, and correcting values
so that data copied between different database engines keeps its meaning.
"""

__version__ = "0.3.1"
__author__ = "Levente Hunyadi"
__copyright__ = "Copyright 2023-2025, Levente Hunyadi"
__license__ = "MIT"
__maintainer__ = "Levente Hunyadi"
__status__ = "Production"
