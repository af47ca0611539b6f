"""
pysqlcopy: Copy sequences and table data between relational databases.

This module performs an end-to-end copy run: connects to both databases, runs user-supplied SQL, takes snapshots of
database objects, and copies sequences and tables.
"""

import logging
from typing import Optional

from .base import BaseEngine
from .config import CopyConfig, DatabaseConfig
from .connection import ConnectionParameters
from .data.coercion import RowCoercer
from .data.orchestrator import CopyOrchestrator, CopyOutcome
from .data.transfer import ProgressCallback
from .factory import get_dialect, get_parameters
from .script import run_script

LOGGER = logging.getLogger("pysqlcopy")


def resolve_database(config: DatabaseConfig) -> tuple[BaseEngine, ConnectionParameters]:
    "Looks up the engine for a database, and extracts connection parameters with credential overrides applied."

    if not config.url:
        raise ValueError("missing database connection string")
    dialect, params = get_parameters(config.url)
    return get_dialect(dialect), params.with_credentials(config.username, config.password)


async def copy(
    config: CopyConfig,
    *,
    coercer: Optional[RowCoercer] = None,
    progress: Optional[ProgressCallback] = None,
) -> CopyOutcome:
    """
    Copies sequences and tables from the source to the target database as configured.

    Errors that occur while connecting or running user-supplied SQL are raised. Errors that occur while copying are
    captured in the outcome; the SQL script to run after the copy is skipped in this case.

    :param config: Configuration of the copy run.
    :param coercer: Converts values read from the source.
    :param progress: Invoked after each committed batch.
    """

    config.validate()
    options = config.to_options()

    source_engine, source_params = resolve_database(config.source)
    target_engine, target_params = resolve_database(config.target)
    LOGGER.info("Copying from %s (%s) to %s (%s)", source_params, source_engine.name, target_params, target_engine.name)

    async with source_engine.create_connection(
        source_params, log_sql=config.log_sql
    ) as source, target_engine.create_connection(target_params, log_sql=config.log_sql) as target:
        await run_script(source, config.source.init_sql)
        await run_script(target, config.target.init_sql)
        await run_script(target, config.init_sql)
        await run_script(target, config.pre_copy_sql)

        source_snapshot = await source_engine.create_explorer(source).snapshot(
            tables=options.tables.enabled,
            sequences=options.sequences.enabled,
        )
        target_snapshot = await target_engine.create_explorer(target).snapshot(
            tables=options.tables.enabled,
            sequences=options.sequences.enabled,
            foreign_keys=options.tables.enabled,
        )

        # snapshot queries may leave a transaction open on engines without auto-commit
        await source.commit()
        await target.commit()

        orchestrator = CopyOrchestrator(source, target, options, coercer=coercer, progress=progress)
        outcome = await orchestrator.run(source_snapshot, target_snapshot)

        if outcome.success:
            await run_script(target, config.post_sql)
            LOGGER.info(
                "Copied %d table(s) and %d sequence(s)",
                len(outcome.tables),
                len(outcome.sequences),
            )

        return outcome
