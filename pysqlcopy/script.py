"""
pysqlcopy: Copy sequences and table data between relational databases.

This module runs SQL scripts supplied by the user before and after the copy, e.g. to initialize a session.

A script is either inline SQL text, or a reference to a file with the prefix `@` or `file:`. Options that control how a
script is executed may be appended to a single-line script as a trailing comment, or given on the first line of a
file as a comment:
```
UPDATE config SET value = 1; -- errors=ignore
```
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

from .base import BaseContext

LOGGER = logging.getLogger("pysqlcopy")

_TRUE_WORDS = ("true", "yes", "on", "1")
_FALSE_WORDS = ("false", "no", "off", "0")


def parse_boolean(value: str, default: bool) -> bool:
    "Interprets a string as a Boolean, falling back to a default for blank or unrecognized values."

    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    elif word in _FALSE_WORDS:
        return False
    else:
        return default


@dataclass
class ScriptOptions:
    """
    Options that control how a script is executed.

    :param split: Whether to split a multi-line script into separate statements.
    :param comments: Whether to keep comments in statements.
    :param delimiter: Statement delimiter; `None` for the default of `;` at end of line, or `GO` or `/` on a line alone.
    :param ignore_errors: Whether to execute and commit each statement separately, logging failures and moving on.
    """

    split: bool = True
    comments: bool = True
    delimiter: Optional[str] = None
    ignore_errors: bool = False

    def parse(self, params: str) -> bool:
        """
        Updates options from a list of words such as `nosplit delimiter=/ errors=ignore`.

        :returns: True if the text is an option list, false if it is an ordinary comment.
        :raises ValueError: The text mixes known options with unknown words, or an option has an invalid value.
        """

        found = False
        unknown: Optional[str] = None
        for param in re.split(r"[ ,]+", params.strip()):
            name, _, value = param.partition("=")
            if not name:
                continue

            key = name.lower()
            if key == "delimiter":
                self.delimiter = value or None
            elif key == "split":
                self.split = parse_boolean(value, True)
            elif key == "nosplit":
                self.split = not parse_boolean(value, True)
            elif key == "comments":
                self.comments = parse_boolean(value, True)
            elif key == "nocomments":
                self.comments = not parse_boolean(value, True)
            elif key == "errors":
                mode = value.lower()
                if mode in ("ignore", "skip"):
                    self.ignore_errors = True
                elif mode in ("fail", "stop"):
                    self.ignore_errors = False
                else:
                    raise ValueError(f"invalid option: {param}")
            else:
                if unknown is None:
                    unknown = name
                continue

            found = True

        if unknown is not None and found:
            raise ValueError(f"invalid option: {unknown}")

        return found


def _read_file(reference: str) -> str:
    if reference.startswith("file:"):
        path = Path(url2pathname(urlparse(reference).path))
    else:
        path = Path(reference[1:])
    return "\n".join(path.read_text(encoding="utf-8").splitlines())


def strip_comments(sql: str) -> str:
    "Removes line comments (`--`) and block comments (`/* ... */`) outside string literals."

    return re.sub(
        r"('(?:[^']|'')*')|--[^\n]*|/\*.*?\*/",
        lambda m: m.group(1) or "",
        sql,
        flags=re.DOTALL,
    )


def split_statements(sql: str, delimiter: Optional[str] = None) -> list[str]:
    """
    Splits a multi-line script into statements.

    A statement ends where a line ends with the delimiter, or at a line that consists only of the delimiter, `GO`
    or `/`. The delimiter itself is not part of the statement.
    """

    end = delimiter or ";"
    statements: list[str] = []
    lines: list[str] = []

    def flush() -> None:
        statement = "\n".join(lines).strip()
        if statement:
            statements.append(statement)
        lines.clear()

    for line in sql.splitlines():
        stripped = line.strip()
        if stripped == end or stripped == "/" or stripped.upper() == "GO":
            flush()
        elif stripped.endswith(end):
            lines.append(line.rstrip()[: -len(end)])
            flush()
        else:
            lines.append(line)
    flush()

    return statements


def parse_script(value: str) -> tuple[list[str], ScriptOptions]:
    """
    Resolves a script reference into a list of statements and the options to execute them with.

    :param value: Inline SQL, or a file reference with the prefix `@` or `file:`.
    :returns: A tuple of statements and options.
    """

    options = ScriptOptions()

    reference = value
    m = re.fullmatch(r"(.+); ?--[ \t]*(.+)", value)
    if m is not None and options.parse(m.group(2)):
        reference = m.group(1)

    if reference.startswith(("file:", "@")):
        sql = _read_file(reference)

        # the first line of a file may hold options
        if sql.startswith("--"):
            first, sep, rest = sql.partition("\n")
            if sep and rest and options.parse(first[2:]):
                sql = rest
    else:
        sql = reference

    if "\n" not in sql:
        return [sql], options

    if not options.comments:
        sql = strip_comments(sql)
    if options.split:
        statements = split_statements(sql, options.delimiter)
    else:
        statement = sql.strip()
        statements = [statement] if statement else []
    return statements, options


async def run_script(context: BaseContext, value: Optional[str]) -> None:
    """
    Executes a user-supplied script outside the scope of the copy run.

    By default, all statements are executed and committed together, and the transaction is rolled back if any of them
    fails. With the option `errors=ignore`, each statement is committed on its own, and failures are logged.

    :param context: Connection to execute the script with.
    :param value: Inline SQL, or a file reference with the prefix `@` or `file:`. Nothing is done if empty.
    """

    if not value:
        return

    statements, options = parse_script(value)
    if options.ignore_errors:
        for statement in statements:
            try:
                await context.execute(statement)
                await context.commit()
            except Exception as e:
                await context.rollback()
                LOGGER.error("ignoring SQL error: %s", e.__cause__ or e)
    else:
        try:
            for statement in statements:
                await context.execute(statement)
            await context.commit()
        except Exception:
            try:
                await context.rollback()
            except Exception as rollback_error:
                LOGGER.warning("rollback failed: %s", rollback_error)
            raise
