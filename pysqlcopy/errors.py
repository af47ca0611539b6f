"""
pysqlcopy: Copy sequences and table data between relational databases.

This module defines the exceptions raised while copying database objects.
"""

from typing import Optional


class CopyError(RuntimeError):
    "Base class for errors raised while copying database objects."


class SchemaMismatchError(CopyError):
    """
    Raised (or recorded) when an object selected for copying exists on one side only.

    Missing objects are skipped, not copied; the error is collected in the run outcome instead of being raised.
    """

    object_name: str

    def __init__(self, object_name: str, message: str) -> None:
        super().__init__(f"{object_name}: {message}")
        self.object_name = object_name


class VendorUnsupportedError(CopyError):
    "Raised when an operation is requested against a database engine that does not support it."

    engine: str

    def __init__(self, engine: str, operation: str) -> None:
        super().__init__(f"unsupported database engine for {operation}: {engine}")
        self.engine = engine


class ConstraintToggleError(CopyError):
    "Raised when foreign key checks or triggers cannot be disabled or re-enabled."

    toggle: str
    enable: bool

    def __init__(self, toggle: str, enable: bool) -> None:
        action = "enable" if enable else "disable"
        super().__init__(f"failed to {action} {toggle}")
        self.toggle = toggle
        self.enable = enable


class RowConversionError(CopyError):
    "Raised when a value read from the source cannot be converted for the target."

    table: str
    column: Optional[str]

    def __init__(self, table: str, column: Optional[str], message: str) -> None:
        if column is not None:
            super().__init__(f"table {table}, column {column}: {message}")
        else:
            super().__init__(f"table {table}: {message}")
        self.table = table
        self.column = column


class BatchExecutionError(CopyError):
    "Raised when a batch of rows cannot be inserted into the target table."

    table: str
    row: int

    def __init__(self, table: str, row: int) -> None:
        super().__init__(f"failed to insert batch into table {table} ending at row {row}")
        self.table = table
        self.row = row


class SequenceSyncError(CopyError):
    "Raised when a sequence cannot be re-created in the target database."

    sequence: str

    def __init__(self, sequence: str) -> None:
        super().__init__(f"failed to synchronize sequence {sequence}")
        self.sequence = sequence


class CopyAbortedError(CopyError):
    """
    Raised when a copy run stops on a fatal error.

    The primary error is available as `__cause__` (and `primary`); failures that occurred while restoring foreign key
    checks and triggers are listed in `secondary`, in the order they occurred.
    """

    primary: BaseException
    secondary: list[BaseException]

    def __init__(
        self, primary: BaseException, secondary: Optional[list[BaseException]] = None
    ) -> None:
        super().__init__()
        self.primary = primary
        self.secondary = list(secondary) if secondary else []

    def __str__(self) -> str:
        lines = [f"copy aborted: {self.primary}"]
        if self.primary.__cause__ is not None:
            lines.append(f"  caused by: {self.primary.__cause__}")
        for error in self.secondary:
            lines.append(f"  while restoring: {error}")
            if error.__cause__ is not None:
                lines.append(f"    caused by: {error.__cause__}")
        return "\n".join(lines)
