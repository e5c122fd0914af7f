"""Common exceptions for stablesnap.

Exception Design:
    The exception system uses error codes for categorization. All exceptions
    inherit from SnapshotError and include structured error information
    (message, code, details with the offending path, underlying cause).
    Subclasses exist only where callers must react differently:

    - ConfigError: bad input, fail before touching the tree
    - AccessError: one entry unreadable, folds into the stability verdict
    - WalkError: capture root untraversable
    - WriteError: archive could not be produced
"""

from stablesnap.common.exceptions import (
    AccessError,
    ConfigError,
    ErrorCode,
    SnapshotError,
    WalkError,
    WriteError,
    configuration_error,
    walk_error,
    write_error,
)

__all__ = [
    "SnapshotError",
    "ErrorCode",
    "ConfigError",
    "AccessError",
    "WalkError",
    "WriteError",
    "configuration_error",
    "walk_error",
    "write_error",
]
