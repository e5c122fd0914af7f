import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union


class ErrorCode(Enum):
    """Standard error codes for stablesnap operations.

    This enum provides categorized error codes that can be used
    to identify error types without inspecting messages. Each category
    has a specific prefix for easy identification.

    Attributes:
        CONFIG_*: Configuration and input validation errors
        ACCESS_*: Per-entry errors during a walk or read (non-fatal)
        WALK_*: Capture root could not be traversed (fatal)
        WRITE_*: Archive output could not be produced (fatal)
    """
    # Configuration errors
    CONFIG_ERROR = "CONFIG_001"
    CONFIG_INVALID = "CONFIG_002"
    TARGET_NOT_FOUND = "CONFIG_003"
    TARGET_NOT_DIRECTORY = "CONFIG_004"

    # Access errors
    ACCESS_ERROR = "ACCESS_001"
    ENTRY_VANISHED = "ACCESS_002"
    PERMISSION_DENIED = "ACCESS_003"
    PERSISTENTLY_INACCESSIBLE = "ACCESS_004"

    # Walk errors
    WALK_ERROR = "WALK_001"
    ROOT_UNREADABLE = "WALK_002"

    # Write errors
    WRITE_ERROR = "WRITE_001"
    DESTINATION_UNAVAILABLE = "WRITE_002"


class SnapshotError(Exception):
    """Base exception for all stablesnap errors.

    Subclasses only narrow the error kind; categorisation within a kind uses
    error codes instead of further exception classes.

    Attributes:
        message: Error message
        error_code: Error code from ErrorCode enum
        details: Additional error details
        cause: Optional underlying exception
    """

    default_code: ErrorCode = ErrorCode.CONFIG_ERROR
    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        """Initialize stablesnap error.

        Args:
            message: Error message
            error_code: Error code from ErrorCode enum, defaults to the
                subclass's ``default_code``
            details: Additional error details
            cause: Optional underlying exception
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause

        # Lazy import to avoid circular dependency
        from stablesnap.logging import get_logger
        get_logger(__name__).log(
            self.log_level,
            message,
            extra={"error_code": self.error_code.value, "details": self.details},
            exc_info=cause is not None and self.log_level >= logging.ERROR,
        )

    def __str__(self) -> str:
        """String representation of the error."""
        msg = f"[{self.error_code.value}] {self.message}"
        if self.cause:
            msg = f"{msg} (caused by: {type(self.cause).__name__}: {str(self.cause)})"
        return msg

    @property
    def path(self) -> Optional[str]:
        return self.details.get("path")

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
        }


class ConfigError(SnapshotError):
    """Bad or missing input parameters. Fatal, never retried."""

    default_code = ErrorCode.CONFIG_ERROR


class AccessError(SnapshotError):
    """A single entry could not be probed or read.

    Expected while the tree is changing: it is folded into the stability
    verdict rather than aborting the walk.
    """

    default_code = ErrorCode.ACCESS_ERROR
    log_level = logging.DEBUG

    @classmethod
    def from_os_error(cls, path: Union[str, Path], exc: OSError) -> "AccessError":
        if isinstance(exc, FileNotFoundError):
            code = ErrorCode.ENTRY_VANISHED
        elif isinstance(exc, PermissionError):
            code = ErrorCode.PERMISSION_DENIED
        else:
            code = ErrorCode.ACCESS_ERROR
        return cls(
            f"Cannot access {path}: {exc.strerror or exc}",
            error_code=code,
            details={"path": str(path)},
            cause=exc,
        )


class WalkError(SnapshotError):
    """The capture root itself cannot be traversed."""

    default_code = ErrorCode.WALK_ERROR


class WriteError(SnapshotError):
    """The archive could not be created or finished."""

    default_code = ErrorCode.WRITE_ERROR


# Helper functions for common error scenarios
def configuration_error(
    message: str,
    config_key: Optional[str] = None,
    value: Any = None,
    **kwargs
) -> ConfigError:
    """Create a configuration error.

    Args:
        message: Error message
        config_key: Configuration key that caused the error
        value: Offending value
        **kwargs: Additional ConfigError arguments

    Returns:
        ConfigError with CONFIG_* code
    """
    details = kwargs.pop("details", None) or {}
    if config_key:
        details["config_key"] = config_key
    if value is not None:
        details["value"] = str(value)
    return ConfigError(message, details=details, **kwargs)


def walk_error(message: str, root: Union[str, Path], cause: Optional[BaseException] = None) -> WalkError:
    """Create a walk error for an untraversable capture root."""
    return WalkError(
        message,
        error_code=ErrorCode.ROOT_UNREADABLE,
        details={"path": str(root)},
        cause=cause,
    )


def write_error(
    message: str,
    destination: Union[str, Path],
    cause: Optional[BaseException] = None,
    error_code: ErrorCode = ErrorCode.WRITE_ERROR,
) -> WriteError:
    """Create a write error for the archive destination."""
    return WriteError(
        message,
        error_code=error_code,
        details={"path": str(destination)},
        cause=cause,
    )
