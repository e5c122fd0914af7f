from pathlib import Path
from typing import Any, Dict, Optional

import zstandard
from pydantic import Field, ValidationError, field_validator

from stablesnap.common.exceptions import ErrorCode, configuration_error
from stablesnap.constants import (
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_OUTPUT_PATH,
    MIN_COMPRESSION_LEVEL,
    LogFormat,
)
from .base import SnapBaseSettings


class CaptureSettings(SnapBaseSettings):

    target_directory: Path = Field(
        ...,
        description="Directory tree to capture. Must exist and be a directory."
    )
    output_path: Path = Field(
        default=Path(DEFAULT_OUTPUT_PATH),
        description="Destination of the compressed tar archive"
    )
    max_retries: int = Field(
        default=5,
        ge=1,
        description="Total number of capture attempts before giving up on an unsettled tree"
    )
    compression_level: int = Field(
        default=DEFAULT_COMPRESSION_LEVEL,
        ge=MIN_COMPRESSION_LEVEL,
        le=zstandard.MAX_COMPRESSION_LEVEL,
        description="zstd compression level"
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Worker threads used to read file contents within one attempt"
    )
    retry_delay_seconds: float = Field(
        default=0.0,
        ge=0.0,
        le=300.0,
        description="Pause between an unstable attempt and the next one"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: LogFormat = Field(
        default=LogFormat.JSON,
        description="Console log layout: 'json' or 'text'"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalise the log level name."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("output_path")
    @classmethod
    def validate_output_path(cls, v: Path) -> Path:
        if not v.name:
            raise ValueError("Output path must name a file")
        return v

    @property
    def resolved_target(self) -> Path:
        return self.target_directory.expanduser().resolve()

    @property
    def resolved_output(self) -> Path:
        return self.output_path.expanduser().resolve()

    def validate_target(self) -> None:
        """Check that the capture root exists and is a directory.

        Raises:
            ConfigError: TARGET_NOT_FOUND or TARGET_NOT_DIRECTORY
        """
        target = self.target_directory.expanduser()
        if not target.exists():
            raise configuration_error(
                f"Target directory does not exist: {target}",
                config_key="target_directory",
                value=target,
                error_code=ErrorCode.TARGET_NOT_FOUND,
            )
        if not target.is_dir():
            raise configuration_error(
                f"Target is not a directory: {target}",
                config_key="target_directory",
                value=target,
                error_code=ErrorCode.TARGET_NOT_DIRECTORY,
            )
        if self.resolved_output.is_dir():
            raise configuration_error(
                f"Output path is a directory: {self.output_path}",
                config_key="output_path",
                value=self.output_path,
            )


def load_settings(**overrides: Any) -> CaptureSettings:
    """Build validated capture settings.

    Explicit overrides win over ``STABLESNAP_*`` environment variables and the
    ``.env`` file, which win over defaults. ``None`` overrides are ignored so
    unset CLI options fall through to the environment.

    Raises:
        ConfigError: if any value is missing or invalid, or the target is not
            an existing directory
    """
    values: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    try:
        settings = CaptureSettings(**values)
    except ValidationError as exc:
        first: Optional[Dict[str, Any]] = exc.errors()[0] if exc.errors() else None
        field = ".".join(str(part) for part in first["loc"]) if first else None
        reason = first["msg"] if first else str(exc)
        raise configuration_error(
            f"Invalid configuration for {field or 'settings'}: {reason}",
            config_key=field,
            error_code=ErrorCode.CONFIG_INVALID,
            details={"errors": exc.error_count()},
        ) from exc
    settings.validate_target()
    return settings
