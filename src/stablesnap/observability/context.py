"""Shared observability context for a capture run."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry.trace import Status, StatusCode
from pydantic import Field

from stablesnap.logging import get_logger
from stablesnap.logging.filters import clear_capture_context, set_capture_context
from stablesnap.telemetry import get_tracer
from stablesnap.types.base import SnapBaseModel


class CaptureContext(SnapBaseModel):
    """Observability context propagated across one capture run."""

    capture_id: str
    target: Optional[str] = None
    output: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def generate(cls, **kwargs: Any) -> "CaptureContext":
        """Generate a new context with a unique capture id."""
        return cls(capture_id=uuid.uuid4().hex, **kwargs)

    def to_telemetry_dict(self) -> Dict[str, str]:
        payload: Dict[str, str] = {"capture_id": self.capture_id}
        if self.target:
            payload["target"] = self.target
        if self.output:
            payload["output"] = self.output
        payload.update(sanitize_extras(self.attributes, prefix="ctx."))
        return payload


@contextmanager
def capture_scope(
    ctx: CaptureContext,
    *,
    operation: Optional[str] = None,
) -> Iterator[CaptureContext]:
    """Apply logging + tracing scope for a capture run."""
    set_capture_context(capture_id=ctx.capture_id)

    tracer = get_tracer("stablesnap")
    span_name = operation or "stablesnap.capture"

    with tracer.start_as_current_span(span_name) as span:
        for key, value in ctx.to_telemetry_dict().items():
            span.set_attribute(f"stablesnap.{key}", value)

        try:
            yield ctx
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR))
            get_logger(__name__).error(
                "Capture failed",
                extra={**ctx.to_telemetry_dict(), "operation.name": span_name},
                exc_info=True,
            )
            raise
        finally:
            clear_capture_context()


def sanitize_extras(
    extra: Optional[Dict[str, Any]],
    *,
    prefix: Optional[str] = None,
) -> Dict[str, str]:
    """Sanitize arbitrary telemetry extras into a JSON-safe dict."""
    if not extra:
        return {}

    result: Dict[str, str] = {}
    for key, value in extra.items():
        if value is None:
            continue
        field = f"{prefix}{key}" if prefix else str(key)
        result[field] = str(value)
    return result
