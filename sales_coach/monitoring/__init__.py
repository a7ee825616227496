"""Component-level monitoring for the coaching pipeline."""

from sales_coach.monitoring.logging import (
    ComponentLogger,
    ComponentResult,
    call_id_ctx,
    new_request_context,
    read_logs,
)

__all__ = [
    "ComponentLogger",
    "ComponentResult",
    "call_id_ctx",
    "new_request_context",
    "read_logs",
]
