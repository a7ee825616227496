"""Step-level run logging for the coaching pipeline.

Every pipeline step runs inside ComponentLogger.component(), which times it,
records success or the error type, and emits one structured entry. A run
closes with an "e2e" entry carrying the per-step summary. Entries go to the
module logger and, when a log directory is configured, to a daily JSONL file
that read_logs() can filter.
"""

import json
import logging
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)

# Correlation ids for the run in progress
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
call_id_ctx: ContextVar[str] = ContextVar("call_id", default="")

SEVERITY_LEVELS = {"INFO": logging.DEBUG, "WARNING": logging.WARNING, "ERROR": logging.ERROR}


def new_request_context(call_id: Optional[str] = None) -> str:
    """Start a run: mint a short request id and bind the call id.

    Returns:
        The new request id
    """
    request_id = uuid.uuid4().hex[:8]
    request_id_ctx.set(request_id)
    call_id_ctx.set(call_id or "")
    return request_id


@dataclass
class ComponentResult:
    """Outcome of one step; steps attach their own fields with result[key] = value."""

    success: bool = False
    error: Optional[str] = None
    error_type: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value

    def __getitem__(self, key: str) -> Any:
        return self.data.get(key)

    @property
    def severity(self) -> str:
        if self.error:
            return "ERROR"
        # Retrieval that fell back to an empty augmentation
        if self.data.get("degraded"):
            return "WARNING"
        return "INFO"


class ComponentLogger:
    """Times pipeline steps and writes one structured entry per step."""

    def __init__(self, service: str = "sales-coach", log_dir: Optional[Path] = None):
        """
        Args:
            service: Service label on every entry
            log_dir: Directory for daily JSONL files; None logs to the logger only
        """
        self.service = service
        self.log_dir = log_dir
        self._steps: dict[str, dict[str, Any]] = {}

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def component(self, name: str, **context: Any) -> Iterator[ComponentResult]:
        """Run a step, logging its duration and outcome even when it raises."""
        start = time.perf_counter()
        result = ComponentResult()
        try:
            yield result
            result.success = True
        except Exception as e:
            result.error = str(e)
            result.error_type = type(e).__name__
            raise
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)
            self._record_step(name, duration_ms, result, context)

    @property
    def step_timings(self) -> dict[str, int]:
        """Milliseconds per step for the run in progress."""
        return {name: step["duration_ms"] for name, step in self._steps.items()}

    def _base_entry(self, component: str, severity: str, success: bool, duration_ms: int) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service,
            "request_id": request_id_ctx.get(),
            "call_id": call_id_ctx.get(),
            "severity": severity,
            "component": component,
            "success": success,
            "duration_ms": duration_ms,
        }

    def _record_step(self, name: str, duration_ms: int, result: ComponentResult, context: dict) -> None:
        entry = self._base_entry(name, result.severity, result.success, duration_ms)
        if result.error:
            entry["error"] = result.error
            entry["error_type"] = result.error_type
        entry.update(result.data)
        entry.update(context)

        self._steps[name] = {"success": result.success, "duration_ms": duration_ms, **result.data}
        self._write(entry)

    def log_e2e_result(
        self,
        call_id: str,
        success: bool,
        total_duration_ms: int,
        error: Optional[str] = None,
    ) -> dict[str, Any]:
        """Close the run with a summary entry and reset the step table.

        Returns:
            The summary entry
        """
        entry = self._base_entry("e2e", "INFO" if success else "ERROR", success, total_duration_ms)
        entry["call_id"] = call_id
        entry["components"] = self._steps
        if error:
            entry["error"] = error

        self._write(entry)
        self._steps = {}
        return entry

    def _write(self, entry: dict[str, Any]) -> None:
        logger.log(
            SEVERITY_LEVELS[entry["severity"]],
            f"[{entry['request_id']}] {entry['component']} "
            f"success={entry['success']} duration_ms={entry['duration_ms']}",
        )
        if self.log_dir is None:
            return

        log_file = self.log_dir / f"coach_{datetime.now().strftime('%Y-%m-%d')}.jsonl"
        with open(log_file, "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")


def read_logs(
    log_dir: Path,
    date: Optional[str] = None,
    component: Optional[str] = None,
    call_id: Optional[str] = None,
) -> list[dict]:
    """
    Read one day of run entries.

    Args:
        log_dir: Directory containing coach_YYYY-MM-DD.jsonl files
        date: Day to read (YYYY-MM-DD), defaults to today
        component: Only entries for this step
        call_id: Only entries for this call

    Returns:
        Entries in the order they were written
    """
    log_file = log_dir / f"coach_{date or datetime.now().strftime('%Y-%m-%d')}.jsonl"
    if not log_file.exists():
        return []

    entries = []
    with open(log_file) as f:
        for line in f:
            if not line.strip():
                continue
            entry = json.loads(line)
            if component is not None and entry.get("component") != component:
                continue
            if call_id is not None and entry.get("call_id") != call_id:
                continue
            entries.append(entry)
    return entries
