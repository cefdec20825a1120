"""Structured JSONL audit log utilities."""

from __future__ import annotations

import json
import uuid
from collections import deque
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

AUDIT_FILE_NAME = "audit.jsonl"

_VERBATIM_STRING_KEYS = {"lang_code", "command", "main_branch", "remote", "error_type"}
_VERBATIM_LIST_KEYS = {"lang_codes"}


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """Sanitized record of one lang-drift operation."""

    timestamp: str
    run_id: str
    operation: str
    ok: bool
    error_code: str | None
    metadata: dict[str, object]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_run_id() -> str:
    """Return an identifier shared by every event of one process run."""
    return uuid.uuid4().hex


def sanitize_metadata(metadata: dict[str, object]) -> dict[str, object]:
    """Reduce metadata to counts and identifiers; never log paths or messages."""
    sanitized: dict[str, object] = {}
    for key in sorted(metadata.keys()):
        value = metadata[key]
        if key in _VERBATIM_STRING_KEYS and isinstance(value, str):
            sanitized[key] = value
            continue
        if key in _VERBATIM_LIST_KEYS and isinstance(value, (list, tuple)):
            sanitized[key] = [str(item) for item in value]
            continue
        if isinstance(value, (int, float, bool)) or value is None:
            sanitized[key] = value
            continue
        if isinstance(value, str):
            sanitized[f"{key}_present"] = True
            sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, (list, tuple)):
            sanitized[f"{key}_type"] = "list"
            sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, dict):
            sanitized[f"{key}_type"] = "dict"
            sanitized[f"{key}_keys"] = sorted(str(k) for k in value.keys())
            continue
        sanitized[f"{key}_type"] = type(value).__name__
    return sanitized


def build_event(
    run_id: str,
    operation: str,
    ok: bool,
    error_code: str | None = None,
    metadata: dict[str, object] | None = None,
) -> AuditEvent:
    """Create a timestamped event with sanitized metadata."""
    return AuditEvent(
        timestamp=utc_timestamp(),
        run_id=run_id,
        operation=operation,
        ok=ok,
        error_code=error_code,
        metadata=sanitize_metadata(metadata or {}),
    )


class JsonlAuditLogger:
    """Append-only JSONL audit logger and bounded reader."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        """Return on-disk JSONL path."""
        return self._path

    def append(self, event: AuditEvent) -> None:
        """Append an event as one JSON object per line."""
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True))
            handle.write("\n")

    def read(
        self,
        since: str | None = None,
        limit: int = 50,
        operation: str | None = None,
        failed_only: bool = False,
    ) -> list[dict[str, object]]:
        """Return the newest matching events, oldest first, skipping corrupt lines."""
        if limit < 1 or not self._path.exists():
            return []
        matched: deque[dict[str, object]] = deque(maxlen=limit)
        for event in self._events():
            if since is not None and str(event.get("timestamp", "")) < since:
                continue
            if operation is not None and event.get("operation") != operation:
                continue
            if failed_only and event.get("ok") is not False:
                continue
            matched.append(event)
        return list(matched)

    def _events(self) -> Iterator[dict[str, object]]:
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                if not line.strip():
                    continue
                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(event, dict):
                    yield event
