"""Serialized refresh-then-detect runs, once or on an interval."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from lang_drift.cancel import CancelToken, OperationCancelledError, check_cancelled
from lang_drift.history import CommitGraph, RefreshSummary
from lang_drift.seek import FileTranslationState, StalenessDetector


@dataclass(slots=True, frozen=True)
class RefreshOutcome:
    """Result of one RefreshTask.run call."""

    refresh: RefreshSummary | None
    results: dict[str, list[FileTranslationState]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-ready representation."""
        return {
            "refresh": self.refresh.to_dict() if self.refresh is not None else None,
            "results": {
                lang_code: [state.to_dict() for state in states]
                for lang_code, states in sorted(self.results.items())
            },
        }


class RefreshTask:
    """Runs pull_refresh followed by per-language checks, one caller at a time.

    Detection must not observe a half-refreshed cache, so the whole sequence runs
    under a single lock; a concurrent caller blocks until the running one returns.
    """

    def __init__(self, graph: CommitGraph, detector: StalenessDetector) -> None:
        self._graph = graph
        self._detector = detector
        self._lock = threading.Lock()

    def run(
        self,
        lang_codes: list[str],
        pull: bool = True,
        cancel: CancelToken | None = None,
    ) -> RefreshOutcome:
        """Optionally refresh from the remote, then check every language."""
        with self._lock:
            summary = self._graph.pull_refresh(cancel) if pull else None
            results: dict[str, list[FileTranslationState]] = {}
            for lang_code in lang_codes:
                check_cancelled(cancel, f"check {lang_code}")
                results[lang_code] = self._detector.check_lang(lang_code, cancel)
            return RefreshOutcome(refresh=summary, results=results)

    def refresh(self, cancel: CancelToken | None = None) -> RefreshSummary:
        """Run pull_refresh alone under the task lock."""
        with self._lock:
            return self._graph.pull_refresh(cancel)

    def check_files(
        self,
        rel_paths: list[str],
        lang_code: str,
        cancel: CancelToken | None = None,
    ) -> list[FileTranslationState]:
        """Check selected files under the task lock."""
        with self._lock:
            return self._detector.check_files(rel_paths, lang_code, cancel)


def run_interval(
    task: RefreshTask,
    lang_codes_provider: Callable[[], list[str]],
    interval_seconds: float,
    stop_event: CancelToken,
    on_error: Callable[[Exception], None],
    on_outcome: Callable[[RefreshOutcome], None] | None = None,
) -> int:
    """Run task every interval_seconds until stop_event is cancelled.

    Failures are reported through on_error and retried at the next tick. Returns
    the number of runs that completed successfully.
    """
    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive.")
    completed = 0
    while not stop_event.cancelled:
        try:
            outcome = task.run(lang_codes_provider(), cancel=stop_event)
        except OperationCancelledError:
            break
        except Exception as error:
            on_error(error)
        else:
            completed += 1
            if on_outcome is not None:
                on_outcome(outcome)
        if stop_event.wait(interval_seconds):
            break
    return completed
