"""Command-line entrypoint for lang-drift."""

from __future__ import annotations

import argparse
import json
import os
import signal
import sys
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from lang_drift.cache import CacheStorageError, JsonFileStore, KeyedCache
from lang_drift.cancel import CancelToken, OperationCancelledError
from lang_drift.config import AppConfig, CliOverrides, load_effective_config, parse_lang_codes
from lang_drift.content import LangCodesProvider, split_content_path
from lang_drift.git import (
    CommandRunner,
    CommitParseError,
    GitCommandError,
    LocalGitRepo,
    SubprocessRunner,
)
from lang_drift.history import CommitGraph, GraphConsistencyError, RefreshSummary
from lang_drift.logging import AUDIT_FILE_NAME, JsonlAuditLogger, build_event, new_run_id
from lang_drift.security import PathBlockedError
from lang_drift.seek import FileTranslationState, OriginStatus, StalenessDetector
from lang_drift.tasks import RefreshOutcome, RefreshTask, run_interval

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

AUDIT_DEFAULT_LIMIT = 50
AUDIT_LIMIT_CAP = 500

# Commands that inspect local state and never touch the working copy.
LOCAL_COMMANDS = frozenset({"audit", "config"})


@dataclass(slots=True, frozen=True)
class Application:
    """Wired collaborators for one configuration."""

    config: AppConfig
    repo: LocalGitRepo
    graph: CommitGraph
    detector: StalenessDetector
    task: RefreshTask
    langs: LangCodesProvider


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for the lang-drift command."""
    parser = argparse.ArgumentParser(
        prog="lang-drift",
        description="Report translated files whose origin-language source changed.",
    )
    parser.add_argument("--config", required=False, default=None)
    parser.add_argument("--repo-root", required=False, default=None)
    parser.add_argument("--cache-dir", required=False, default=None)
    parser.add_argument("--main-branch", required=False, default=None)
    parser.add_argument("--lang-codes", required=False, default=None)

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("refresh", help="fetch, invalidate stale cache entries and pull")

    check = commands.add_parser("check", help="check one language")
    check.add_argument("lang")
    check.add_argument("--path", action="append", dest="paths", default=None)
    check.add_argument("--no-refresh", action="store_true")

    commands.add_parser("langs", help="list translation language codes")

    run = commands.add_parser("run", help="refresh and check every language")
    run.add_argument("--interval", type=int, required=False, default=None)

    audit = commands.add_parser("audit", help="print recent audit events")
    audit.add_argument("--since", required=False, default=None)
    audit.add_argument("--limit", type=int, required=False, default=AUDIT_DEFAULT_LIMIT)
    audit.add_argument("--operation", required=False, default=None)
    audit.add_argument("--failed", action="store_true")

    commands.add_parser("config", help="print the effective configuration")
    return parser


def build_application(config: AppConfig, runner: CommandRunner | None = None) -> Application:
    """Wire backend, cache, resolver and detector for config."""
    repo = LocalGitRepo(
        config.repo_root,
        main_branch=config.main_branch,
        remote=config.remote,
        runner=runner or SubprocessRunner(timeout_seconds=config.git_timeout_seconds),
    )
    graph = CommitGraph(repo, KeyedCache(JsonFileStore(config.cache_dir)))
    detector = StalenessDetector(
        graph,
        repo,
        content_dir=config.content_dir,
        origin_lang=config.origin_lang,
        skip_files=config.skip_files,
    )
    return Application(
        config=config,
        repo=repo,
        graph=graph,
        detector=detector,
        task=RefreshTask(graph, detector),
        langs=LangCodesProvider(
            config.repo_root,
            content_dir=config.content_dir,
            origin_lang=config.origin_lang,
            allowed=config.lang_codes,
        ),
    )


def error_code_for(error: Exception) -> str | None:
    """Map a known failure to its stable error code; None for unknown errors."""
    if isinstance(error, OperationCancelledError):
        return "CANCELLED"
    if isinstance(error, GitCommandError):
        return "GIT_COMMAND_FAILED"
    if isinstance(error, CommitParseError):
        return "COMMIT_PARSE_FAILED"
    if isinstance(error, CacheStorageError):
        return "CACHE_STORAGE_FAILED"
    if isinstance(error, GraphConsistencyError):
        return "GRAPH_CONSISTENCY_VIOLATION"
    if isinstance(error, PathBlockedError):
        return "PATH_BLOCKED"
    if isinstance(error, FileNotFoundError):
        return "NOT_FOUND"
    return None


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the lang-drift command."""
    out = sys.stdout
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    overrides = CliOverrides(
        repo_root=Path(args.repo_root) if args.repo_root is not None else None,
        cache_dir=Path(args.cache_dir) if args.cache_dir is not None else None,
        main_branch=args.main_branch,
        lang_codes=parse_lang_codes(args.lang_codes) if args.lang_codes is not None else None,
        refresh_interval_minutes=getattr(args, "interval", None),
    )
    try:
        config = load_effective_config(
            Path.cwd(),
            config_path=Path(args.config) if args.config is not None else None,
            environ=os.environ,
            overrides=overrides,
        )
    except ValueError as error:
        _write_json(out, _error_payload("INVALID_CONFIG", error))
        return EXIT_CONFIG

    app = build_application(config)
    cancel = CancelToken()
    run_id = new_run_id()
    with _signals_cancel(cancel):
        if args.command == "run" and config.refresh_interval_minutes > 0:
            return _run_scheduled(app, run_id, cancel, out)
        return _run_once(app, args, run_id, cancel, out)


def _run_once(
    app: Application,
    args: argparse.Namespace,
    run_id: str,
    cancel: CancelToken,
    out: TextIO,
) -> int:
    handlers: dict[str, Callable[[], tuple[dict[str, object], dict[str, object]]]] = {
        "refresh": lambda: _refresh(app, cancel),
        "check": lambda: _check(app, args, cancel),
        "langs": lambda: _langs(app),
        "run": lambda: _run(app, cancel),
        "audit": lambda: _audit_events(app, args),
        "config": lambda: _config(app),
    }
    started = time.monotonic()
    try:
        if args.command not in LOCAL_COMMANDS:
            _ensure_repository(app, cancel)
        payload, metadata = handlers[args.command]()
    except Exception as error:
        code = error_code_for(error) or "INTERNAL_ERROR"
        _audit(app, run_id, args.command, started, code, {"error_type": type(error).__name__})
        _write_json(out, _error_payload(code, error))
        return EXIT_FAILED
    _audit(app, run_id, args.command, started, None, metadata)
    _write_json(out, payload)
    return EXIT_OK


def _run_scheduled(app: Application, run_id: str, cancel: CancelToken, out: TextIO) -> int:
    interval_seconds = app.config.refresh_interval_minutes * 60
    tick_started = time.monotonic()

    def on_outcome(outcome: RefreshOutcome) -> None:
        _audit(app, run_id, "run", tick_started, None, _outcome_metadata(outcome))
        out.write(json.dumps(outcome.to_dict(), sort_keys=True))
        out.write("\n")
        out.flush()

    def on_error(error: Exception) -> None:
        code = error_code_for(error) or "INTERNAL_ERROR"
        _audit(app, run_id, "run", tick_started, code, {"error_type": type(error).__name__})
        print(f"lang-drift: scheduled run failed ({code}): {error}", file=sys.stderr)

    def lang_codes() -> list[str]:
        nonlocal tick_started
        tick_started = time.monotonic()
        return app.langs.lang_codes()

    try:
        _ensure_repository(app, cancel)
    except Exception as error:
        code = error_code_for(error) or "INTERNAL_ERROR"
        _audit(app, run_id, "run", tick_started, code, {"error_type": type(error).__name__})
        _write_json(out, _error_payload(code, error))
        return EXIT_FAILED

    print(
        f"lang-drift: refreshing every {app.config.refresh_interval_minutes} minute(s)",
        file=sys.stderr,
    )
    run_interval(
        app.task,
        lang_codes,
        interval_seconds,
        cancel,
        on_error=on_error,
        on_outcome=on_outcome,
    )
    return EXIT_OK


def _ensure_repository(app: Application, cancel: CancelToken) -> None:
    if (app.config.repo_root / ".git").exists():
        return
    if not app.config.clone_url:
        raise FileNotFoundError(
            f"No git working copy at {app.config.repo_root} and no clone_url configured."
        )
    print(f"lang-drift: cloning {app.config.clone_url}", file=sys.stderr)
    app.repo.clone(app.config.clone_url, cancel)


def _refresh(app: Application, cancel: CancelToken) -> tuple[dict[str, object], dict[str, object]]:
    summary = app.task.refresh(cancel)
    affected = _affected_lang_codes(summary, app.config.content_dir)
    metadata: dict[str, object] = {
        "lang_codes": affected,
        "fresh_commits": len(summary.fresh_commits),
        "merge_commits": len(summary.merge_commits),
        "invalidated_paths": len(summary.invalidated_paths),
        "main_branch_invalidated": summary.main_branch_invalidated,
    }
    return {**summary.to_dict(), "affected_lang_codes": affected}, metadata


def _affected_lang_codes(summary: RefreshSummary, content_dir: str) -> list[str]:
    codes: set[str] = set()
    for path in summary.invalidated_paths:
        split = split_content_path(path, content_dir)
        if split is not None:
            codes.add(split[0])
    return sorted(codes)


def _check(
    app: Application, args: argparse.Namespace, cancel: CancelToken
) -> tuple[dict[str, object], dict[str, object]]:
    summary = None if args.no_refresh else app.task.refresh(cancel)
    if args.paths:
        states = app.task.check_files(args.paths, args.lang, cancel)
    else:
        outcome = app.task.run([args.lang], pull=False, cancel=cancel)
        states = outcome.results[args.lang]
    payload: dict[str, object] = {
        "lang_code": args.lang,
        "refresh": summary.to_dict() if summary is not None else None,
        "files": [state.to_dict() for state in states],
    }
    metadata = {"lang_code": args.lang, "refreshed": summary is not None, **_counts(states)}
    return payload, metadata


def _langs(app: Application) -> tuple[dict[str, object], dict[str, object]]:
    codes = app.langs.lang_codes()
    return {"lang_codes": codes}, {"lang_codes": codes}


def _run(app: Application, cancel: CancelToken) -> tuple[dict[str, object], dict[str, object]]:
    outcome = app.task.run(app.langs.lang_codes(), cancel=cancel)
    return outcome.to_dict(), _outcome_metadata(outcome)


def _audit_events(
    app: Application, args: argparse.Namespace
) -> tuple[dict[str, object], dict[str, object]]:
    limit = min(max(args.limit, 1), AUDIT_LIMIT_CAP)
    events = JsonlAuditLogger(app.config.cache_dir / AUDIT_FILE_NAME).read(
        since=args.since,
        limit=limit,
        operation=args.operation,
        failed_only=args.failed,
    )
    return {"events": events}, {"events": len(events), "limit": limit}


def _config(app: Application) -> tuple[dict[str, object], dict[str, object]]:
    config = app.config
    metadata: dict[str, object] = {
        "lang_codes": list(config.lang_codes),
        "main_branch": config.main_branch,
        "remote": config.remote,
    }
    return {"effective_config": config.to_public_dict()}, metadata


def _outcome_metadata(outcome: RefreshOutcome) -> dict[str, object]:
    states = [state for lang_states in outcome.results.values() for state in lang_states]
    metadata: dict[str, object] = {"lang_codes": sorted(outcome.results), **_counts(states)}
    if outcome.refresh is not None:
        metadata["fresh_commits"] = len(outcome.refresh.fresh_commits)
        metadata["invalidated_paths"] = len(outcome.refresh.invalidated_paths)
    return metadata


def _counts(states: list[FileTranslationState]) -> dict[str, object]:
    return {
        "files": len(states),
        "modified": sum(1 for s in states if s.origin_status is OriginStatus.MODIFIED),
        "not_exist": sum(1 for s in states if s.origin_status is OriginStatus.NOT_EXIST),
    }


def _audit(
    app: Application,
    run_id: str,
    operation: str,
    started: float,
    error_code: str | None,
    metadata: dict[str, object],
) -> None:
    duration_ms = int((time.monotonic() - started) * 1000)
    JsonlAuditLogger(app.config.cache_dir / AUDIT_FILE_NAME).append(
        build_event(
            run_id=run_id,
            operation=operation,
            ok=error_code is None,
            error_code=error_code,
            metadata={**metadata, "duration_ms": duration_ms},
        )
    )


def _error_payload(code: str, error: Exception) -> dict[str, object]:
    return {"ok": False, "error": {"code": code, "message": str(error)}}


def _write_json(out: TextIO, payload: dict[str, object]) -> None:
    out.write(json.dumps(payload, indent=2, sort_keys=True))
    out.write("\n")
    out.flush()


@contextmanager
def _signals_cancel(cancel: CancelToken) -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum: int, frame: object) -> None:
        cancel.cancel()

    previous = {sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, old_handler in previous.items():
            signal.signal(sig, old_handler)


if __name__ == "__main__":
    raise SystemExit(main())
