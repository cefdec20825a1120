"""Path resolution helpers for working-copy scoped file access."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Final

WINDOWS_DRIVE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:[\\/]")


class PathBlockedError(ValueError):
    """Raised when a requested path escapes the working copy."""

    def __init__(self, reason: str, path: str) -> None:
        super().__init__(f"{reason} (path={path!r})")
        self.reason = reason
        self.path = path


def normalize_repo_path(candidate: str) -> str:
    """Normalize separators and strip leading slashes and './' segments."""
    normalized = candidate.replace("\\", "/")
    if WINDOWS_DRIVE_PATTERN.match(normalized):
        raise PathBlockedError("Drive-qualified paths are not repository-relative.", candidate)
    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if any(part == ".." for part in parts):
        raise PathBlockedError("Path traversal is blocked.", candidate)
    return "/".join(parts)


def resolve_repo_path(repo_root: Path, candidate: str) -> Path:
    """Resolve a repository-relative path, refusing anything outside repo_root."""
    root = repo_root.resolve()
    normalized = normalize_repo_path(candidate)
    if not normalized:
        return root
    resolved = (root / Path(*normalized.split("/"))).resolve(strict=False)
    if not resolved.is_relative_to(root):
        raise PathBlockedError("Resolved path escapes repo_root.", candidate)
    return resolved
