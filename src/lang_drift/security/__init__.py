"""Working-copy path safety primitives."""

from .paths import PathBlockedError, normalize_repo_path, resolve_repo_path

__all__ = ["PathBlockedError", "normalize_repo_path", "resolve_repo_path"]
