"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from lang_drift.content import DEFAULT_CONTENT_DIR, DEFAULT_ORIGIN_LANG
from lang_drift.seek import DEFAULT_SKIP_FILES

CONFIG_FILE_NAME = "lang_drift.toml"
CACHE_DIR_NAME = ".lang_drift"

DEFAULT_MAIN_BRANCH = "main"
DEFAULT_REMOTE = "origin"
DEFAULT_GIT_TIMEOUT_SECONDS = 600
GIT_TIMEOUT_SECONDS_CAP = 3600

ENV_REPO_DIR = "LANG_DRIFT_REPO_DIR"
ENV_CACHE_DIR = "LANG_DRIFT_CACHE_DIR"
ENV_LANG_CODES = "LANG_DRIFT_LANG_CODES"


@dataclass(slots=True, frozen=True)
class AppConfig:
    """Fully merged lang-drift configuration."""

    repo_root: Path
    cache_dir: Path
    main_branch: str = DEFAULT_MAIN_BRANCH
    remote: str = DEFAULT_REMOTE
    content_dir: str = DEFAULT_CONTENT_DIR
    origin_lang: str = DEFAULT_ORIGIN_LANG
    lang_codes: tuple[str, ...] = ()
    skip_files: tuple[str, ...] = DEFAULT_SKIP_FILES
    git_timeout_seconds: int = DEFAULT_GIT_TIMEOUT_SECONDS
    refresh_interval_minutes: int = 0
    clone_url: str | None = None

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot."""
        return {
            "repository": {
                "repo_root": str(self.repo_root),
                "cache_dir": str(self.cache_dir),
                "main_branch": self.main_branch,
                "remote": self.remote,
                "clone_url": self.clone_url,
            },
            "content": {
                "content_dir": self.content_dir,
                "origin_lang": self.origin_lang,
                "lang_codes": list(self.lang_codes),
                "skip_files": list(self.skip_files),
            },
            "git": {
                "timeout_seconds": self.git_timeout_seconds,
            },
            "schedule": {
                "refresh_interval_minutes": self.refresh_interval_minutes,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    repo_root: Path | None = None
    cache_dir: Path | None = None
    main_branch: str | None = None
    lang_codes: tuple[str, ...] | None = None
    refresh_interval_minutes: int | None = None


def default_config(base_dir: Path) -> AppConfig:
    """Build default config rooted at base_dir."""
    resolved = base_dir.resolve()
    return AppConfig(repo_root=resolved, cache_dir=resolved / CACHE_DIR_NAME)


def load_config_file(path: Path, required: bool = False) -> dict[str, object]:
    """Load a TOML config file; a missing optional file yields an empty table."""
    if not path.exists():
        if required:
            raise ValueError(f"Config file does not exist: {path}")
        return {}
    with path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{path.name} must contain a top-level table.")
    return payload


def _get_table(payload: Mapping[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item:
            raise ValueError(f"Config field '{section}.{field}' must contain non-empty strings.")
        output.append(item)
    return tuple(output)


def _optional_string(value: object, section: str, field: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Config field '{section}.{field}' must be a non-empty string.")
    return value


def _optional_path(
    value: object, section: str, field: str, base_dir: Path, default: Path
) -> Path:
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Config field '{section}.{field}' must be a non-empty path string.")
    return (base_dir / value).resolve()


def _optional_int_with_bounds(
    value: object,
    name: str,
    default: int,
    minimum: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        qualifier = "a positive" if minimum > 0 else "a non-negative"
        raise ValueError(f"Config field '{name}' must be {qualifier} integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value


def merge_config(base: AppConfig, payload: Mapping[str, object], base_dir: Path) -> AppConfig:
    """Merge a parsed TOML payload over base; relative paths resolve against base_dir."""
    repository = _get_table(payload, "repository")
    content = _get_table(payload, "content")
    git = _get_table(payload, "git")
    schedule = _get_table(payload, "schedule")

    repo_root = _optional_path(
        repository.get("repo_root"), "repository", "repo_root", base_dir, base.repo_root
    )
    default_cache = base.cache_dir
    if "repo_root" in repository and base.cache_dir == base.repo_root / CACHE_DIR_NAME:
        default_cache = repo_root / CACHE_DIR_NAME
    cache_dir = _optional_path(
        repository.get("cache_dir"), "repository", "cache_dir", base_dir, default_cache
    )

    clone_url = base.clone_url
    if "clone_url" in repository:
        clone_url = _optional_string(repository["clone_url"], "repository", "clone_url", "")

    lang_codes = base.lang_codes
    if "lang_codes" in content:
        lang_codes = _tuple_of_strings(content["lang_codes"], "content", "lang_codes")
    skip_files = base.skip_files
    if "skip_files" in content:
        skip_files = _tuple_of_strings(content["skip_files"], "content", "skip_files")

    return AppConfig(
        repo_root=repo_root,
        cache_dir=cache_dir,
        main_branch=_optional_string(
            repository.get("main_branch"), "repository", "main_branch", base.main_branch
        ),
        remote=_optional_string(repository.get("remote"), "repository", "remote", base.remote),
        content_dir=_optional_string(
            content.get("content_dir"), "content", "content_dir", base.content_dir
        ),
        origin_lang=_optional_string(
            content.get("origin_lang"), "content", "origin_lang", base.origin_lang
        ),
        lang_codes=lang_codes,
        skip_files=skip_files,
        git_timeout_seconds=_optional_int_with_bounds(
            git.get("timeout_seconds"),
            "git.timeout_seconds",
            base.git_timeout_seconds,
            minimum=1,
            cap=GIT_TIMEOUT_SECONDS_CAP,
        ),
        refresh_interval_minutes=_optional_int_with_bounds(
            schedule.get("refresh_interval_minutes"),
            "schedule.refresh_interval_minutes",
            base.refresh_interval_minutes,
            minimum=0,
            cap=None,
        ),
        clone_url=clone_url,
    )


def apply_environment(config: AppConfig, environ: Mapping[str, str]) -> AppConfig:
    """Apply LANG_DRIFT_* environment variables over config."""
    repo_root = config.repo_root
    cache_dir = config.cache_dir
    lang_codes = config.lang_codes

    raw_repo = environ.get(ENV_REPO_DIR, "").strip()
    if raw_repo:
        repo_root = Path(raw_repo).resolve()
        if config.cache_dir == config.repo_root / CACHE_DIR_NAME:
            cache_dir = repo_root / CACHE_DIR_NAME
    raw_cache = environ.get(ENV_CACHE_DIR, "").strip()
    if raw_cache:
        cache_dir = Path(raw_cache).resolve()
    raw_langs = environ.get(ENV_LANG_CODES)
    if raw_langs is not None:
        lang_codes = parse_lang_codes(raw_langs)

    return replace(config, repo_root=repo_root, cache_dir=cache_dir, lang_codes=lang_codes)


def apply_cli_overrides(config: AppConfig, overrides: CliOverrides) -> AppConfig:
    """Apply startup overrides at highest precedence."""
    repo_root = overrides.repo_root.resolve() if overrides.repo_root else config.repo_root
    cache_dir = config.cache_dir
    if overrides.repo_root is not None and config.cache_dir == config.repo_root / CACHE_DIR_NAME:
        cache_dir = repo_root / CACHE_DIR_NAME
    if overrides.cache_dir is not None:
        cache_dir = overrides.cache_dir.resolve()

    return replace(
        config,
        repo_root=repo_root,
        cache_dir=cache_dir,
        main_branch=_optional_string(
            overrides.main_branch, "overrides", "main_branch", config.main_branch
        ),
        lang_codes=(
            overrides.lang_codes if overrides.lang_codes is not None else config.lang_codes
        ),
        refresh_interval_minutes=_optional_int_with_bounds(
            overrides.refresh_interval_minutes,
            "overrides.refresh_interval_minutes",
            config.refresh_interval_minutes,
            minimum=0,
            cap=None,
        ),
    )


def parse_lang_codes(raw: str) -> tuple[str, ...]:
    """Split a comma separated language list, dropping blanks."""
    return tuple(code.strip() for code in raw.split(",") if code.strip())


def load_effective_config(
    base_dir: Path,
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: CliOverrides | None = None,
) -> AppConfig:
    """Load effective config: defaults -> TOML file -> environment -> overrides."""
    resolved_base = base_dir.resolve()
    config = default_config(resolved_base)
    if config_path is not None:
        payload = load_config_file(config_path, required=True)
        file_dir = config_path.resolve().parent
    else:
        payload = load_config_file(resolved_base / CONFIG_FILE_NAME)
        file_dir = resolved_base
    config = merge_config(config, payload, file_dir)
    config = apply_environment(config, environ or {})
    return apply_cli_overrides(config, overrides or CliOverrides())

