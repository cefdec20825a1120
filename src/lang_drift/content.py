"""Layout of the multi-language content tree inside the repository."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

DEFAULT_CONTENT_DIR = "content"
DEFAULT_ORIGIN_LANG = "en"


def lang_file_path(rel_path: str, lang_code: str, content_dir: str = DEFAULT_CONTENT_DIR) -> str:
    """Return the repository path of rel_path inside a language directory."""
    return PurePosixPath(content_dir, lang_code, rel_path).as_posix()


def origin_file_path(
    rel_path: str,
    origin_lang: str = DEFAULT_ORIGIN_LANG,
    content_dir: str = DEFAULT_CONTENT_DIR,
) -> str:
    """Return the repository path of the origin-language counterpart of rel_path."""
    return lang_file_path(rel_path, origin_lang, content_dir)


def split_content_path(
    path: str, content_dir: str = DEFAULT_CONTENT_DIR
) -> tuple[str, str] | None:
    """Split 'content/<lang>/<rel>' into (lang, rel); None for other paths."""
    prefix = f"{content_dir.strip('/')}/"
    if not path.startswith(prefix):
        return None
    remainder = path[len(prefix) :]
    lang_code, separator, rel_path = remainder.partition("/")
    if not lang_code or not separator or not rel_path:
        return None
    return lang_code, rel_path


class LangCodesProvider:
    """Lists translation language codes present in the content tree."""

    def __init__(
        self,
        repo_root: Path,
        content_dir: str = DEFAULT_CONTENT_DIR,
        origin_lang: str = DEFAULT_ORIGIN_LANG,
        allowed: tuple[str, ...] = (),
    ) -> None:
        self._content_root = repo_root / content_dir
        self._origin_lang = origin_lang
        self._allowed = allowed

    def lang_codes(self) -> list[str]:
        """Return sorted language directory names, honouring the allow-list."""
        if not self._content_root.is_dir():
            raise FileNotFoundError(f"Content directory does not exist: {self._content_root}")
        codes: list[str] = []
        for entry in sorted(self._content_root.iterdir(), key=lambda item: item.name):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            if entry.name == self._origin_lang:
                continue
            if self._allowed and entry.name not in self._allowed:
                continue
            codes.append(entry.name)
        return codes
