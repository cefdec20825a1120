from __future__ import annotations

from pathlib import Path

import pytest

from lang_drift.security import PathBlockedError, normalize_repo_path, resolve_repo_path


def test_path_traversal_is_blocked(tmp_path: Path) -> None:
    with pytest.raises(PathBlockedError) as error:
        resolve_repo_path(repo_root=tmp_path, candidate="content/../../outside.md")

    assert error.value.reason == "Path traversal is blocked."


def test_symlink_escape_is_blocked(tmp_path: Path) -> None:
    root = tmp_path / "site"
    root.mkdir()
    outside = tmp_path / "outside-target"
    outside.mkdir()
    (root / "link").symlink_to(outside, target_is_directory=True)

    with pytest.raises(PathBlockedError) as error:
        resolve_repo_path(repo_root=root, candidate="link/leak.md")

    assert error.value.reason == "Resolved path escapes repo_root."


def test_drive_qualified_path_is_blocked() -> None:
    with pytest.raises(PathBlockedError):
        normalize_repo_path("C:/content/en/a.md")


@pytest.mark.parametrize(
    ("candidate", "expected"),
    [
        ("/content/de", "content/de"),
        ("./content//de/", "content/de"),
        (r"content\de\a.md", "content/de/a.md"),
        ("", ""),
    ],
)
def test_normalization(candidate: str, expected: str) -> None:
    assert normalize_repo_path(candidate) == expected


def test_windows_separator_path_resolves_to_same_file(tmp_path: Path) -> None:
    target = tmp_path / "content" / "de" / "a.md"
    target.parent.mkdir(parents=True)
    target.write_text("x", encoding="utf-8")

    assert resolve_repo_path(tmp_path, r"content\de\a.md") == target.resolve()
    assert resolve_repo_path(tmp_path, "/") == tmp_path.resolve()
