"""Git repository backend package."""

from .command import CommandRunner, GitCommandError, SubprocessRunner
from .models import CommitRecord
from .parsing import CommitParseError, parse_commit_line, parse_commit_lines
from .repo import LocalGitRepo, RepoBackend

__all__ = [
    "CommandRunner",
    "CommitParseError",
    "CommitRecord",
    "GitCommandError",
    "LocalGitRepo",
    "RepoBackend",
    "SubprocessRunner",
    "parse_commit_line",
    "parse_commit_lines",
]
