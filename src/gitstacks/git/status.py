"""Parsing of `git branch -vv` output."""

import dataclasses
import re
from typing import Optional

from gitstacks.utils.types import BranchName, PathName, Sha


@dataclasses.dataclass(frozen=True)
class Commit:
    sha: Sha
    message: str


@dataclasses.dataclass(frozen=True)
class GitBranchStatus:
    """Local state of one branch as reported by `git branch -vv`."""
    branch_name: BranchName
    remote_tracking_branch_name: Optional[str]
    remote_branch_exists: bool
    is_current_branch: bool
    ahead: int
    behind: int
    tip: Commit
    worktree_path: Optional[PathName] = None


_BRANCH_STATUS_RE = re.compile(
    r"^(?P<marker>[*+])?\s*(?P<name>\S+)\s+(?P<sha>[0-9a-fA-F]+)"
    r"(?:\s+\((?P<worktree>[^)]*)\))?\s*"
    r"(?:\[(?P<remote>[^:\]]+)?(?::\s*(?P<status>"
    r"ahead\s+(?P<ahead>\d+),\s*behind\s+(?P<behind>\d+)"
    r"|ahead\s+(?P<ahead_only>\d+)"
    r"|behind\s+(?P<behind_only>\d+)"
    r"|gone))?\])?"
    r"\s+(?P<message>.*)$"
)


def parse_branch_status(line: str) -> Optional[GitBranchStatus]:
    """Parse one line of `git branch -vv`, None if it isn't a branch line."""
    match = _BRANCH_STATUS_RE.match(line)
    if not match:
        return None

    remote = match.group("remote") or None
    status = match.group("status") or ""
    ahead = match.group("ahead") or match.group("ahead_only") or "0"
    behind = match.group("behind") or match.group("behind_only") or "0"
    worktree = match.group("worktree")

    return GitBranchStatus(
        branch_name=BranchName(match.group("name")),
        remote_tracking_branch_name=remote,
        remote_branch_exists=remote is not None and status != "gone",
        is_current_branch=match.group("marker") == "*",
        ahead=int(ahead),
        behind=int(behind),
        tip=Commit(Sha(match.group("sha")), match.group("message").strip()),
        # '+' marks a branch checked out in a linked worktree
        worktree_path=PathName(worktree) if worktree and match.group("marker") == "+" else None,
    )
