"""Git operations for gitstacks.

A GitClient is bound to one working tree. Branches checked out in a linked
worktree must be merged or rebased from a client bound to that worktree, so
callers that touch many branches take a factory rather than a single client.
"""

import dataclasses
import os
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from gitstacks.errors import ConflictError
from gitstacks.git.status import GitBranchStatus, parse_branch_status
from gitstacks.utils.logging import debug
from gitstacks.utils.shell import remove_prefix, run, run_always_return, run_completed, run_multiline
from gitstacks.utils.types import BranchName, CmdArgs, DEFAULT_REMOTE, PathName, Sha


class GitClient:
    """Runs git commands in a single working tree."""

    def __init__(self, working_directory: str, remote: str = DEFAULT_REMOTE):
        self.working_directory = working_directory
        self.remote = remote

    def __repr__(self):
        return f"GitClient({self.working_directory!r})"

    def _git(self, *args: str, **kwargs) -> Optional[str]:
        return run(CmdArgs(["git", *args]), cwd=self.working_directory, **kwargs)

    def _git_multiline(self, *args: str, **kwargs) -> Optional[str]:
        return run_multiline(CmdArgs(["git", *args]), cwd=self.working_directory, **kwargs)

    def _git_succeeds(self, *args: str) -> bool:
        return run_completed(CmdArgs(["git", *args]), cwd=self.working_directory).returncode == 0

    def _git_or_conflict(self, *args: str):
        sp = run_completed(CmdArgs(["git", *args]), cwd=self.working_directory, out=True)
        if sp.returncode > 0:
            raise ConflictError("git {} stopped with conflicts".format(" ".join(args)))

    # Repository information

    def get_current_branch(self) -> BranchName:
        return BranchName(run_always_return(
            CmdArgs(["git", "branch", "--show-current"]), cwd=self.working_directory
        ))

    def get_remote_uri(self) -> str:
        return run_always_return(
            CmdArgs(["git", "remote", "get-url", self.remote]), cwd=self.working_directory
        )

    def get_root_of_repository(self) -> PathName:
        return PathName(run_always_return(
            CmdArgs(["git", "rev-parse", "--show-toplevel"]), cwd=self.working_directory
        ))

    def get_config_value(self, key: str) -> Optional[str]:
        value = self._git("config", "--get", key, check=False)
        return value or None

    def get_local_branches_ordered_by_most_recent_committer_date(self) -> List[BranchName]:
        out = self._git_multiline("branch", "--format=%(refname:short)", "--sort=-committerdate")
        assert out is not None
        return [BranchName(b) for b in out.split("\n") if b]

    def does_local_branch_exist(self, branch: str) -> bool:
        return self._git_succeeds("rev-parse", "--verify", "--quiet", f"refs/heads/{branch}")

    def does_remote_branch_exist(self, branch: str) -> bool:
        return self._git_succeeds("rev-parse", "--verify", "--quiet", f"refs/remotes/{self.remote}/{branch}")

    def get_worktree_paths(self) -> Dict[BranchName, PathName]:
        """Map each checked out branch to the worktree it's checked out in."""
        out = self._git_multiline("worktree", "list", "--porcelain")
        assert out is not None
        paths: Dict[BranchName, PathName] = {}
        path: Optional[str] = None
        for line in out.split("\n"):
            if line.startswith("worktree "):
                path = line[len("worktree "):]
            elif line.startswith("branch ") and path is not None:
                paths[BranchName(remove_prefix(line[len("branch "):], "refs/heads/"))] = PathName(path)
            elif not line:
                path = None
        return paths

    def get_branch_statuses(self, branches: Iterable[str]) -> Dict[BranchName, GitBranchStatus]:
        wanted = set(branches)
        out = self._git_multiline("branch", "-vv")
        assert out is not None

        worktrees: Optional[Dict[BranchName, PathName]] = None
        statuses: Dict[BranchName, GitBranchStatus] = {}
        for line in out.split("\n"):
            status = parse_branch_status(line)
            if status is None or status.branch_name not in wanted:
                continue
            if line.startswith("+") and status.worktree_path is None:
                # Older git doesn't print the worktree path, look it up instead
                if worktrees is None:
                    worktrees = self.get_worktree_paths()
                path = worktrees.get(status.branch_name)
                if path is not None:
                    status = dataclasses.replace(status, worktree_path=path)
            statuses[status.branch_name] = status
        return statuses

    def compare_branches(self, branch: str, source_branch: str) -> Tuple[int, int]:
        """Return (ahead, behind) of branch relative to source_branch."""
        out = run_always_return(
            CmdArgs(["git", "rev-list", "--left-right", "--count", f"{branch}...{source_branch}"]),
            cwd=self.working_directory,
        )
        ahead, behind = out.split()
        return int(ahead), int(behind)

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return self._git_succeeds("merge-base", "--is-ancestor", ancestor, descendant)

    def is_commit_reachable_from_branch(self, sha: str, branch: str) -> bool:
        return self.is_ancestor(sha, branch)

    def get_merge_base(self, a: str, b: str) -> Optional[Sha]:
        base = self._git("merge-base", a, b, check=False)
        return Sha(base) if base else None

    # Conflict state

    def is_merge_in_progress(self) -> bool:
        return self._git_succeeds("rev-parse", "-q", "--verify", "MERGE_HEAD")

    def is_rebase_in_progress(self) -> bool:
        for state_dir in ("rebase-merge", "rebase-apply"):
            path = run_always_return(
                CmdArgs(["git", "rev-parse", "--git-path", state_dir]), cwd=self.working_directory
            )
            if not os.path.isabs(path):
                path = os.path.join(self.working_directory, path)
            if os.path.isdir(path):
                return True
        return False

    def get_head_sha(self) -> Sha:
        return Sha(run_always_return(CmdArgs(["git", "rev-parse", "HEAD"]), cwd=self.working_directory))

    def get_original_head_sha(self) -> Optional[Sha]:
        # ORIG_HEAD is written by git before a rebase rewrites HEAD
        sha = self._git("rev-parse", "-q", "--verify", "ORIG_HEAD", check=False)
        return Sha(sha) if sha else None

    # Branch operations

    def fetch(self, prune: bool):
        args = ["fetch", self.remote]
        if prune:
            args.append("--prune")
        self._git(*args, out=True)

    def change_branch(self, branch: str):
        debug("Checking out branch {} in {}", branch, self.working_directory)
        self._git("checkout", branch)

    def create_new_branch(self, branch: str, source_branch: str):
        self._git("branch", branch, source_branch)

    def delete_local_branch(self, branch: str):
        self._git("branch", "-D", branch)

    def push_new_branch(self, branch: str):
        self._git("push", "-u", self.remote, branch, out=True)

    def push_branch(self, branch: str, force_with_lease: bool = False):
        self.push_branches([branch], force_with_lease)

    def push_branches(self, branches: List[str], force_with_lease: bool):
        args = ["push", self.remote, *branches]
        if force_with_lease:
            args.append("--force-with-lease")
        self._git(*args, out=True)

    def pull_branch(self, branch: str):
        self._git("pull", self.remote, branch, out=True)

    def fetch_branch_ref_specs(self, branches: List[str]):
        if not branches:
            return
        self._git("fetch", self.remote, *[f"{b}:{b}" for b in branches], out=True)

    def merge_from_local_source_branch(self, source_branch: str):
        self._git_or_conflict("merge", source_branch)

    def rebase_from_local_source_branch(self, source_branch: str):
        self._git_or_conflict("rebase", source_branch, "--update-refs")

    def rebase_onto_new_parent(self, new_parent: str, old_parent: str):
        self._git_or_conflict("rebase", "--onto", new_parent, old_parent, "--update-refs")

    def abort_merge(self):
        self._git("merge", "--abort")

    def abort_rebase(self):
        self._git("rebase", "--abort")

    def continue_rebase(self):
        self._git_or_conflict("rebase", "--continue")


GitClientFactory = Callable[[str], GitClient]
