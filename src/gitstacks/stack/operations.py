"""Stack operations for gitstacks - pulling, updating and pushing stacks."""

import dataclasses
import enum
from typing import Dict, List, Optional, Set

from gitstacks.errors import BackendError, ConflictError, ConflictTimeoutError, OperationCancelledError
from gitstacks.git.client import GitClient, GitClientFactory
from gitstacks.git.conflicts import (
    CancellationToken, ConflictOperationType, ConflictResolutionDetector, ConflictResolutionResult
)
from gitstacks.git.status import GitBranchStatus
from gitstacks.pr.github import GitHubClient, PullRequest
from gitstacks.stack.models import Stack
from gitstacks.stack.tree import Branch
from gitstacks.utils.logging import debug, info, warning
from gitstacks.utils.types import BranchName, DEFAULT_POLL_INTERVAL, Sha


class UpdateStrategy(enum.Enum):
    MERGE = "merge"
    REBASE = "rebase"


@dataclasses.dataclass
class UpdateResult:
    """Branches touched by an update, in the order they were handled."""
    updated: List[BranchName] = dataclasses.field(default_factory=list)
    skipped: List[BranchName] = dataclasses.field(default_factory=list)
    aborted: List[BranchName] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(frozen=True)
class BranchState:
    name: BranchName
    status: Optional[GitBranchStatus]
    pull_request: Optional[PullRequest] = None

    @property
    def exists(self) -> bool:
        return self.status is not None

    @property
    def is_active(self) -> bool:
        if self.status is None:
            return False
        if self.status.remote_tracking_branch_name is None:
            # Never pushed, still being worked on
            return True
        if not self.status.remote_branch_exists:
            return False
        return self.pull_request is None or not self.pull_request.is_merged


class StackActions:
    """Pull, update and push the branches of a stack.

    Every collaborator is passed in: git clients come from a factory so that
    branches checked out in a linked worktree are operated on from there.
    """

    def __init__(
        self,
        git_client_factory: GitClientFactory,
        working_directory: str,
        github_client: Optional[GitHubClient] = None,
        conflict_detector: Optional[ConflictResolutionDetector] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        conflict_timeout: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ):
        self.git_client_factory = git_client_factory
        self.working_directory = working_directory
        self.github_client = github_client
        self.conflict_detector = conflict_detector or ConflictResolutionDetector()
        self.poll_interval = poll_interval
        self.conflict_timeout = conflict_timeout
        self.cancel = cancel

    def _default_client(self) -> GitClient:
        return self.git_client_factory(self.working_directory)

    def _client_for_branch(self, branch: str, statuses: Dict[BranchName, GitBranchStatus]) -> GitClient:
        status = statuses.get(BranchName(branch))
        if status is not None and status.worktree_path is not None:
            return self.git_client_factory(status.worktree_path)
        return self._default_client()

    def _check_cancelled(self):
        if self.cancel is not None and self.cancel.is_set():
            raise OperationCancelledError("Stack update cancelled")

    def pull_changes(self, stack: Stack):
        """Bring local branches up to date with their remote branches."""
        git_client = self._default_client()
        all_branches = [stack.source_branch, *stack.all_branch_names]
        statuses = git_client.get_branch_statuses(all_branches)
        current_branch = git_client.get_current_branch()

        behind = [
            b for b in all_branches
            if b in statuses and statuses[b].remote_branch_exists and statuses[b].behind > 0
        ]
        if not behind:
            return

        in_other_worktrees = [
            b for b in behind
            if b != current_branch and not statuses[b].is_current_branch and statuses[b].worktree_path is not None
        ]
        others = [b for b in behind if b != current_branch and b not in in_other_worktrees]

        if current_branch in behind:
            debug("Pulling changes for {} from remote", current_branch)
            git_client.pull_branch(current_branch)

        for b in in_other_worktrees:
            debug("Pulling changes for {} (worktree: {}) from remote", b, statuses[b].worktree_path)
            self._client_for_branch(b, statuses).pull_branch(b)

        if others:
            debug("Fetching changes for {} from remote", ", ".join(others))
            git_client.fetch_branch_ref_specs(others)

    def push_changes(self, stack: Stack, max_batch_size: int, force_with_lease: bool):
        """Push new branches, then branches ahead of their remote in batches."""
        git_client = self._default_client()
        statuses = git_client.get_branch_statuses(stack.all_branch_names)

        for status in statuses.values():
            if status.remote_tracking_branch_name is None:
                info("Pushing new branch {}", status.branch_name)
                git_client.push_new_branch(status.branch_name)

        ahead = [s.branch_name for s in statuses.values() if s.remote_branch_exists and s.ahead > 0]
        for i in range(0, len(ahead), max_batch_size):
            batch = ahead[i:i + max_batch_size]
            info("Pushing {}", ", ".join(batch))
            git_client.push_branches(list(batch), force_with_lease)

    def update_stack(
        self,
        stack: Stack,
        strategy: UpdateStrategy,
        *,
        check_pull_requests: bool = False,
        pull: bool = False,
        push: bool = False,
        force_with_lease: bool = False,
    ) -> UpdateResult:
        """Merge or rebase every branch of the stack onto its parent, root first."""
        if pull:
            self.pull_changes(stack)

        git_client = self._default_client()
        current_branch = git_client.get_current_branch()
        all_branches = [stack.source_branch, *stack.all_branch_names]
        statuses = git_client.get_branch_statuses(all_branches)

        result = UpdateResult()
        if stack.source_branch not in statuses:
            warning('Source branch "{}" does not exist locally. Skipping update.', stack.source_branch)
            return result

        pull_requests: Dict[str, Optional[PullRequest]] = {}
        if check_pull_requests and self.github_client is not None:
            pull_requests = self.github_client.get_pull_requests(stack.all_branch_names)

        info('Updating stack "{}" using {}...', stack.name, strategy.value)

        done: Set[str] = set()
        halted: Set[str] = set()
        for line in stack.get_all_branch_lines():
            self._update_line(
                stack, line, strategy, statuses, pull_requests, result, done, halted, push, force_with_lease
            )

        if current_branch and any(current_branch.casefold() == b.casefold() for b in all_branches):
            self._client_for_branch(current_branch, statuses).change_branch(current_branch)

        return result

    def _update_line(
        self,
        stack: Stack,
        line: List[Branch],
        strategy: UpdateStrategy,
        statuses: Dict[BranchName, GitBranchStatus],
        pull_requests: Dict[str, Optional[PullRequest]],
        result: UpdateResult,
        done: Set[str],
        halted: Set[str],
        push: bool,
        force_with_lease: bool,
    ):
        debug("Updating branch line: {}", " -> ".join([stack.source_branch, *[b.name for b in line]]))
        # Active branches below the one being updated, source branch first
        upstreams: List[str] = [stack.source_branch]
        # Lowest gone branch of the line, commits it had may have been squash merged
        lowest_inactive: Optional[BranchState] = None

        for branch in line:
            name = branch.name
            if name in halted:
                debug("Not updating branches above {}, its update was aborted", name)
                return

            state = BranchState(name, statuses.get(name), pull_requests.get(name))
            if not state.is_active:
                if name not in done:
                    done.add(name)
                    result.skipped.append(name)
                    info(
                        "Branch {} no longer exists on the remote repository or its pull request was merged. Skipping...",
                        name,
                    )
                if lowest_inactive is None:
                    lowest_inactive = state
                continue

            if name not in done:
                self._check_cancelled()
                done.add(name)
                if strategy == UpdateStrategy.MERGE:
                    completed = self._merge_branch(name, upstreams[-1], statuses)
                else:
                    completed = self._rebase_branch(name, upstreams, lowest_inactive, statuses)
                if not completed:
                    halted.add(name)
                    result.aborted.append(name)
                    return
                result.updated.append(name)
                if push:
                    self._push_branch(name, statuses, force_with_lease)

            upstreams.append(name)

    def _merge_branch(self, branch: str, upstream: str, statuses: Dict[BranchName, GitBranchStatus]) -> bool:
        """Merge the nearest active branch below into branch, False if the user aborted."""
        client = self._client_for_branch(branch, statuses)
        try:
            client.change_branch(branch)
            info("Merging {} into {}", upstream, branch)
            client.merge_from_local_source_branch(upstream)
        except ConflictError:
            return self._wait_for_conflict_resolution(client, ConflictOperationType.MERGE, branch)
        except BackendError as e:
            raise BackendError(f"Failed to update branch {branch}: {e}", branch=branch) from e
        return True

    def _rebase_branch(
        self,
        branch: str,
        upstreams: List[str],
        lowest_inactive: Optional[BranchState],
        statuses: Dict[BranchName, GitBranchStatus],
    ) -> bool:
        """Rebase branch onto each active branch below it in turn, False if the user aborted.

        Going through every level picks up changes made anywhere down the line.
        When a gone branch below was squash merged, the first rebase drops its
        original commits with `--onto`; later ones are then plain rebases.
        """
        client = self._client_for_branch(branch, statuses)
        try:
            client.change_branch(branch)
        except BackendError as e:
            raise BackendError(f"Failed to update branch {branch}: {e}", branch=branch) from e

        for upstream in upstreams:
            try:
                self._rebase_onto(client, branch, upstream, lowest_inactive)
            except ConflictError:
                if not self._wait_for_conflict_resolution(client, ConflictOperationType.REBASE, branch):
                    return False
            except BackendError as e:
                raise BackendError(f"Failed to update branch {branch}: {e}", branch=branch) from e
        return True

    def _rebase_onto(self, client: GitClient, branch: str, upstream: str, lowest_inactive: Optional[BranchState]):
        old_parent = None
        if lowest_inactive is not None and lowest_inactive.exists:
            old_parent = self._commit_to_reparent_from(branch, lowest_inactive.name, upstream)
        if old_parent is not None:
            info("Rebasing {} onto new parent {}", branch, upstream)
            client.rebase_onto_new_parent(upstream, old_parent)
        else:
            info("Rebasing {} onto {}", branch, upstream)
            client.rebase_from_local_source_branch(upstream)

    def _wait_for_conflict_resolution(
        self, client: GitClient, operation: ConflictOperationType, branch: str
    ) -> bool:
        outcome = self.conflict_detector.wait_for_resolution(
            client, operation, self.poll_interval, self.conflict_timeout, self.cancel
        )
        if outcome == ConflictResolutionResult.COMPLETED:
            return True
        if outcome == ConflictResolutionResult.ABORTED:
            warning("{} of {} was aborted, skipping the branches above it", operation.value.capitalize(), branch)
            return False
        if outcome == ConflictResolutionResult.TIMEOUT:
            raise ConflictTimeoutError(f"Timed out waiting for {operation.value} conflict resolution on {branch}")
        raise BackendError(
            f"Expected {operation.value} of {branch} to be in progress but it is not. "
            "Use --log-level debug for more details.",
            branch=branch,
        )

    def _commit_to_reparent_from(self, branch: str, inactive_ancestor: str, upstream: str) -> Optional[Sha]:
        """Commit to rebase from when inactive_ancestor was squash merged into upstream.

        A squash merge leaves the ancestor's original commits out of upstream, so
        their merge base with the branch isn't reachable from upstream; those
        commits then have to be dropped rather than replayed.
        """
        client = self._default_client()
        common_base = client.get_merge_base(branch, inactive_ancestor)
        if common_base is None:
            return None
        debug("Common base between {} and {}: {}", branch, inactive_ancestor, common_base)

        if client.is_commit_reachable_from_branch(common_base, upstream):
            debug("Commit {} exists in branch {}, no need to re-parent", common_base, upstream)
            return None
        debug(
            "Commit {} does not exist in branch {}, treating {} as squash merged and re-parenting",
            common_base, upstream, inactive_ancestor,
        )
        return common_base

    def _push_branch(self, branch: str, statuses: Dict[BranchName, GitBranchStatus], force_with_lease: bool):
        client = self._default_client()
        status = statuses.get(BranchName(branch))
        try:
            if status is None or status.remote_tracking_branch_name is None:
                info("Pushing new branch {}", branch)
                client.push_new_branch(branch)
            else:
                info("Pushing {}", branch)
                client.push_branch(branch, force_with_lease)
        except BackendError as e:
            raise BackendError(f"Failed to push branch {branch}: {e}", branch=branch) from e
