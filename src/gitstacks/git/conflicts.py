"""Waiting for the user to resolve merge and rebase conflicts.

git leaves the repository mid-operation when a merge or rebase hits conflicts.
The user fixes things in their own shell or editor and either finishes the
operation or aborts it; we only watch repository state until it settles.
"""

import enum
import time
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from gitstacks.errors import OperationCancelledError
from gitstacks.utils.logging import debug, info, warning

if TYPE_CHECKING:
    from gitstacks.git.client import GitClient


class ConflictOperationType(enum.Enum):
    MERGE = "merge"
    REBASE = "rebase"


class ConflictResolutionResult(enum.Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    NOT_STARTED = "not_started"
    TIMEOUT = "timeout"


class CancellationToken(Protocol):
    def is_set(self) -> bool: ...


class ConflictResolutionDetector:
    """Polls a git client until an in-progress merge or rebase is finished.

    The clock and sleep function are injectable so tests can drive time.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        progress_every: int = 5,
    ):
        self.clock = clock
        self.sleep = sleep
        self.progress_every = progress_every

    @staticmethod
    def _is_in_progress(git_client: "GitClient", operation: ConflictOperationType) -> bool:
        if operation == ConflictOperationType.MERGE:
            return git_client.is_merge_in_progress()
        return git_client.is_rebase_in_progress()

    def wait_for_resolution(
        self,
        git_client: "GitClient",
        operation: ConflictOperationType,
        poll_interval: float,
        timeout: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ConflictResolutionResult:
        start = self.clock()
        if not self._is_in_progress(git_client, operation):
            return ConflictResolutionResult.NOT_STARTED

        info(
            "Conflicts detected during {}. Please resolve conflicts to continue or press CTRL+C to abort...",
            operation.value,
        )

        # A rebase moves HEAD while it runs, compare against ORIG_HEAD instead
        if operation == ConflictOperationType.REBASE:
            initial_head = git_client.get_original_head_sha()
        else:
            initial_head = git_client.get_head_sha()

        if not initial_head:
            warning(
                "Could not determine initial HEAD before {}. Unable to detect if it was completed or aborted.",
                operation.value,
            )
            return ConflictResolutionResult.NOT_STARTED

        polls = 0
        while True:
            if cancel is not None and cancel.is_set():
                raise OperationCancelledError(f"Cancelled while waiting for {operation.value} to finish")

            if timeout is not None and self.clock() - start >= timeout:
                warning("Timed out waiting for {} conflict resolution after {}s", operation.value, timeout)
                return ConflictResolutionResult.TIMEOUT

            if not self._is_in_progress(git_client, operation):
                current_head = git_client.get_head_sha()
                if initial_head.lower() != current_head.lower():
                    info("{} conflicts resolved", operation.value.capitalize())
                    return ConflictResolutionResult.COMPLETED
                info("{} has been aborted", operation.value.capitalize())
                return ConflictResolutionResult.ABORTED

            polls += 1
            if polls % self.progress_every == 0:
                debug("{} still in progress...", operation.value.capitalize())

            self.sleep(poll_interval)
