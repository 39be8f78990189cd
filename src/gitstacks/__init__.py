"""gitstacks - manage stacks of dependent git branches."""

from .main import main

from .errors import (
    BackendError, BranchExistsError, ConflictAbortedError, ConflictError, ConflictTimeoutError,
    InvalidMoveError, NotFoundError, OperationCancelledError, StackError
)
from .git.client import GitClient
from .git.conflicts import ConflictOperationType, ConflictResolutionDetector, ConflictResolutionResult
from .pr.github import GitHubClient, PullRequest
from .stack.models import Stack, StackCollection
from .stack.operations import StackActions, UpdateResult, UpdateStrategy
from .stack.persistence import FileStackConfig
from .stack.tree import Branch, BranchTree, MoveBranchChildAction, RemoveBranchChildAction


def runner():
    main()
