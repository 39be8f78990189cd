"""Exceptions raised by gitstacks."""

from typing import Optional


class StackError(Exception):
    """Base class for all gitstacks errors."""


class NotFoundError(StackError):
    """A branch or stack name does not exist."""


class InvalidMoveError(StackError):
    """A branch move would make a branch its own ancestor."""


class BranchExistsError(StackError):
    """A branch with the same name is already part of the stack."""


class ConflictError(StackError):
    """A merge or rebase stopped because of conflicts."""


class ConflictAbortedError(StackError):
    """The user aborted a conflicted merge or rebase."""


class ConflictTimeoutError(StackError):
    """Gave up waiting for conflicts to be resolved."""


class OperationCancelledError(StackError):
    """The operation was cancelled while waiting."""


class BackendError(StackError):
    """A git or gh command failed."""

    def __init__(self, message: str, *, branch: Optional[str] = None):
        super().__init__(message)
        self.branch = branch
