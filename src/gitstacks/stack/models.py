"""Stack data models for gitstacks."""

import dataclasses
from typing import Iterable, List, Optional, Union

from gitstacks.errors import NotFoundError
from gitstacks.stack.tree import Branch, BranchTree, MoveBranchChildAction, RemoveBranchChildAction
from gitstacks.utils.types import BranchName

SCHEMA_VERSION_V1 = 1
SCHEMA_VERSION_V2 = 2

_ACTION_LABELS = {
    MoveBranchChildAction.MOVE_CHILDREN: "Move children branches with the branch being moved",
    MoveBranchChildAction.RE_PARENT_CHILDREN: "Re-parent children branches to the previous location",
    RemoveBranchChildAction.MOVE_CHILDREN_TO_PARENT: "Move children branches to parent branch",
    RemoveBranchChildAction.REMOVE_CHILDREN: "Remove children branches",
}


def humanize(action: Union[MoveBranchChildAction, RemoveBranchChildAction]) -> str:
    """Human readable label for a child action."""
    return _ACTION_LABELS[action]


class Stack:
    """A named forest of branches based on a source branch."""

    def __init__(
        self,
        name: str,
        remote_uri: str,
        source_branch: str,
        branches: Iterable[Branch] = (),
        description: Optional[str] = None,
    ):
        self.name = name
        self.remote_uri = remote_uri
        self.source_branch = BranchName(source_branch)
        self.tree = BranchTree(branches)
        self.description = description

    def __repr__(self):
        return f"Stack: {self.name} ({self.source_branch}) {self.all_branch_names}"

    def __eq__(self, other):
        if not isinstance(other, Stack):
            return NotImplemented
        return (
            self.name == other.name
            and self.remote_uri == other.remote_uri
            and self.source_branch == other.source_branch
            and self.description == other.description
            and self.tree == other.tree
        )

    @property
    def branches(self) -> List[Branch]:
        return self.tree.to_branches()

    def get_all_branches(self) -> List[Branch]:
        """All branches, depth-first."""
        result: List[Branch] = []

        def visit(branch: Branch):
            result.append(branch)
            for child in branch.children:
                visit(child)

        for root in self.branches:
            visit(root)
        return list({b.name: b for b in result}.values())

    @property
    def all_branch_names(self) -> List[BranchName]:
        return self.tree.all_names()

    @property
    def has_single_tree(self) -> bool:
        return self.tree.has_single_tree()

    def get_all_branch_lines(self) -> List[List[Branch]]:
        return self.tree.lines()

    def find_branch(self, name: str) -> Optional[Branch]:
        return self.tree.find(name)

    def parent_of(self, name: str) -> BranchName:
        """Parent branch name, the source branch for roots."""
        parent = self.tree.parent_name(name)
        return self.source_branch if parent is None else parent

    def add_branch(self, name: str, parent: Optional[str] = None):
        """Add a branch under parent; no parent or the source branch adds a root."""
        if parent is not None and parent.casefold() == self.source_branch.casefold():
            parent = None
        self.tree.add(name, parent)

    def remove_branch(self, name: str, action: RemoveBranchChildAction):
        self.tree.remove(name, action)

    def move_branch(self, name: str, new_parent: str, action: MoveBranchChildAction):
        self.tree.move(name, new_parent, action, self.source_branch)

    def change_name(self, new_name: str):
        self.name = new_name

    def set_description(self, description: Optional[str]):
        self.description = description or None

    def is_current_stack(self, current_branch: str) -> bool:
        return (
            self.source_branch.casefold() == current_branch.casefold()
            or current_branch in self.tree
        )

    def deepest_child_branch_from_first_tree(self) -> Optional[Branch]:
        branches = self.branches
        if not branches:
            return None
        branch = branches[0]
        while branch.children:
            branch = branch.children[0]
        return branch


@dataclasses.dataclass
class StackCollection:
    """Every stack known to gitstacks, across repositories."""
    stacks: List[Stack] = dataclasses.field(default_factory=list)
    schema_version: int = SCHEMA_VERSION_V2

    def for_remote(self, remote_uri: str) -> List[Stack]:
        return [s for s in self.stacks if s.remote_uri.casefold() == remote_uri.casefold()]

    def find(self, name: str, remote_uri: Optional[str] = None) -> Optional[Stack]:
        stacks = self.stacks if remote_uri is None else self.for_remote(remote_uri)
        for s in stacks:
            if s.name.casefold() == name.casefold():
                return s
        return None

    def get(self, name: str, remote_uri: Optional[str] = None) -> Stack:
        stack = self.find(name, remote_uri)
        if stack is None:
            raise NotFoundError(f"Stack '{name}' not found")
        return stack

    def add(self, stack: Stack):
        self.stacks.append(stack)

    def remove(self, stack: Stack):
        self.stacks.remove(stack)


def order_by_current_stack_then_by_name(stacks: List[Stack], current_branch: str) -> List[Stack]:
    return sorted(stacks, key=lambda s: (0 if s.is_current_stack(current_branch) else 1, s.name))
