"""Branch trees for gitstacks stacks.

A stack's branches form a forest hanging off the stack's source branch. The
forest is stored as an arena: every node gets a stable integer id, and the
structure is just id lists (children per node, plus the list of roots). Moving
or removing a branch rewires ids, and checking whether a move would create a
cycle is a reachability check over the ids below the moved node.

`Branch` is the plain nested value handed in and out (persistence, display,
traversal results); it is always a snapshot, never a live view of the arena.
"""

import dataclasses
import enum
import itertools
from typing import Dict, Iterable, Iterator, List, Optional, Set

from gitstacks.errors import BranchExistsError, InvalidMoveError, NotFoundError
from gitstacks.utils.types import BranchName


@dataclasses.dataclass
class Branch:
    name: BranchName
    children: List["Branch"] = dataclasses.field(default_factory=list)

    @property
    def all_branch_names(self) -> List[BranchName]:
        names = [self.name]
        for child in self.children:
            names.extend(child.all_branch_names)
        return list(dict.fromkeys(names))


class MoveBranchChildAction(enum.Enum):
    MOVE_CHILDREN = "move-children"
    RE_PARENT_CHILDREN = "re-parent-children"


class RemoveBranchChildAction(enum.Enum):
    MOVE_CHILDREN_TO_PARENT = "move-children-to-parent"
    REMOVE_CHILDREN = "remove-children"


def _same(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()


class BranchTree:
    """Forest of uniquely named branches."""

    def __init__(self, branches: Iterable[Branch] = ()):
        self._names: Dict[int, BranchName] = {}
        self._children: Dict[int, List[int]] = {}
        self._parents: Dict[int, Optional[int]] = {}
        self._roots: List[int] = []
        self._ids = itertools.count()
        for branch in branches:
            self._roots.append(self._insert(branch, None))

    def _insert(self, branch: Branch, parent: Optional[int]) -> int:
        if self._has_name(branch.name):
            raise BranchExistsError(f"Branch '{branch.name}' appears more than once in the stack")
        node = next(self._ids)
        self._names[node] = BranchName(branch.name)
        self._parents[node] = parent
        self._children[node] = []
        for child in branch.children:
            self._children[node].append(self._insert(child, node))
        return node

    def _has_name(self, name: str) -> bool:
        return any(_same(n, name) for n in self._names.values())

    def _walk(self, nodes: Optional[List[int]] = None) -> Iterator[int]:
        """Depth-first, children in declared order."""
        for node in self._roots if nodes is None else nodes:
            yield node
            yield from self._walk(self._children[node])

    def _find(self, name: str) -> Optional[int]:
        for node in self._walk():
            if _same(self._names[node], name):
                return node
        return None

    def _require(self, name: str) -> int:
        node = self._find(name)
        if node is None:
            raise NotFoundError(f"Branch '{name}' not found in stack")
        return node

    def _siblings(self, node: int) -> List[int]:
        parent = self._parents[node]
        return self._roots if parent is None else self._children[parent]

    def _attach(self, node: int, parent: Optional[int]):
        self._parents[node] = parent
        (self._roots if parent is None else self._children[parent]).append(node)

    def _snapshot(self, node: int) -> Branch:
        return Branch(self._names[node], [self._snapshot(c) for c in self._children[node]])

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._find(name) is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BranchTree):
            return NotImplemented
        return self.to_branches() == other.to_branches()

    def __repr__(self) -> str:
        return f"BranchTree({self.to_branches()!r})"

    def to_branches(self) -> List[Branch]:
        return [self._snapshot(root) for root in self._roots]

    def find(self, name: str) -> Optional[Branch]:
        """Case-insensitive depth-first lookup."""
        node = self._find(name)
        return None if node is None else self._snapshot(node)

    def parent_name(self, name: str) -> Optional[BranchName]:
        """Name of the branch's parent, None for a root."""
        parent = self._parents[self._require(name)]
        return None if parent is None else self._names[parent]

    def all_names(self) -> List[BranchName]:
        return list(dict.fromkeys(self._names[node] for node in self._walk()))

    def lines(self) -> List[List[Branch]]:
        """Every root-to-leaf path, one per leaf, in depth-first order."""
        snapshots: Dict[int, Branch] = {}

        def snapshot(node: int) -> Branch:
            if node not in snapshots:
                snapshots[node] = Branch(self._names[node], [snapshot(c) for c in self._children[node]])
            return snapshots[node]

        def paths(node: int) -> List[List[Branch]]:
            if not self._children[node]:
                return [[snapshot(node)]]
            return [[snapshot(node)] + path for child in self._children[node] for path in paths(child)]

        result: List[List[Branch]] = []
        for root in self._roots:
            result.extend(paths(root))
        return result

    def has_single_tree(self) -> bool:
        """True when the forest is empty or one unbranched chain."""
        if not self._roots:
            return True
        if len(self._roots) > 1:
            return False
        return all(len(self._children[node]) <= 1 for node in self._walk())

    def add(self, name: str, parent_name: Optional[str] = None):
        """Append a new leaf under parent_name, or as a new root."""
        if self._has_name(name):
            raise BranchExistsError(f"Branch '{name}' is already in the stack")
        parent = None if parent_name is None else self._require(parent_name)
        node = next(self._ids)
        self._names[node] = BranchName(name)
        self._children[node] = []
        self._attach(node, parent)

    def _subtree(self, node: int) -> Set[int]:
        return set(self._walk([node]))

    def remove(self, name: str, action: RemoveBranchChildAction):
        node = self._require(name)
        siblings = self._siblings(node)
        position = siblings.index(node)
        children = self._children[node]

        if action == RemoveBranchChildAction.MOVE_CHILDREN_TO_PARENT:
            doomed = {node}
            siblings[position:position + 1] = children
            for child in children:
                self._parents[child] = self._parents[node]
        else:
            doomed = self._subtree(node)
            del siblings[position]

        for n in doomed:
            del self._names[n]
            del self._children[n]
            del self._parents[n]

    def move(
        self,
        name: str,
        new_parent_name: str,
        action: MoveBranchChildAction,
        source_branch: str,
    ):
        """Move a branch under new_parent_name (source_branch means a root)."""
        node = self._require(name)
        destination = None if _same(new_parent_name, source_branch) else self._require(new_parent_name)

        if destination is not None and destination in self._subtree(node):
            raise InvalidMoveError(
                f"Cannot move branch '{name}' under '{new_parent_name}', it is the branch itself or one of its children"
            )

        original_parent = self._parents[node]
        self._siblings(node).remove(node)

        left_behind: List[int] = []
        if action == MoveBranchChildAction.RE_PARENT_CHILDREN:
            left_behind = self._children[node]
            self._children[node] = []

        self._attach(node, destination)
        for child in left_behind:
            self._attach(child, original_parent)
