"""User interface utilities for gitstacks."""

import os
import subprocess
import sys
import tempfile
from typing import Callable, Dict, List, Optional, Sequence, TypeVar, TYPE_CHECKING

import asciitree  # type: ignore
from simple_term_menu import TerminalMenu  # type: ignore

from gitstacks.utils.config import get_config
from gitstacks.utils.logging import IS_TERMINAL, cout, die

if TYPE_CHECKING:
    from gitstacks.stack.models import Stack
    from gitstacks.stack.tree import Branch

T = TypeVar("T")


def prompt(message: str, default_value: Optional[str] = None) -> str:
    """Prompt the user for input."""
    cout(message)
    if default_value is not None:
        cout(" ")
        cout("({})", default_value, fg="gray")
    cout(" ")
    while True:
        sys.stdout.flush()
        r = input().strip()

        if len(r) > 0:
            return r
        if default_value:
            return default_value


def confirm(msg: str = "Proceed?"):
    """Ask for confirmation. Skips if skip_confirm is set."""
    if get_config().skip_confirm:
        return
    if not os.isatty(0):
        die("Standard input is not a terminal, use --yes option to force action")
    print()
    while True:
        cout("{} [yes/no] ", msg, fg="yellow")
        sys.stdout.flush()
        r = input().strip().lower()
        if r == "yes" or r == "y":
            break
        if r == "no" or r == "n":
            die("Not confirmed")
        cout("Please answer yes or no\n", fg="red")


_ASCII_TREE_BOX = {
    "UP_AND_RIGHT": "└",
    "HORIZONTAL": "─",
    "VERTICAL": "│",
    "VERTICAL_AND_RIGHT": "├",
}
_ASCII_TREE_STYLE = asciitree.drawing.BoxStyle(gfx=_ASCII_TREE_BOX)
ASCII_TREE = asciitree.LeftAligned(draw=_ASCII_TREE_STYLE)


def _tree_dict(branches: List["Branch"], label: Callable[[str], str]) -> Dict[str, Dict]:
    return {label(b.name): _tree_dict(b.children, label) for b in branches}


def render_stack(stack: "Stack", label: Optional[Callable[[str], str]] = None) -> str:
    """Draw the stack as a tree hanging off its source branch."""
    label = label or (lambda name: name)
    return ASCII_TREE({label(stack.source_branch): _tree_dict(stack.branches, label)})


def menu_choose(options: Sequence[str], title: Optional[str] = None, cursor_index: int = 0) -> int:
    """Let the user pick one of options, returning its index."""
    if not IS_TERMINAL:
        die("May only choose from menu when using a terminal")
    menu = TerminalMenu(list(options), title=title, cursor_index=cursor_index)
    idx = menu.show()
    if idx is None:
        die("Aborted")
    return idx


def menu_choose_value(values: Sequence[T], describe: Callable[[T], str], title: Optional[str] = None) -> T:
    return values[menu_choose([describe(v) for v in values], title)]


def menu_choose_stack(stacks: Sequence["Stack"], title: str = "Select stack") -> "Stack":
    if not stacks:
        die("No stacks found for the current repository")
    return menu_choose_value(stacks, lambda s: f"{s.name} ({s.source_branch})", title)


def menu_choose_branch(
    stack: "Stack", title: str = "Select branch", *, include_source: bool = False, current: Optional[str] = None
) -> str:
    """Pick a branch from the stack's tree; the source branch is the first line."""
    lines = [line.rstrip() for line in render_stack(stack).split("\n")]
    names = [stack.source_branch, *stack.all_branch_names]
    if not include_source:
        lines = lines[1:]
        names = names[1:]
    if not names:
        die("Stack {} has no branches", stack.name)

    initial_index = 0
    if current is not None and current in names:
        initial_index = names.index(current)
    return names[menu_choose(lines, title, initial_index)]


def edit_in_editor(initial: str) -> Optional[str]:
    """Let the user edit text in $EDITOR, None if the editor failed."""
    with tempfile.NamedTemporaryFile(mode="w+", suffix=".md", delete=False) as temp_file:
        temp_file.write(initial)
        temp_file_path = temp_file.name

    try:
        editor = os.environ.get("EDITOR", "vim")
        result = subprocess.run([editor, temp_file_path])
        if result.returncode != 0:
            cout("Editor exited with error\n", fg="red")
            return None
        with open(temp_file_path) as f:
            return f.read().strip()
    finally:
        os.unlink(temp_file_path)
