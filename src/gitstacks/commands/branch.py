"""Branch commands - new, add, remove, move."""

from typing import Optional

from gitstacks.commands.context import CommandContext
from gitstacks.stack.models import Stack, humanize
from gitstacks.stack.tree import MoveBranchChildAction, RemoveBranchChildAction
from gitstacks.utils.logging import cout, die, info
from gitstacks.utils.ui import confirm, menu_choose_branch, menu_choose_value, prompt


def _default_parent(ctx: CommandContext, stack: Stack) -> str:
    current_branch = ctx.current_branch
    if stack.find_branch(current_branch) is not None:
        return current_branch
    return stack.source_branch


def _resolve_parent(ctx: CommandContext, stack: Stack, parent: Optional[str], title: str) -> str:
    if parent:
        if parent.casefold() != stack.source_branch.casefold() and stack.find_branch(parent) is None:
            die("Branch {} is not in stack {}", parent, stack.name)
        return parent
    if not stack.all_branch_names:
        return stack.source_branch
    return menu_choose_branch(stack, title, include_source=True, current=_default_parent(ctx, stack))


def cmd_branch_new(ctx: CommandContext, args):
    """Create a branch off a branch of the stack and add it to the stack."""
    stack = ctx.resolve_stack(args.stack)
    name = args.name or prompt("Branch name:")
    if ctx.git_client.does_local_branch_exist(name):
        die("Branch {} already exists, use `branch add` to add it to a stack", name)
    if stack.find_branch(name) is not None:
        die("Branch {} is already in stack {}", name, stack.name)

    parent = _resolve_parent(ctx, stack, args.parent, "Select parent branch")
    info("Creating branch {} from {}", name, parent)
    ctx.git_client.create_new_branch(name, parent)
    stack.add_branch(name, parent)
    ctx.save()

    if args.push:
        info("Pushing new branch {}", name)
        ctx.git_client.push_new_branch(name)
    if args.switch:
        ctx.git_client.change_branch(name)
    cout("Branch {} added to stack {}\n", name, stack.name, fg="green")


def cmd_branch_add(ctx: CommandContext, args):
    """Add an existing local branch to a stack."""
    stack = ctx.resolve_stack(args.stack)
    name = args.name or prompt("Branch name:", ctx.current_branch)
    if not ctx.git_client.does_local_branch_exist(name):
        die("Branch {} does not exist locally", name)
    if name.casefold() == stack.source_branch.casefold():
        die("Branch {} is the source branch of stack {}", name, stack.name)

    parent = _resolve_parent(ctx, stack, args.parent, "Select parent branch")
    stack.add_branch(name, parent)
    ctx.save()
    cout("Branch {} added to stack {}\n", name, stack.name, fg="green")


def cmd_branch_remove(ctx: CommandContext, args):
    """Remove a branch from a stack, the local branch itself is kept."""
    stack = ctx.resolve_stack(args.stack)
    name = args.name or menu_choose_branch(stack, "Select branch to remove", current=ctx.current_branch)
    branch = stack.find_branch(name)
    if branch is None:
        die("Branch {} is not in stack {}", name, stack.name)

    if args.action:
        action = RemoveBranchChildAction(args.action)
    elif branch.children:
        action = menu_choose_value(list(RemoveBranchChildAction), humanize, "What should happen to its children?")
    else:
        action = RemoveBranchChildAction.MOVE_CHILDREN_TO_PARENT

    confirm(f"Remove branch {name} from stack {stack.name}?")
    stack.remove_branch(name, action)
    ctx.save()
    cout("Branch {} removed from stack {}\n", name, stack.name, fg="green")


def cmd_branch_move(ctx: CommandContext, args):
    """Move a branch under another branch of the stack, or to its root."""
    stack = ctx.resolve_stack(args.stack)
    name = args.name or menu_choose_branch(stack, "Select branch to move", current=ctx.current_branch)
    branch = stack.find_branch(name)
    if branch is None:
        die("Branch {} is not in stack {}", name, stack.name)

    new_parent = _resolve_parent(ctx, stack, args.parent, f"Move {name} under")

    if args.action:
        action = MoveBranchChildAction(args.action)
    elif branch.children:
        action = menu_choose_value(list(MoveBranchChildAction), humanize, "What should happen to its children?")
    else:
        action = MoveBranchChildAction.MOVE_CHILDREN

    stack.move_branch(name, new_parent, action)
    ctx.save()
    cout("Branch {} moved under {}\n", name, new_parent, fg="green")
