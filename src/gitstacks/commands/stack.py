"""Stack commands - new, list, status, delete, rename, switch, cleanup."""

from typing import Dict, List, Optional

from gitstacks.commands.context import CommandContext
from gitstacks.git.status import GitBranchStatus
from gitstacks.pr.github import PullRequest, get_pull_request_display
from gitstacks.stack.models import Stack
from gitstacks.stack.operations import BranchState
from gitstacks.stack.tree import RemoveBranchChildAction
from gitstacks.utils.logging import cout, die, info, stdout_colored, styled, warning
from gitstacks.utils.types import BranchName
from gitstacks.utils.ui import confirm, menu_choose_branch, prompt, render_stack


def cmd_stack_new(ctx: CommandContext, args):
    """Create a new stack, optionally starting it with a branch."""
    name = args.name or prompt("Stack name:")
    if ctx.find_stack(name) is not None:
        die("A stack named {} already exists", name)

    source_branch = args.source_branch or prompt("Source branch:", ctx.current_branch)
    if not ctx.git_client.does_local_branch_exist(source_branch):
        die("Source branch {} does not exist", source_branch)

    stack = Stack(name, ctx.remote_uri, source_branch)
    if args.branch:
        if ctx.git_client.does_local_branch_exist(args.branch):
            info("Adding existing branch {} to stack {}", args.branch, name)
        else:
            info("Creating branch {} from {}", args.branch, source_branch)
            ctx.git_client.create_new_branch(args.branch, source_branch)
        stack.add_branch(args.branch)

    ctx.collection.add(stack)
    ctx.save()
    cout("Stack {} created\n", name, fg="green")

    if args.branch and args.switch:
        ctx.git_client.change_branch(args.branch)


def cmd_stack_list(ctx: CommandContext, args):
    """List the stacks of the current repository."""
    stacks = ctx.stacks()
    if not stacks:
        info("No stacks found for the current repository")
        return
    current_branch = ctx.current_branch
    for stack in stacks:
        marker = "*" if stack.is_current_stack(current_branch) else " "
        count = len(stack.all_branch_names)
        cout("{} ", marker, fg="cyan")
        cout("{}", stack.name, fg="green")
        cout(" ({}, {} branch{})\n", stack.source_branch, count, "" if count == 1 else "es", fg="gray")


def _describe_branch(
    ctx: CommandContext,
    stack: Stack,
    name: str,
    statuses: Dict[BranchName, GitBranchStatus],
    pull_requests: Dict[str, Optional[PullRequest]],
    current_branch: str,
) -> str:
    status = statuses.get(BranchName(name))
    s = styled("{}", name, fg="cyan" if name == current_branch else None)
    if name == current_branch:
        s = styled("* ", fg="cyan") + s
    if status is None:
        return s + styled(" (missing locally)", fg="red")

    notes: List[str] = []
    if name != stack.source_branch and stack.source_branch in statuses:
        parent = stack.parent_of(name)
        if parent in statuses:
            _, behind_parent = ctx.git_client.compare_branches(name, parent)
            if behind_parent:
                notes.append(styled("{} behind {}", behind_parent, parent, fg="yellow"))

    if status.remote_tracking_branch_name is None:
        notes.append(styled("not pushed", fg="gray"))
    elif not status.remote_branch_exists:
        notes.append(styled("remote branch deleted", fg="red"))
    elif status.ahead or status.behind:
        notes.append(styled("{}↑ {}↓", status.ahead, status.behind, fg="yellow"))

    pr = pull_requests.get(name)
    if pr is not None:
        notes.append(get_pull_request_display(pr, colorize=stdout_colored()))

    if notes:
        s += " (" + ", ".join(notes) + ")"
    return s


def cmd_stack_status(ctx: CommandContext, args):
    """Show the branches of one or all stacks with their sync state."""
    if args.all:
        stacks = ctx.stacks()
    else:
        stacks = [ctx.resolve_stack(args.stack)]
    if args.fetch:
        ctx.git_client.fetch(prune=True)

    current_branch = ctx.current_branch
    for i, stack in enumerate(stacks):
        statuses = ctx.git_client.get_branch_statuses([stack.source_branch, *stack.all_branch_names])
        pull_requests: Dict[str, Optional[PullRequest]] = {}
        if args.pr:
            pull_requests = ctx.github_client.get_pull_requests(stack.all_branch_names)
        if i != 0:
            print()
        cout("{}\n", stack.name, fg="green", style="bold")
        print(render_stack(
            stack,
            lambda name: _describe_branch(ctx, stack, name, statuses, pull_requests, current_branch),
        ))


def cmd_stack_delete(ctx: CommandContext, args):
    """Forget a stack, then offer to delete its local branches that are gone on the remote."""
    stack = ctx.resolve_stack(args.stack)
    confirm(f"Delete stack {stack.name}?")

    statuses = ctx.git_client.get_branch_statuses(stack.all_branch_names)
    ctx.collection.remove(stack)
    ctx.save()
    cout("Stack {} deleted\n", stack.name, fg="green")

    gone = [s.branch_name for s in statuses.values() if not BranchState(s.branch_name, s).is_active]
    if gone:
        _delete_local_branches(ctx, gone)


def _delete_local_branches(ctx: CommandContext, branches: List[BranchName]):
    current_branch = ctx.current_branch
    if current_branch in branches:
        warning("Not deleting {}, it is the current branch", current_branch)
        branches = [b for b in branches if b != current_branch]
    if not branches:
        return
    cout("Local branches to delete:\n")
    for b in branches:
        cout("  - {}\n", b, fg="red")
    confirm("Delete these local branches?")
    for b in branches:
        info("Deleting local branch {}", b)
        ctx.git_client.delete_local_branch(b)


def cmd_stack_rename(ctx: CommandContext, args):
    stack = ctx.resolve_stack(args.stack)
    new_name = args.name or prompt("New stack name:")
    existing = ctx.find_stack(new_name)
    if existing is not None and existing is not stack:
        die("A stack named {} already exists", new_name)
    old_name = stack.name
    stack.change_name(new_name)
    ctx.save()
    cout("Stack {} renamed to {}\n", old_name, new_name, fg="green")


def cmd_stack_switch(ctx: CommandContext, args):
    """Check out a branch of a stack."""
    stack = ctx.resolve_stack(args.stack)
    current_branch = ctx.current_branch
    branch = args.branch or menu_choose_branch(stack, "Switch to", include_source=True, current=current_branch)
    if branch != stack.source_branch and stack.find_branch(branch) is None:
        die("Branch {} is not in stack {}", branch, stack.name)
    if branch == current_branch:
        info("Already on {}", branch)
        return

    status = ctx.git_client.get_branch_statuses([branch]).get(BranchName(branch))
    if status is not None and status.worktree_path is not None:
        die("Branch {} is checked out in worktree {}", branch, status.worktree_path)
    ctx.git_client.change_branch(branch)


def cmd_stack_cleanup(ctx: CommandContext, args):
    """Delete local branches whose remote branch is gone or whose pull request was merged."""
    stack = ctx.resolve_stack(args.stack)
    ctx.git_client.fetch(prune=True)
    statuses = ctx.git_client.get_branch_statuses(stack.all_branch_names)
    pull_requests: Dict[str, Optional[PullRequest]] = {}
    if args.pr:
        pull_requests = ctx.github_client.get_pull_requests(list(statuses))

    inactive = [
        s.branch_name for s in statuses.values()
        if not BranchState(s.branch_name, s, pull_requests.get(s.branch_name)).is_active
    ]
    if not inactive:
        info("No branches to clean up in stack {}", stack.name)
        return

    _delete_local_branches(ctx, inactive)
    for b in inactive:
        if not ctx.git_client.does_local_branch_exist(b):
            stack.remove_branch(b, RemoveBranchChildAction.MOVE_CHILDREN_TO_PARENT)
    ctx.save()
