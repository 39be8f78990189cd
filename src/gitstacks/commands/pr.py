"""Pull request commands - create, open, description."""

import os
import tempfile
from typing import Dict, List, Optional, Set, Tuple

from gitstacks.commands.context import CommandContext
from gitstacks.pr.github import (
    STATE_OPEN, PullRequest, format_pull_request_line, new_pull_request_body, update_stack_pull_request_list
)
from gitstacks.stack.models import Stack
from gitstacks.stack.operations import BranchState
from gitstacks.utils.logging import cout, die, info, styled
from gitstacks.utils.types import BranchName
from gitstacks.utils.ui import confirm, edit_in_editor, menu_choose_branch, prompt


def _require_gh(ctx: CommandContext):
    if not ctx.github_client.is_available():
        die("The GitHub CLI is not installed or not logged in, run `gh auth login`")


def _pull_request_base(stack: Stack, name: str, inactive: Set[str]) -> str:
    """Closest ancestor still being worked on, else the source branch."""
    parent = stack.parent_of(name)
    while parent != stack.source_branch and parent in inactive:
        parent = stack.parent_of(parent)
    return parent


def _with_pull_request(pull_requests: Dict[str, Optional[PullRequest]]) -> Dict[str, PullRequest]:
    return {b: pr for b, pr in pull_requests.items() if pr is not None}


def cmd_pr_create(ctx: CommandContext, args):
    """Create pull requests for the branches of a stack that don't have one."""
    stack = ctx.resolve_stack(args.stack)
    _require_gh(ctx)

    statuses = ctx.git_client.get_branch_statuses(stack.all_branch_names)
    pull_requests = ctx.github_client.get_pull_requests(stack.all_branch_names)

    inactive: Set[str] = set()
    for name in stack.all_branch_names:
        if not BranchState(name, statuses.get(name), pull_requests.get(name)).is_active:
            inactive.add(name)

    to_create: List[Tuple[BranchName, str]] = []
    for name in stack.all_branch_names:
        pr = pull_requests.get(name)
        if name in inactive or (pr is not None and pr.state == STATE_OPEN):
            continue
        to_create.append((name, _pull_request_base(stack, name, inactive)))

    if not to_create:
        info("Every branch of stack {} already has an open pull request", stack.name)
        return

    cout("Pull requests to create:\n")
    for head, base in to_create:
        cout("  {} ", base, fg="gray")
        cout("<- {}\n", head, fg="green")
    confirm()

    for head, base in to_create:
        if statuses[head].remote_tracking_branch_name is None:
            info("Pushing new branch {}", head)
            ctx.git_client.push_new_branch(head)

        title = prompt(
            styled("? ", fg="green") + styled("Title for {}", head, style="bold"),
            head,
        )
        with tempfile.NamedTemporaryFile(mode="w+", suffix=".md", delete=False) as body_file:
            body_file.write(new_pull_request_body(stack))
            body_file_path = body_file.name
        try:
            pr = ctx.github_client.create_pull_request(head, base, title, body_file_path, args.draft)
        finally:
            os.unlink(body_file_path)
        pull_requests[head] = pr
        if pr is not None:
            cout("Created {}\n", format_pull_request_line(head, pr))

    update_stack_pull_request_list(ctx.github_client, stack, _with_pull_request(pull_requests))


def cmd_pr_open(ctx: CommandContext, args):
    stack = ctx.resolve_stack(args.stack)
    _require_gh(ctx)
    branch = args.branch or menu_choose_branch(stack, "Open pull request for", current=ctx.current_branch)
    pr = ctx.github_client.get_pull_request(branch)
    if pr is None:
        die("Branch {} has no pull request", branch)
    ctx.github_client.open_pull_request(pr)


def cmd_pr_description(ctx: CommandContext, args):
    """Set the description shown in every pull request of the stack."""
    stack = ctx.resolve_stack(args.stack)
    if args.description is not None:
        description: Optional[str] = args.description
    else:
        description = edit_in_editor(stack.description or "")
        if description is None:
            die("Not updating the description of stack {}", stack.name)

    if (description or None) == stack.description:
        info("Description of stack {} is unchanged", stack.name)
        return
    stack.set_description(description)
    ctx.save()
    cout("Description of stack {} updated\n", stack.name, fg="green")

    if ctx.github_client.is_available():
        pull_requests = ctx.github_client.get_pull_requests(stack.all_branch_names)
        update_stack_pull_request_list(ctx.github_client, stack, _with_pull_request(pull_requests))
