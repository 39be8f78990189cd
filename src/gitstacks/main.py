"""Main entry point for gitstacks."""

import os
import sys
from argparse import ArgumentParser

import argcomplete  # type: ignore

from gitstacks.commands.branch import cmd_branch_add, cmd_branch_move, cmd_branch_new, cmd_branch_remove
from gitstacks.commands.context import CommandContext
from gitstacks.commands.pr import cmd_pr_create, cmd_pr_description, cmd_pr_open
from gitstacks.commands.stack import (
    cmd_stack_cleanup, cmd_stack_delete, cmd_stack_list, cmd_stack_new, cmd_stack_rename, cmd_stack_status,
    cmd_stack_switch
)
from gitstacks.commands.update import cmd_pull, cmd_push, cmd_sync, cmd_update
from gitstacks.errors import BackendError, StackError
from gitstacks.git.client import GitClient
from gitstacks.stack.operations import UpdateStrategy
from gitstacks.stack.tree import MoveBranchChildAction, RemoveBranchChildAction
from gitstacks.utils.config import get_config
from gitstacks.utils.logging import COLOR_MODES, ExitException, error, info, set_color_mode, setup_logging
from gitstacks.utils.types import DEFAULT_REMOTE, LOGLEVELS


def branch_name_completer(prefix, parsed_args, **kwargs):
    """Argcomplete completer function for branch names."""
    try:
        branches = GitClient(os.getcwd()).get_local_branches_ordered_by_most_recent_committer_date()
    except StackError:
        return []
    return [branch for branch in branches if branch.startswith(prefix)]


def _add_stack_argument(parser):
    parser.add_argument("--stack", "-s", help="Stack name, defaults to the stack of the current branch")


def _add_strategy_arguments(parser):
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--merge", dest="strategy", action="store_const", const=UpdateStrategy.MERGE.value,
        help="Merge each branch's parent into it",
    )
    group.add_argument(
        "--rebase", dest="strategy", action="store_const", const=UpdateStrategy.REBASE.value,
        help="Rebase each branch onto its parent",
    )
    parser.add_argument(
        "--pr", action="store_true",
        help="Also treat branches whose pull request was merged as gone (slow)",
    )


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="stack", description="Manage stacks of dependent git branches")
    parser.add_argument(
        "--log-level", default="info", choices=LOGLEVELS.keys(),
        help="Set the log level",
    )
    parser.add_argument(
        "--color", default="auto", choices=COLOR_MODES,
        help="Colorize output and error",
    )
    parser.add_argument(
        "--remote-name", "-r", default=DEFAULT_REMOTE,
        help="name of the git remote branches are pulled from and pushed to",
    )
    parser.add_argument("--yes", "-y", action="store_true", help="Bypass confirmation")

    subparsers = parser.add_subparsers(required=True, dest="command")
    _setup_stack_subcommands(subparsers)
    _setup_update_subcommands(subparsers)
    _setup_branch_subcommands(subparsers)
    _setup_pr_subcommands(subparsers)
    return parser


def _setup_stack_subcommands(subparsers):
    """Setup stack level commands."""
    new_parser = subparsers.add_parser("new", help="Create a new stack")
    new_parser.add_argument("name", nargs="?", help="Stack name")
    new_parser.add_argument(
        "--source-branch", help="Branch the stack is based on, defaults to the current branch"
    ).completer = branch_name_completer
    new_parser.add_argument(
        "--branch", "-b", help="Branch to start the stack with, created if it doesn't exist"
    ).completer = branch_name_completer
    new_parser.add_argument("--switch", action="store_true", help="Check out the branch afterwards")
    new_parser.set_defaults(func=cmd_stack_new)

    list_parser = subparsers.add_parser("list", aliases=["ls"], help="List stacks of this repository")
    list_parser.set_defaults(func=cmd_stack_list)

    status_parser = subparsers.add_parser("status", aliases=["st"], help="Show the branches of a stack")
    _add_stack_argument(status_parser)
    status_parser.add_argument("--all", "-a", action="store_true", help="Show every stack")
    status_parser.add_argument("--pr", action="store_true", help="Get PR info (slow)")
    status_parser.add_argument("--fetch", action="store_true", help="Fetch from the remote first")
    status_parser.set_defaults(func=cmd_stack_status)

    delete_parser = subparsers.add_parser("delete", help="Delete a stack")
    _add_stack_argument(delete_parser)
    delete_parser.set_defaults(func=cmd_stack_delete)

    rename_parser = subparsers.add_parser("rename", help="Rename a stack")
    _add_stack_argument(rename_parser)
    rename_parser.add_argument("name", nargs="?", help="New stack name")
    rename_parser.set_defaults(func=cmd_stack_rename)

    switch_parser = subparsers.add_parser("switch", aliases=["co"], help="Check out a branch of a stack")
    _add_stack_argument(switch_parser)
    switch_parser.add_argument("branch", nargs="?", help="Branch name").completer = branch_name_completer
    switch_parser.set_defaults(func=cmd_stack_switch)

    cleanup_parser = subparsers.add_parser(
        "cleanup", help="Delete local branches of a stack that are gone from the remote"
    )
    _add_stack_argument(cleanup_parser)
    cleanup_parser.add_argument("--pr", action="store_true", help="Also clean up branches with merged PRs (slow)")
    cleanup_parser.set_defaults(func=cmd_stack_cleanup)


def _setup_update_subcommands(subparsers):
    """Setup commands that update branches."""
    update_parser = subparsers.add_parser("update", help="Update each branch of a stack from its parent")
    _add_stack_argument(update_parser)
    _add_strategy_arguments(update_parser)
    update_parser.set_defaults(func=cmd_update)

    sync_parser = subparsers.add_parser("sync", help="Pull, update and push a stack")
    _add_stack_argument(sync_parser)
    _add_strategy_arguments(sync_parser)
    sync_parser.add_argument("--no-push", action="store_true", help="Don't push the branches afterwards")
    sync_parser.set_defaults(func=cmd_sync)

    pull_parser = subparsers.add_parser("pull", help="Pull remote changes for the branches of a stack")
    _add_stack_argument(pull_parser)
    pull_parser.set_defaults(func=cmd_pull)

    push_parser = subparsers.add_parser("push", help="Push the branches of a stack")
    _add_stack_argument(push_parser)
    push_parser.add_argument("--max-batch-size", type=int, help="Number of branches pushed at once")
    push_parser.add_argument(
        "--force-with-lease", dest="force_with_lease", action="store_true", default=None,
        help="Force push branches that were rebased",
    )
    push_parser.add_argument(
        "--no-force-with-lease", dest="force_with_lease", action="store_false",
        help="Never force push",
    )
    push_parser.set_defaults(func=cmd_push)


def _setup_branch_subcommands(subparsers):
    """Setup branch subcommands."""
    branch_parser = subparsers.add_parser("branch", aliases=["b"], help="Operations on the branches of a stack")
    branch_subparsers = branch_parser.add_subparsers(required=True, dest="branch_command")

    new_parser = branch_subparsers.add_parser("new", aliases=["create"], help="Create a new branch in a stack")
    _add_stack_argument(new_parser)
    new_parser.add_argument("name", nargs="?", help="Branch name")
    new_parser.add_argument("--parent", "-p", help="Parent branch").completer = branch_name_completer
    new_parser.add_argument("--push", action="store_true", help="Push the new branch")
    new_parser.add_argument("--no-switch", dest="switch", action="store_false", help="Stay on the current branch")
    new_parser.set_defaults(func=cmd_branch_new)

    add_parser = branch_subparsers.add_parser("add", help="Add an existing branch to a stack")
    _add_stack_argument(add_parser)
    add_parser.add_argument("name", nargs="?", help="Branch name").completer = branch_name_completer
    add_parser.add_argument("--parent", "-p", help="Parent branch").completer = branch_name_completer
    add_parser.set_defaults(func=cmd_branch_add)

    remove_parser = branch_subparsers.add_parser("remove", aliases=["rm"], help="Remove a branch from a stack")
    _add_stack_argument(remove_parser)
    remove_parser.add_argument("name", nargs="?", help="Branch name").completer = branch_name_completer
    remove_parser.add_argument(
        "--action", choices=[a.value for a in RemoveBranchChildAction],
        help="What happens to the children of the branch",
    )
    remove_parser.set_defaults(func=cmd_branch_remove)

    move_parser = branch_subparsers.add_parser("move", aliases=["mv"], help="Move a branch within a stack")
    _add_stack_argument(move_parser)
    move_parser.add_argument("name", nargs="?", help="Branch name").completer = branch_name_completer
    move_parser.add_argument(
        "--parent", "-p", help="New parent branch, the source branch moves it to the root"
    ).completer = branch_name_completer
    move_parser.add_argument(
        "--action", choices=[a.value for a in MoveBranchChildAction],
        help="What happens to the children of the branch",
    )
    move_parser.set_defaults(func=cmd_branch_move)


def _setup_pr_subcommands(subparsers):
    """Setup pull request subcommands."""
    pr_parser = subparsers.add_parser("pr", help="Pull requests for a stack")
    pr_subparsers = pr_parser.add_subparsers(required=True, dest="pr_command")

    create_parser = pr_subparsers.add_parser("create", help="Create pull requests for a stack")
    _add_stack_argument(create_parser)
    create_parser.add_argument("--draft", action="store_true", help="Create draft pull requests")
    create_parser.set_defaults(func=cmd_pr_create)

    open_parser = pr_subparsers.add_parser("open", help="Open the pull request of a branch in the browser")
    _add_stack_argument(open_parser)
    open_parser.add_argument("branch", nargs="?", help="Branch name").completer = branch_name_completer
    open_parser.set_defaults(func=cmd_pr_open)

    description_parser = pr_subparsers.add_parser(
        "description", help="Edit the description added to every pull request of a stack"
    )
    _add_stack_argument(description_parser)
    description_parser.add_argument("description", nargs="?", help="New description, opens $EDITOR if omitted")
    description_parser.set_defaults(func=cmd_pr_description)


def main():
    """Main entry point for gitstacks."""
    setup_logging()
    try:
        parser = build_parser()
        argcomplete.autocomplete(parser)
        args = parser.parse_args()
        setup_logging(LOGLEVELS[args.log_level])
        set_color_mode(args.color)
        if args.yes:
            get_config().skip_confirm = True

        ctx = CommandContext.load(os.getcwd(), args.remote_name)
        args.func(ctx, args)
    except (StackError, ExitException) as e:
        error("{}", e)
        if isinstance(e, BackendError) and e.branch:
            info("Check branch {} with `git status` before running the command again", e.branch)
        sys.exit(1)
    except KeyboardInterrupt:
        error("Interrupted")
        sys.exit(130)
