"""Update commands - update, sync, pull, push."""

from typing import Optional

from gitstacks.commands.context import CommandContext
from gitstacks.errors import ConflictAbortedError, StackError
from gitstacks.stack.operations import UpdateResult, UpdateStrategy
from gitstacks.utils.config import get_config
from gitstacks.utils.logging import cout, debug, info
from gitstacks.utils.types import UPDATE_STRATEGY_GIT_CONFIG_KEY
from gitstacks.utils.ui import confirm, menu_choose_value


def _parse_strategy(value: str, origin: str) -> UpdateStrategy:
    try:
        return UpdateStrategy(value.strip().lower())
    except ValueError as e:
        raise StackError(f"Invalid update strategy {value} in {origin}, expected merge or rebase") from e


def resolve_update_strategy(ctx: CommandContext, requested: Optional[str]) -> UpdateStrategy:
    """Command line, then git config, then gitstacks config, then ask."""
    if requested:
        return UpdateStrategy(requested)

    value = ctx.git_client.get_config_value(UPDATE_STRATEGY_GIT_CONFIG_KEY)
    if value:
        debug("Using update strategy {} from git config {}", value, UPDATE_STRATEGY_GIT_CONFIG_KEY)
        return _parse_strategy(value, f"git config {UPDATE_STRATEGY_GIT_CONFIG_KEY}")

    value = get_config().update_strategy
    if value:
        debug("Using update strategy {} from gitstacks config", value)
        return _parse_strategy(value, "gitstacks config")

    return menu_choose_value(
        list(UpdateStrategy),
        lambda s: s.value.capitalize(),
        "Update using merge or rebase? "
        f"(set `git config {UPDATE_STRATEGY_GIT_CONFIG_KEY}` to skip this question)",
    )


def _report(result: UpdateResult):
    if result.updated:
        cout("Updated: {}\n", ", ".join(result.updated), fg="green")
    if result.skipped:
        cout("Skipped: {}\n", ", ".join(result.skipped), fg="gray")
    if result.aborted:
        raise ConflictAbortedError(
            "Update aborted for {}, branches above them were not updated".format(", ".join(result.aborted))
        )


def cmd_update(ctx: CommandContext, args):
    """Merge or rebase each branch of the stack onto its parent, locally."""
    stack = ctx.resolve_stack(args.stack)
    strategy = resolve_update_strategy(ctx, args.strategy)
    result = ctx.actions().update_stack(stack, strategy, check_pull_requests=args.pr)
    _report(result)


def cmd_sync(ctx: CommandContext, args):
    """Fetch, pull and update the whole stack, then push it unless told not to."""
    stack = ctx.resolve_stack(args.stack)
    strategy = resolve_update_strategy(ctx, args.strategy)
    confirm(f"Sync stack {stack.name} with the remote using {strategy.value}?")

    info("Fetching changes from {}", ctx.git_client.remote)
    ctx.git_client.fetch(prune=True)
    result = ctx.actions().update_stack(
        stack,
        strategy,
        check_pull_requests=args.pr,
        pull=True,
        push=not args.no_push,
        # Rebased branches can only be pushed over their previous remote state
        force_with_lease=strategy == UpdateStrategy.REBASE,
    )
    _report(result)


def cmd_pull(ctx: CommandContext, args):
    stack = ctx.resolve_stack(args.stack)
    info("Fetching changes from {}", ctx.git_client.remote)
    ctx.git_client.fetch(prune=True)
    ctx.actions().pull_changes(stack)


def cmd_push(ctx: CommandContext, args):
    stack = ctx.resolve_stack(args.stack)
    config = get_config()
    max_batch_size = args.max_batch_size or config.max_batch_size
    force_with_lease = config.force_with_lease if args.force_with_lease is None else args.force_with_lease
    ctx.actions().push_changes(stack, max_batch_size, force_with_lease)
