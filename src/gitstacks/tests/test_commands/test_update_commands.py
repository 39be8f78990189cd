#!/usr/bin/env python3
"""Tests for gitstacks.commands.update module."""

import unittest
from argparse import Namespace
from unittest.mock import MagicMock, patch

from gitstacks.commands.update import cmd_push, cmd_sync, cmd_update, resolve_update_strategy
from gitstacks.errors import ConflictAbortedError, StackError
from gitstacks.stack.models import Stack
from gitstacks.stack.operations import StackActions, UpdateResult, UpdateStrategy
from gitstacks.utils.config import GitStacksConfig

REMOTE = "https://github.com/example/repo.git"


def make_context(git_config_value=None):
    ctx = MagicMock()
    ctx.git_client.get_config_value.return_value = git_config_value
    ctx.git_client.remote = "origin"
    ctx.resolve_stack.return_value = Stack("feature", REMOTE, "main")
    ctx.actions.return_value = MagicMock(spec=StackActions)
    return ctx


class TestResolveUpdateStrategy(unittest.TestCase):
    """Tests for resolve_update_strategy."""

    def test_command_line_wins(self):
        ctx = make_context("merge")
        self.assertEqual(resolve_update_strategy(ctx, "rebase"), UpdateStrategy.REBASE)
        ctx.git_client.get_config_value.assert_not_called()

    def test_git_config(self):
        ctx = make_context("Rebase")
        self.assertEqual(resolve_update_strategy(ctx, None), UpdateStrategy.REBASE)
        ctx.git_client.get_config_value.assert_called_once_with("stack.update.strategy")

    @patch("gitstacks.commands.update.get_config", return_value=GitStacksConfig(update_strategy="merge"))
    def test_gitstacks_config(self, mock_config):
        self.assertEqual(resolve_update_strategy(make_context(), None), UpdateStrategy.MERGE)

    @patch("gitstacks.commands.update.get_config", return_value=GitStacksConfig())
    @patch("gitstacks.commands.update.menu_choose_value", return_value=UpdateStrategy.MERGE)
    def test_asks_when_unset(self, mock_menu, mock_config):
        self.assertEqual(resolve_update_strategy(make_context(), None), UpdateStrategy.MERGE)
        mock_menu.assert_called_once()

    def test_invalid_value(self):
        with self.assertRaises(StackError):
            resolve_update_strategy(make_context("squash"), None)


@patch("gitstacks.commands.update.cout")
@patch("gitstacks.commands.update.info")
class TestUpdateCommands(unittest.TestCase):
    """Tests for update, sync and push."""

    def test_update(self, mock_info, mock_cout):
        ctx = make_context()
        ctx.actions.return_value.update_stack.return_value = UpdateResult(updated=["a"])

        cmd_update(ctx, Namespace(stack=None, strategy="merge", pr=False))

        ctx.actions.return_value.update_stack.assert_called_once_with(
            ctx.resolve_stack.return_value, UpdateStrategy.MERGE, check_pull_requests=False
        )

    def test_update_aborted_fails(self, mock_info, mock_cout):
        """Test an aborted update is reported as a failure."""
        ctx = make_context()
        ctx.actions.return_value.update_stack.return_value = UpdateResult(updated=["a"], aborted=["b"])

        with self.assertRaises(ConflictAbortedError):
            cmd_update(ctx, Namespace(stack=None, strategy="merge", pr=False))

    @patch("gitstacks.commands.update.confirm")
    def test_sync_rebase_force_pushes(self, mock_confirm, mock_info, mock_cout):
        ctx = make_context()
        ctx.actions.return_value.update_stack.return_value = UpdateResult()

        cmd_sync(ctx, Namespace(stack=None, strategy="rebase", pr=True, no_push=False))

        mock_confirm.assert_called_once()
        ctx.git_client.fetch.assert_called_once_with(prune=True)
        ctx.actions.return_value.update_stack.assert_called_once_with(
            ctx.resolve_stack.return_value,
            UpdateStrategy.REBASE,
            check_pull_requests=True,
            pull=True,
            push=True,
            force_with_lease=True,
        )

    @patch("gitstacks.commands.update.confirm")
    def test_sync_merge_plain_push(self, mock_confirm, mock_info, mock_cout):
        ctx = make_context()
        ctx.actions.return_value.update_stack.return_value = UpdateResult()

        cmd_sync(ctx, Namespace(stack=None, strategy="merge", pr=False, no_push=False))

        self.assertFalse(ctx.actions.return_value.update_stack.call_args[1]["force_with_lease"])

    @patch("gitstacks.commands.update.confirm")
    def test_sync_without_push(self, mock_confirm, mock_info, mock_cout):
        ctx = make_context()
        ctx.actions.return_value.update_stack.return_value = UpdateResult()

        cmd_sync(ctx, Namespace(stack=None, strategy="rebase", pr=False, no_push=True))

        kwargs = ctx.actions.return_value.update_stack.call_args[1]
        self.assertTrue(kwargs["pull"])
        self.assertFalse(kwargs["push"])

    @patch("gitstacks.commands.update.get_config", return_value=GitStacksConfig(max_batch_size=3))
    def test_push_uses_config_defaults(self, mock_config, mock_info, mock_cout):
        ctx = make_context()
        cmd_push(ctx, Namespace(stack=None, max_batch_size=None, force_with_lease=None))
        ctx.actions.return_value.push_changes.assert_called_once_with(ctx.resolve_stack.return_value, 3, True)

    @patch("gitstacks.commands.update.get_config", return_value=GitStacksConfig())
    def test_push_flags_override_config(self, mock_config, mock_info, mock_cout):
        ctx = make_context()
        cmd_push(ctx, Namespace(stack=None, max_batch_size=1, force_with_lease=False))
        ctx.actions.return_value.push_changes.assert_called_once_with(ctx.resolve_stack.return_value, 1, False)


if __name__ == "__main__":
    unittest.main()
