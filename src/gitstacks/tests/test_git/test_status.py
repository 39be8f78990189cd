#!/usr/bin/env python3
"""Tests for gitstacks.git.status module."""

import unittest

from gitstacks.git.status import parse_branch_status


class TestParseBranchStatus(unittest.TestCase):
    """Tests for parse_branch_status."""

    def test_current_branch_in_sync(self):
        status = parse_branch_status("* main                1111111 [origin/main] Initial commit")
        self.assertEqual(status.branch_name, "main")
        self.assertTrue(status.is_current_branch)
        self.assertEqual(status.remote_tracking_branch_name, "origin/main")
        self.assertTrue(status.remote_branch_exists)
        self.assertEqual((status.ahead, status.behind), (0, 0))
        self.assertEqual(status.tip.sha, "1111111")
        self.assertEqual(status.tip.message, "Initial commit")
        self.assertIsNone(status.worktree_path)

    def test_ahead_and_behind(self):
        status = parse_branch_status("  feature  2222222 [origin/feature: ahead 2, behind 1] Add feature")
        self.assertFalse(status.is_current_branch)
        self.assertEqual((status.ahead, status.behind), (2, 1))

    def test_ahead_only(self):
        status = parse_branch_status("  feature  2222222 [origin/feature: ahead 4] Add feature")
        self.assertEqual((status.ahead, status.behind), (4, 0))

    def test_behind_only(self):
        status = parse_branch_status("  feature  2222222 [origin/feature: behind 3] Add feature")
        self.assertEqual((status.ahead, status.behind), (0, 3))

    def test_remote_gone(self):
        """Test a deleted remote branch keeps its tracking name."""
        status = parse_branch_status("  old  3333333 [origin/old: gone] Old work")
        self.assertEqual(status.remote_tracking_branch_name, "origin/old")
        self.assertFalse(status.remote_branch_exists)

    def test_no_tracking_branch(self):
        status = parse_branch_status("  local  4444444 Local only")
        self.assertIsNone(status.remote_tracking_branch_name)
        self.assertFalse(status.remote_branch_exists)
        self.assertEqual(status.tip.message, "Local only")

    def test_worktree_path(self):
        """Test the path of a branch checked out in another worktree."""
        status = parse_branch_status("+ wt  5555555 (/work/wt) [origin/wt: behind 3] In worktree")
        self.assertEqual(status.worktree_path, "/work/wt")
        self.assertFalse(status.is_current_branch)
        self.assertEqual(status.behind, 3)

    def test_worktree_without_path(self):
        status = parse_branch_status("+ oldwt  6666666 [origin/oldwt] Old git worktree")
        self.assertEqual(status.branch_name, "oldwt")
        self.assertIsNone(status.worktree_path)

    def test_not_a_branch_line(self):
        self.assertIsNone(parse_branch_status(""))


if __name__ == "__main__":
    unittest.main()
