#!/usr/bin/env python3
"""Tests for gitstacks.stack.tree module."""

import unittest

from gitstacks.errors import BranchExistsError, InvalidMoveError, NotFoundError
from gitstacks.stack.tree import Branch, BranchTree, MoveBranchChildAction, RemoveBranchChildAction
from gitstacks.utils.types import BranchName

SOURCE = "main"


def b(name, *children):
    return Branch(BranchName(name), list(children))


def line_names(tree: BranchTree):
    return [[branch.name for branch in line] for line in tree.lines()]


class TestBranch(unittest.TestCase):
    """Tests for the Branch value."""

    def test_all_branch_names_depth_first(self):
        """Test names are listed depth-first, branch first."""
        branch = b("a", b("b", b("c")), b("d"))
        self.assertEqual(branch.all_branch_names, ["a", "b", "c", "d"])


class TestBranchTreeLines(unittest.TestCase):
    """Tests for BranchTree.lines."""

    def test_lines_one_per_leaf(self):
        """Test each leaf yields its own root-to-leaf line."""
        tree = BranchTree([b("A", b("B", b("C"), b("D")), b("E")), b("F", b("G"))])
        self.assertEqual(
            line_names(tree),
            [["A", "B", "C"], ["A", "B", "D"], ["A", "E"], ["F", "G"]],
        )

    def test_lines_of_nested_children(self):
        """Test lines of A[B[C,D], E, F[G]] follow children in declared order."""
        tree = BranchTree([b("A", b("B", b("C"), b("D")), b("E"), b("F", b("G")))])
        self.assertEqual(
            line_names(tree),
            [["A", "B", "C"], ["A", "B", "D"], ["A", "E"], ["A", "F", "G"]],
        )

    def test_childless_root_is_single_line(self):
        """Test a root without children is a line of its own."""
        tree = BranchTree([b("A"), b("B", b("C"))])
        self.assertEqual(line_names(tree), [["A"], ["B", "C"]])

    def test_empty_tree_has_no_lines(self):
        """Test an empty forest has no lines."""
        self.assertEqual(BranchTree().lines(), [])

    def test_lines_share_branch_snapshots(self):
        """Test a branch shared by two lines is the same object in both."""
        tree = BranchTree([b("A", b("B"), b("C"))])
        first, second = tree.lines()
        self.assertIs(first[0], second[0])


class TestBranchTreeQueries(unittest.TestCase):
    """Tests for lookups on BranchTree."""

    def setUp(self):
        self.tree = BranchTree([b("A", b("B", b("C"))), b("D")])

    def test_round_trip(self):
        """Test extracting branches gives back what was loaded."""
        branches = [b("A", b("B", b("C"), b("E"))), b("D")]
        self.assertEqual(BranchTree(branches).to_branches(), branches)

    def test_find_is_case_insensitive(self):
        """Test find matches names ignoring case."""
        found = self.tree.find("b")
        self.assertIsNotNone(found)
        self.assertEqual(found.name, "B")
        self.assertEqual([c.name for c in found.children], ["C"])

    def test_find_missing(self):
        """Test find returns None for unknown branches."""
        self.assertIsNone(self.tree.find("X"))

    def test_contains(self):
        """Test membership by name."""
        self.assertIn("C", self.tree)
        self.assertNotIn("X", self.tree)

    def test_parent_name(self):
        """Test parent lookup for nested and root branches."""
        self.assertEqual(self.tree.parent_name("C"), "B")
        self.assertIsNone(self.tree.parent_name("A"))

    def test_parent_name_missing(self):
        """Test parent lookup of unknown branch raises."""
        with self.assertRaises(NotFoundError):
            self.tree.parent_name("X")

    def test_all_names(self):
        """Test all names are depth-first."""
        self.assertEqual(self.tree.all_names(), ["A", "B", "C", "D"])
        self.assertEqual(len(self.tree), 4)

    def test_has_single_tree(self):
        """Test single chain detection."""
        self.assertTrue(BranchTree().has_single_tree())
        self.assertTrue(BranchTree([b("A", b("B", b("C")))]).has_single_tree())
        self.assertFalse(BranchTree([b("A"), b("B")]).has_single_tree())
        self.assertFalse(BranchTree([b("A", b("B"), b("C"))]).has_single_tree())

    def test_duplicate_names_rejected_on_load(self):
        """Test loading a forest with a repeated name fails."""
        with self.assertRaises(BranchExistsError):
            BranchTree([b("A", b("B")), b("b")])


class TestBranchTreeAdd(unittest.TestCase):
    """Tests for BranchTree.add."""

    def test_add_root_and_child(self):
        """Test adding appends as last root or last child."""
        tree = BranchTree([b("A", b("B"))])
        tree.add("C")
        tree.add("D", "A")
        self.assertEqual(tree.to_branches(), [b("A", b("B"), b("D")), b("C")])

    def test_add_duplicate(self):
        """Test adding an existing name fails regardless of case."""
        tree = BranchTree([b("A")])
        with self.assertRaises(BranchExistsError):
            tree.add("a")

    def test_add_under_missing_parent(self):
        """Test adding under an unknown parent fails and leaves the tree alone."""
        tree = BranchTree([b("A")])
        with self.assertRaises(NotFoundError):
            tree.add("B", "X")
        self.assertEqual(tree.to_branches(), [b("A")])


class TestBranchTreeRemove(unittest.TestCase):
    """Tests for BranchTree.remove."""

    def setUp(self):
        self.tree = BranchTree([b("A", b("B", b("C"), b("D")), b("E"))])

    def test_remove_moves_children_into_place(self):
        """Test children take the removed branch's place in its parent."""
        self.tree.remove("B", RemoveBranchChildAction.MOVE_CHILDREN_TO_PARENT)
        self.assertEqual(self.tree.to_branches(), [b("A", b("C"), b("D"), b("E"))])
        self.assertEqual(self.tree.parent_name("C"), "A")

    def test_remove_root_moves_children_to_roots(self):
        """Test removing a root promotes its children to roots."""
        self.tree.remove("A", RemoveBranchChildAction.MOVE_CHILDREN_TO_PARENT)
        self.assertEqual(self.tree.to_branches(), [b("B", b("C"), b("D")), b("E")])
        self.assertIsNone(self.tree.parent_name("B"))

    def test_remove_children(self):
        """Test removing a branch with its whole subtree."""
        self.tree.remove("B", RemoveBranchChildAction.REMOVE_CHILDREN)
        self.assertEqual(self.tree.to_branches(), [b("A", b("E"))])
        self.assertNotIn("C", self.tree)
        self.assertEqual(len(self.tree), 2)

    def test_remove_missing(self):
        """Test removing an unknown branch fails and leaves the tree alone."""
        before = self.tree.to_branches()
        with self.assertRaises(NotFoundError):
            self.tree.remove("X", RemoveBranchChildAction.REMOVE_CHILDREN)
        self.assertEqual(self.tree.to_branches(), before)


class TestBranchTreeMove(unittest.TestCase):
    """Tests for BranchTree.move."""

    def test_move_back_to_same_place_keeps_tree(self):
        """Test moving a last child under its own parent gives an equal tree."""
        branches = [b("A", b("B", b("C"), b("D")), b("E"), b("F", b("G")))]
        tree = BranchTree(branches)
        tree.move("F", "A", MoveBranchChildAction.MOVE_CHILDREN, SOURCE)
        self.assertEqual(tree, BranchTree(branches))
        self.assertEqual(tree.to_branches(), branches)

    def test_move_last_root_back_to_source_keeps_tree(self):
        branches = [b("A", b("B")), b("D", b("E"))]
        tree = BranchTree(branches)
        tree.move("D", SOURCE, MoveBranchChildAction.MOVE_CHILDREN, SOURCE)
        self.assertEqual(tree.to_branches(), branches)

    def test_move_to_root_reparenting_children(self):
        """Test moving to the source leaves children with the old parent."""
        tree = BranchTree([b("A", b("B", b("C")))])
        tree.move("B", SOURCE, MoveBranchChildAction.RE_PARENT_CHILDREN, SOURCE)
        self.assertEqual(tree.to_branches(), [b("A", b("C")), b("B")])

    def test_move_with_children(self):
        """Test moving takes the subtree along and appends it last."""
        tree = BranchTree([b("A", b("B", b("C"))), b("D", b("E"))])
        tree.move("B", "D", MoveBranchChildAction.MOVE_CHILDREN, SOURCE)
        self.assertEqual(tree.to_branches(), [b("A"), b("D", b("E"), b("B", b("C")))])

    def test_move_root_reparenting_children_to_roots(self):
        """Test children of a moved root become roots."""
        tree = BranchTree([b("A", b("B")), b("D")])
        tree.move("A", "D", MoveBranchChildAction.RE_PARENT_CHILDREN, SOURCE)
        self.assertEqual(tree.to_branches(), [b("D", b("A")), b("B")])

    def test_move_root_to_root_reappends(self):
        """Test moving a root to the source moves it to the end."""
        tree = BranchTree([b("A"), b("F")])
        tree.move("A", SOURCE, MoveBranchChildAction.MOVE_CHILDREN, SOURCE)
        self.assertEqual(tree.to_branches(), [b("F"), b("A")])

    def test_move_under_descendant(self):
        """Test moving under one's own descendant fails without changes."""
        tree = BranchTree([b("A", b("B", b("C")))])
        before = tree.to_branches()
        with self.assertRaises(InvalidMoveError):
            tree.move("B", "C", MoveBranchChildAction.RE_PARENT_CHILDREN, SOURCE)
        self.assertEqual(tree.to_branches(), before)

    def test_move_under_itself(self):
        """Test moving under itself fails."""
        tree = BranchTree([b("A")])
        with self.assertRaises(InvalidMoveError):
            tree.move("A", "a", MoveBranchChildAction.MOVE_CHILDREN, SOURCE)

    def test_move_missing_branch(self):
        """Test moving an unknown branch fails without changes."""
        tree = BranchTree([b("A", b("B"))])
        before = tree.to_branches()
        with self.assertRaises(NotFoundError):
            tree.move("X", "A", MoveBranchChildAction.MOVE_CHILDREN, SOURCE)
        with self.assertRaises(NotFoundError):
            tree.move("B", "X", MoveBranchChildAction.MOVE_CHILDREN, SOURCE)
        self.assertEqual(tree.to_branches(), before)


if __name__ == "__main__":
    unittest.main()
