#!/usr/bin/env python3
"""Tests for gitstacks.utils.shell module."""

import subprocess
import unittest
from unittest.mock import patch

from gitstacks.errors import BackendError
from gitstacks.utils.shell import (
    _check_returncode, remove_prefix, run, run_always_return, run_completed, run_multiline
)


class TestCheckReturnCode(unittest.TestCase):
    """Tests for _check_returncode function."""

    def test_check_returncode_zero(self):
        """Test that zero return code does not raise."""
        sp = subprocess.CompletedProcess(args=["ls"], returncode=0)
        _check_returncode(sp, ["ls"])

    def test_check_returncode_negative(self):
        """Test that negative return code (signal) raises with signal info."""
        sp = subprocess.CompletedProcess(args=["ls"], returncode=-9, stderr=b"error")
        with self.assertRaises(BackendError) as cm:
            _check_returncode(sp, ["ls", "-l"])
        self.assertEqual(str(cm.exception), "Killed by signal 9: ls -l. Stderr was:\nerror")

    def test_check_returncode_positive(self):
        """Test that positive return code raises with exit status."""
        sp = subprocess.CompletedProcess(args=["ls"], returncode=1, stderr=b"error")
        with self.assertRaises(BackendError) as cm:
            _check_returncode(sp, ["ls"])
        self.assertEqual(str(cm.exception), "Exited with status 1: ls. Stderr was:\nerror")


class TestRun(unittest.TestCase):
    """Tests for run functions."""

    @patch("subprocess.run")
    @patch("gitstacks.utils.shell.debug")
    def test_run_success(self, mock_debug, mock_subprocess_run):
        """Test run returns stripped output on success."""
        mock_subprocess_run.return_value = subprocess.CompletedProcess(
            args=["echo", "hello"],
            returncode=0,
            stdout=b"  hello world  \n",
            stderr=b""
        )
        result = run(["echo", "hello"])
        self.assertEqual(result, "hello world")

    @patch("subprocess.run")
    @patch("gitstacks.utils.shell.debug")
    def test_run_passes_cwd(self, mock_debug, mock_subprocess_run):
        """Test the working directory reaches subprocess."""
        mock_subprocess_run.return_value = subprocess.CompletedProcess(
            args=["pwd"], returncode=0, stdout=b"/tmp\n", stderr=b""
        )
        run(["pwd"], cwd="/tmp")
        self.assertEqual(mock_subprocess_run.call_args[1]["cwd"], "/tmp")

    @patch("subprocess.run")
    @patch("gitstacks.utils.shell.debug")
    def test_run_failure_check_false(self, mock_debug, mock_subprocess_run):
        """Test run returns None on failure when check=False."""
        mock_subprocess_run.return_value = subprocess.CompletedProcess(
            args=["false"],
            returncode=1,
            stdout=b"",
            stderr=b"error"
        )
        result = run(["false"], check=False)
        self.assertIsNone(result)

    @patch("subprocess.run")
    @patch("gitstacks.utils.shell.debug")
    def test_run_failure_raises(self, mock_debug, mock_subprocess_run):
        """Test run raises on failure by default."""
        mock_subprocess_run.return_value = subprocess.CompletedProcess(
            args=["false"], returncode=1, stdout=b"", stderr=b"error"
        )
        with self.assertRaises(BackendError):
            run(["false"])

    @patch("subprocess.run")
    @patch("gitstacks.utils.shell.debug")
    def test_run_multiline_preserves_newlines(self, mock_debug, mock_subprocess_run):
        """Test run_multiline preserves newlines in output."""
        mock_subprocess_run.return_value = subprocess.CompletedProcess(
            args=["echo", "-e", "line1\\nline2"],
            returncode=0,
            stdout=b"line1\nline2\n",
            stderr=b""
        )
        result = run_multiline(["echo", "-e", "line1\\nline2"])
        self.assertEqual(result, "line1\nline2\n")

    @patch("subprocess.run")
    @patch("gitstacks.utils.shell.debug")
    def test_run_completed_does_not_check(self, mock_debug, mock_subprocess_run):
        """Test run_completed hands back failures untouched."""
        mock_subprocess_run.return_value = subprocess.CompletedProcess(
            args=["false"], returncode=3, stdout=b"", stderr=b""
        )
        self.assertEqual(run_completed(["false"]).returncode, 3)

    @patch("subprocess.run")
    @patch("gitstacks.utils.shell.debug")
    def test_run_always_return(self, mock_debug, mock_subprocess_run):
        """Test run_always_return returns output."""
        mock_subprocess_run.return_value = subprocess.CompletedProcess(
            args=["echo", "test"],
            returncode=0,
            stdout=b"test",
            stderr=b""
        )
        result = run_always_return(["echo", "test"])
        self.assertEqual(result, "test")


class TestRemovePrefix(unittest.TestCase):
    """Tests for remove_prefix function."""

    def test_remove_prefix_success(self):
        """Test remove_prefix removes prefix correctly."""
        result = remove_prefix("refs/heads/main", "refs/heads/")
        self.assertEqual(result, "main")

    def test_remove_prefix_full_match(self):
        """Test remove_prefix with exact match returns empty string."""
        result = remove_prefix("prefix", "prefix")
        self.assertEqual(result, "")

    def test_remove_prefix_no_match(self):
        """Test remove_prefix raises when prefix not found."""
        with self.assertRaises(BackendError):
            remove_prefix("other/path", "refs/heads/")


if __name__ == "__main__":
    unittest.main()
