"""Type aliases and constants for gitstacks."""

import logging
import os
from typing import List, NewType

# Type aliases
BranchName = NewType("BranchName", str)
PathName = NewType("PathName", str)
Sha = NewType("Sha", str)
CmdArgs = NewType("CmdArgs", List[str])

# Constants
DEFAULT_REMOTE = "origin"
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_MAX_BATCH_SIZE = 5
CONFIG_DIR_ENV = "GITSTACKS_CONFIG_DIR"
DEFAULT_CONFIG_DIR = os.path.expanduser("~/.config")
USER_CONFIG_FILE = os.path.expanduser("~/.gitstacksconfig")
REPO_CONFIG_FILE_NAME = ".gitstacksconfig"
UPDATE_STRATEGY_GIT_CONFIG_KEY = "stack.update.strategy"

# Log levels
LOGLEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}
