"""Configuration management for gitstacks."""

import configparser
import dataclasses
import os
from typing import Optional

from gitstacks.errors import BackendError
from gitstacks.utils.logging import debug
from gitstacks.utils.types import (
    CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR, DEFAULT_MAX_BATCH_SIZE, DEFAULT_POLL_INTERVAL,
    REPO_CONFIG_FILE_NAME, USER_CONFIG_FILE
)


@dataclasses.dataclass
class GitStacksConfig:
    """Configuration options for gitstacks."""
    skip_confirm: bool = False
    update_strategy: Optional[str] = None
    force_with_lease: bool = True
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    poll_interval: float = DEFAULT_POLL_INTERVAL
    conflict_timeout: Optional[float] = None

    def read_one_config(self, config_path: str):
        """Read configuration from a single file."""
        rawconfig = configparser.ConfigParser()
        rawconfig.read(config_path)
        if rawconfig.has_section("UI"):
            self.skip_confirm = rawconfig.getboolean("UI", "skip_confirm", fallback=self.skip_confirm)

        if rawconfig.has_section("GIT"):
            self.update_strategy = rawconfig.get("GIT", "update_strategy", fallback=self.update_strategy)
            self.force_with_lease = rawconfig.getboolean("GIT", "force_with_lease", fallback=self.force_with_lease)
            self.max_batch_size = rawconfig.getint("GIT", "max_batch_size", fallback=self.max_batch_size)

        if rawconfig.has_section("UPDATE"):
            self.poll_interval = rawconfig.getfloat("UPDATE", "poll_interval", fallback=self.poll_interval)
            # 0 or missing means wait forever
            timeout = rawconfig.getfloat("UPDATE", "conflict_timeout", fallback=self.conflict_timeout or 0.0)
            self.conflict_timeout = timeout if timeout > 0 else None


# Global config singleton, only used by the command line front end
CONFIG: Optional[GitStacksConfig] = None


def get_config() -> GitStacksConfig:
    """Get the global configuration, loading it if necessary."""
    global CONFIG
    if CONFIG is None:
        CONFIG = read_config()
    return CONFIG


def read_config() -> GitStacksConfig:
    """Read configuration from config files."""
    config = GitStacksConfig()
    config_paths = [USER_CONFIG_FILE]

    try:
        from gitstacks.git.client import GitClient
        root_dir = GitClient(os.getcwd()).get_root_of_repository()
        config_paths.append(os.path.join(root_dir, REPO_CONFIG_FILE_NAME))
    except BackendError:
        debug("Not in a git repository, skipping repo-level config")

    for p in config_paths:
        # Repo config overrides home directory config
        if os.path.exists(p):
            config.read_one_config(p)

    return config


def get_config_directory() -> str:
    """Directory holding the stack data file."""
    return os.environ.get(CONFIG_DIR_ENV) or DEFAULT_CONFIG_DIR
