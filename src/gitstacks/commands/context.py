"""State shared by every command: repository, stack data and collaborators."""

import dataclasses
from typing import List, Optional

from gitstacks.git.client import GitClient
from gitstacks.git.conflicts import ConflictResolutionDetector
from gitstacks.pr.github import GitHubClient
from gitstacks.stack.models import Stack, StackCollection, order_by_current_stack_then_by_name
from gitstacks.stack.operations import StackActions
from gitstacks.stack.persistence import FileStackConfig
from gitstacks.utils.config import get_config, get_config_directory
from gitstacks.utils.logging import debug
from gitstacks.utils.types import BranchName, DEFAULT_REMOTE
from gitstacks.utils.ui import menu_choose_stack


@dataclasses.dataclass
class CommandContext:
    git_client: GitClient
    stack_config: FileStackConfig
    collection: StackCollection
    remote_uri: str
    github_client: GitHubClient

    @classmethod
    def load(cls, working_directory: str, remote: str = DEFAULT_REMOTE) -> "CommandContext":
        git_client = GitClient(working_directory, remote)
        stack_config = FileStackConfig(get_config_directory())
        debug("Loading stacks from {}", stack_config.get_config_path())
        return cls(
            git_client=git_client,
            stack_config=stack_config,
            collection=stack_config.load(),
            remote_uri=git_client.get_remote_uri(),
            github_client=GitHubClient(working_directory),
        )

    @property
    def working_directory(self) -> str:
        return self.git_client.working_directory

    @property
    def current_branch(self) -> BranchName:
        return self.git_client.get_current_branch()

    def git_client_factory(self, path: str) -> GitClient:
        return GitClient(path, self.git_client.remote)

    def stacks(self) -> List[Stack]:
        """Stacks of this repository, the current one first."""
        return order_by_current_stack_then_by_name(
            self.collection.for_remote(self.remote_uri), self.current_branch
        )

    def find_stack(self, name: str) -> Optional[Stack]:
        return self.collection.find(name, self.remote_uri)

    def resolve_stack(self, name: Optional[str]) -> Stack:
        """The named stack, else the one holding the current branch, else ask."""
        if name:
            return self.collection.get(name, self.remote_uri)
        stacks = self.stacks()
        current_branch = self.current_branch
        if stacks and stacks[0].is_current_stack(current_branch):
            debug("Using stack {} for current branch {}", stacks[0].name, current_branch)
            return stacks[0]
        return menu_choose_stack(stacks)

    def save(self):
        self.stack_config.save(self.collection)

    def actions(self) -> StackActions:
        config = get_config()
        return StackActions(
            self.git_client_factory,
            self.working_directory,
            github_client=self.github_client,
            conflict_detector=ConflictResolutionDetector(),
            poll_interval=config.poll_interval,
            conflict_timeout=config.conflict_timeout,
        )
