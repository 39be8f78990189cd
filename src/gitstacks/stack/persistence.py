"""Loading and saving the stack data file.

The file lives at <config dir>/stack/config.json. Two shapes exist:

  - v1, a bare list of stacks whose branches are a flat list of names forming
    a single chain;
  - v2, {"SchemaVersion": 2, "Stacks": [...]} where branches are nested trees.

A v1 file keeps being written as v1 until some stack no longer fits a single
chain; the original v1 file is backed up before the first v2 save.
"""

import json
import os
import shutil
from typing import Any, Dict, List

from gitstacks.stack.models import SCHEMA_VERSION_V1, SCHEMA_VERSION_V2, Stack, StackCollection
from gitstacks.stack.tree import Branch
from gitstacks.utils.logging import debug, info
from gitstacks.utils.types import BranchName


def _branch_from_json(data: Dict[str, Any]) -> Branch:
    return Branch(BranchName(data["Name"]), [_branch_from_json(c) for c in data.get("Children", [])])


def _branch_to_json(branch: Branch) -> Dict[str, Any]:
    return {"Name": branch.name, "Children": [_branch_to_json(c) for c in branch.children]}


def _chain(names: List[str]) -> List[Branch]:
    """Turn a v1 flat branch list into a single line of branches."""
    root: List[Branch] = []
    level = root
    for name in names:
        branch = Branch(BranchName(name))
        level.append(branch)
        level = branch.children
    return root


def _flatten(stack: Stack) -> List[str]:
    lines = stack.get_all_branch_lines()
    return [b.name for b in lines[0]] if lines else []


def stack_from_json(data: Dict[str, Any], schema_version: int) -> Stack:
    raw_branches = data.get("Branches", [])
    if schema_version == SCHEMA_VERSION_V1:
        branches = _chain(raw_branches)
    else:
        branches = [_branch_from_json(b) for b in raw_branches]
    return Stack(
        data["Name"],
        data["RemoteUri"],
        data["SourceBranch"],
        branches,
        description=data.get("PullRequestDescription"),
    )


def stack_to_json(stack: Stack, schema_version: int) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "Name": stack.name,
        "RemoteUri": stack.remote_uri,
        "SourceBranch": stack.source_branch,
    }
    if schema_version == SCHEMA_VERSION_V1:
        data["Branches"] = _flatten(stack)
    else:
        data["Branches"] = [_branch_to_json(b) for b in stack.branches]
        if stack.description:
            data["PullRequestDescription"] = stack.description
    return data


class FileStackConfig:
    """Stack data stored as JSON under a configuration directory."""

    def __init__(self, config_directory: str):
        self.config_directory = config_directory

    def get_config_path(self) -> str:
        return os.path.join(self.config_directory, "stack", "config.json")

    def get_v1_config_backup_file_path(self) -> str:
        return os.path.join(self.config_directory, "stack", "config.v1-backup.json")

    def load(self) -> StackCollection:
        path = self.get_config_path()
        if not os.path.exists(path):
            debug("No stack data at {}", path)
            return StackCollection()

        with open(path) as f:
            data = json.load(f)

        if isinstance(data, list):
            return StackCollection(
                [stack_from_json(s, SCHEMA_VERSION_V1) for s in data], SCHEMA_VERSION_V1
            )
        return StackCollection(
            [stack_from_json(s, SCHEMA_VERSION_V2) for s in data.get("Stacks", [])],
            data.get("SchemaVersion", SCHEMA_VERSION_V2),
        )

    def _fits_v1(self, collection: StackCollection) -> bool:
        return all(s.has_single_tree and not s.description for s in collection.stacks)

    def save(self, collection: StackCollection):
        path = self.get_config_path()
        os.makedirs(os.path.dirname(path), exist_ok=True)

        if collection.schema_version == SCHEMA_VERSION_V1:
            if self._fits_v1(collection):
                self._write(path, [stack_to_json(s, SCHEMA_VERSION_V1) for s in collection.stacks])
                return
            if os.path.exists(path):
                backup = self.get_v1_config_backup_file_path()
                info("Upgrading stack data to v{}, v1 file backed up to {}", SCHEMA_VERSION_V2, backup)
                shutil.copyfile(path, backup)
            collection.schema_version = SCHEMA_VERSION_V2

        self._write(path, {
            "SchemaVersion": SCHEMA_VERSION_V2,
            "Stacks": [stack_to_json(s, SCHEMA_VERSION_V2) for s in collection.stacks],
        })

    @staticmethod
    def _write(path: str, data: Any):
        tmp = path + ".tmp"
        with open(tmp, "w") as f:
            json.dump(data, f, indent=4)
            f.write("\n")
        os.replace(tmp, path)
