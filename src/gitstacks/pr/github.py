"""GitHub pull request operations for gitstacks, via the `gh` CLI."""

import dataclasses
import json
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING

from gitstacks.utils.logging import cout, fmt, info, stdout_colored, styled
from gitstacks.utils.shell import run, run_always_return
from gitstacks.utils.types import CmdArgs

if TYPE_CHECKING:
    from gitstacks.stack.models import Stack
    from gitstacks.stack.tree import Branch

STATE_OPEN = "OPEN"
STATE_CLOSED = "CLOSED"
STATE_MERGED = "MERGED"

STACK_MARKER_TEXT = "stack-pr-list"
STACK_MARKER_START = f"<!-- {STACK_MARKER_TEXT} -->"
STACK_MARKER_END = f"<!-- /{STACK_MARKER_TEXT} -->"
STACK_MARKER_DESCRIPTION = (
    f"<!-- The contents of the section between the {STACK_MARKER_TEXT} markers will be replaced "
    "with list of pull requests in the stack when there is more than one pull request. "
    "Move this section around as you would like or delete it to not include the list of pull requests. -->"
)

_PR_FIELDS = ["number", "title", "body", "state", "url", "isDraft", "headRefName", "baseRefName"]


@dataclasses.dataclass
class PullRequest:
    number: int
    title: str
    body: str
    state: str
    url: str
    is_draft: bool = False
    head_ref_name: str = ""
    base_ref_name: str = ""

    @classmethod
    def from_json(cls, data: Dict) -> "PullRequest":
        return cls(
            number=data["number"],
            title=data.get("title", ""),
            body=data.get("body") or "",
            state=data.get("state", STATE_OPEN),
            url=data.get("url", ""),
            is_draft=data.get("isDraft", False),
            head_ref_name=data.get("headRefName", ""),
            base_ref_name=data.get("baseRefName", ""),
        )

    @property
    def is_merged(self) -> bool:
        return self.state == STATE_MERGED


class GitHubClient:
    """Thin wrapper over `gh pr` commands."""

    def __init__(self, working_directory: Optional[str] = None):
        self.working_directory = working_directory

    def _gh(self, *args: str) -> str:
        return run_always_return(CmdArgs(["gh", *args]), cwd=self.working_directory)

    def is_available(self) -> bool:
        """True when gh is installed and logged in."""
        try:
            return run(CmdArgs(["gh", "auth", "status"]), check=False, cwd=self.working_directory) is not None
        except FileNotFoundError:
            return False

    def get_pull_request(self, branch: str) -> Optional[PullRequest]:
        """The open pull request for a branch, else the most recent one."""
        data = json.loads(self._gh(
            "pr", "list", "--json", ",".join(_PR_FIELDS), "--head", branch, "--state", "all",
        ))
        pull_requests = [PullRequest.from_json(d) for d in data]
        for pr in pull_requests:
            if pr.state == STATE_OPEN:
                return pr
        return pull_requests[0] if pull_requests else None

    def get_pull_requests(self, branches: Iterable[str]) -> Dict[str, Optional[PullRequest]]:
        return {b: self.get_pull_request(b) for b in branches}

    def create_pull_request(
        self, head: str, base: str, title: str, body_file: str, draft: bool
    ) -> Optional[PullRequest]:
        cmd = [
            "pr", "create",
            "--title", title,
            "--body-file", body_file,
            "--base", base,
            "--head", head,
        ]
        if draft:
            cmd.append("--draft")
        self._gh(*cmd)
        return self.get_pull_request(head)

    def edit_pull_request_body(self, number: int, body: str):
        self._gh("pr", "edit", str(number), "--body", body)

    def open_pull_request(self, pull_request: PullRequest):
        self._gh("pr", "view", str(pull_request.number), "--web")


def get_pull_request_display(pr: PullRequest, *, colorize: bool = False) -> str:
    """Pull request number and title, colored by state."""
    if pr.is_draft:
        color = "gray"
    else:
        color = {STATE_OPEN: "green", STATE_CLOSED: "red", STATE_MERGED: "magenta"}.get(pr.state)
    # Clickable link in terminals that support OSC 8
    return fmt("\033]8;;{}\033\\#{}: {}\033]8;;\033\\", pr.url, pr.number, pr.title, color=colorize, fg=color)


def generate_pull_request_list(stack: "Stack", pull_requests: Dict[str, PullRequest]) -> str:
    """Markdown list of the stack's pull requests, indented by tree depth."""
    lines: List[str] = []

    def add(branch: "Branch", depth: int):
        pr = pull_requests.get(branch.name)
        if pr is not None:
            lines.append(f"{'  ' * depth}- {pr.url}")
        for child in branch.children:
            add(child, depth + 1)

    for root in stack.branches:
        add(root, 0)
    return "\n".join(lines)


def build_stack_section(stack: "Stack", pull_requests: Dict[str, PullRequest]) -> str:
    parts = [STACK_MARKER_START]
    if stack.description:
        parts.append(stack.description)
        parts.append("")
    pr_list = generate_pull_request_list(stack, pull_requests)
    if pr_list:
        parts.append(pr_list)
    parts.append(STACK_MARKER_END)
    return "\n".join(parts)


def new_pull_request_body(stack: "Stack") -> str:
    """Body for a pull request being created, the list gets filled in later."""
    return "\n".join([STACK_MARKER_START, STACK_MARKER_DESCRIPTION, stack.description or "", STACK_MARKER_END])


def replace_stack_section(body: str, section: str) -> Optional[str]:
    """Replace the marked stack section of a PR body, None if there is none."""
    lowered = body.lower()
    start = lowered.find(STACK_MARKER_START.lower())
    end = lowered.find(STACK_MARKER_END.lower())
    if start < 0 or end < start:
        return None
    return body[:start] + section + body[end + len(STACK_MARKER_END):]


def update_stack_pull_request_list(
    github_client: GitHubClient, stack: "Stack", pull_requests: Dict[str, PullRequest]
):
    """Rewrite the stack section in every open pull request of the stack."""
    open_prs = {b: pr for b, pr in pull_requests.items() if pr.state == STATE_OPEN}
    if len(open_prs) < 2:
        return
    section = build_stack_section(stack, open_prs)
    for branch, pr in open_prs.items():
        new_body = replace_stack_section(pr.body, section)
        if new_body is None:
            continue
        if new_body == pr.body:
            cout("✓ Stack section in PR #{} is already correct\n", pr.number, fg="green")
            continue
        info("Updating pull request #{} for {} with stack details", pr.number, branch)
        github_client.edit_pull_request_body(pr.number, new_body)
        pr.body = new_body


def format_pull_request_line(branch: str, pr: Optional[PullRequest]) -> str:
    if pr is None:
        return styled("{} (no pull request)", branch, fg="gray")
    return "{} {}".format(branch, get_pull_request_display(pr, colorize=stdout_colored()))
