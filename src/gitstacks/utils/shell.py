"""Shell execution utilities for gitstacks."""

import shlex
import subprocess
import sys
from typing import Optional

from gitstacks.errors import BackendError
from gitstacks.utils.logging import debug
from gitstacks.utils.types import CmdArgs


def _check_returncode(sp: subprocess.CompletedProcess, cmd: CmdArgs):
    """Raise BackendError if the subprocess exited with a non-zero status."""
    rc = sp.returncode
    if rc == 0:
        return
    stderr = sp.stderr.decode("UTF-8") if sp.stderr else ""
    if rc < 0:
        raise BackendError(
            "Killed by signal {}: {}. Stderr was:\n{}".format(-rc, shlex.join(cmd), stderr)
        )
    raise BackendError(
        "Exited with status {}: {}. Stderr was:\n{}".format(rc, shlex.join(cmd), stderr)
    )


def run_completed(
    cmd: CmdArgs, *, cwd: Optional[str] = None, out: bool = False
) -> subprocess.CompletedProcess:
    """Run a command and hand back the completed process without checking it."""
    debug("Running: {}{}", shlex.join(cmd), f" (in {cwd})" if cwd else "")
    sys.stdout.flush()
    sys.stderr.flush()
    return subprocess.run(
        cmd,
        cwd=cwd,
        stdout=1 if out else subprocess.PIPE,
        stderr=subprocess.PIPE,
    )


def run_multiline(
    cmd: CmdArgs, *, check: bool = True, out: bool = False, cwd: Optional[str] = None
) -> Optional[str]:
    """Run a command and return its output (with newlines preserved)."""
    sp = run_completed(cmd, cwd=cwd, out=out)
    if check:
        _check_returncode(sp, cmd)
    if sp.returncode != 0:
        return None
    if sp.stdout is None:
        return ""
    return sp.stdout.decode("UTF-8")


def run_always_return(cmd: CmdArgs, **kwargs) -> str:
    """Run a command and always return output (asserts it's not None)."""
    out = run(cmd, **kwargs)
    assert out is not None
    return out


def run(cmd: CmdArgs, **kwargs) -> Optional[str]:
    """Run a command and return stripped output."""
    out = run_multiline(cmd, **kwargs)
    return None if out is None else out.strip()


def remove_prefix(s: str, prefix: str) -> str:
    """Remove a prefix from a string, failing if it is not present."""
    if not s.startswith(prefix):
        raise BackendError('Invalid string "{}": expected prefix "{}"'.format(s, prefix))
    return s[len(prefix):]
