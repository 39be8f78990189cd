"""Console output for gitstacks.

Command output goes to stdout through `cout` and `styled`; progress and
problems go to stderr as log records through `debug`, `info`, `warning` and
`error`. All of them take a `str.format` template and its arguments, plus
ansicolors keywords (`fg`, `bg`, `style`) applied only when the stream is
colored. Whether a stream is colored follows the terminal unless `--color`
says otherwise, and is looked up on every call so `set_color_mode` reaches
output produced anywhere.
"""

import logging
import os
import sys

import colors  # type: ignore

_LOGGING_FORMAT = "%(asctime)s %(module)s %(levelname)s: %(message)s"

COLOR_MODES = ["always", "auto", "never"]

COLOR_STDOUT: bool = os.isatty(1)
COLOR_STDERR: bool = os.isatty(2)
# Menus and prompts need both streams on a terminal
IS_TERMINAL: bool = os.isatty(1) and os.isatty(2)

_LEVEL_COLORS = {
    logging.DEBUG: "gray",
    logging.INFO: "green",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
}


def setup_logging(level: int = logging.INFO):
    """Configure the root logger, again once --log-level is known."""
    logging.basicConfig(format=_LOGGING_FORMAT, level=level, force=True)


def set_color_mode(mode: str):
    global COLOR_STDOUT, COLOR_STDERR
    if mode not in COLOR_MODES:
        raise ValueError(f"Unknown color mode {mode}, expected one of {', '.join(COLOR_MODES)}")
    if mode == "auto":
        COLOR_STDOUT = os.isatty(1)
        COLOR_STDERR = os.isatty(2)
    else:
        COLOR_STDOUT = COLOR_STDERR = mode == "always"


def stdout_colored() -> bool:
    return COLOR_STDOUT


def fmt(s: str, *args, color: bool = False, fg=None, bg=None, style=None, **kwargs) -> str:
    s = colors.color(s, fg=fg, bg=bg, style=style) if color else s
    return s.format(*args, **kwargs)


def styled(s: str, *args, **kwargs) -> str:
    """Format text printed on stdout, colored when stdout is."""
    return fmt(s, *args, color=COLOR_STDOUT, **kwargs)


def cout(*args, **kwargs):
    return sys.stdout.write(styled(*args, **kwargs))


def _log(level: int, *args, **kwargs):
    kwargs.setdefault("fg", _LEVEL_COLORS[level])
    logging.log(level, "%s", fmt(*args, color=COLOR_STDERR, **kwargs))


def debug(*args, **kwargs):
    _log(logging.DEBUG, *args, **kwargs)


def info(*args, **kwargs):
    _log(logging.INFO, *args, **kwargs)


def warning(*args, **kwargs):
    _log(logging.WARNING, *args, **kwargs)


def error(*args, **kwargs):
    _log(logging.ERROR, *args, **kwargs)


class ExitException(BaseException):
    """Stops the current command with a message for the user."""

    def __init__(self, template: str, *args, **kwargs):
        super().__init__(template.format(*args, **kwargs))


def die(*args, **kwargs):
    raise ExitException(*args, **kwargs)
