"""Stacktrace normalization for notification payloads.

Frames are handled as ``<path>:<line>[:in '<method>']`` strings so exceptions
can supply a prebuilt ``backtrace`` list; otherwise the lines are rendered from
the exception's traceback, most recent call first.
"""

from __future__ import annotations

import functools
import logging
import os
import re
import site
import sysconfig
import traceback
from pathlib import Path
from types import TracebackType
from typing import Any, Iterable, Optional

LOGGER = logging.getLogger(__name__)

BACKTRACE_LINE_REGEX = re.compile(r"^((?:[a-zA-Z]:)?[^:]+):(\d+)(?::in [`']([^']+)')?$")
VENDOR_PATTERN = re.compile(r"(?:^|[\\/])(?:vendor|site-packages|dist-packages)[\\/]")
GENERATED_METHOD_PATTERN = re.compile(r"^(?:__bind|<(?:genexpr|listcomp|dictcomp|setcomp)>$)")

_PACKAGE_DIR = Path(__file__).parent
INTERNAL_PATHS = tuple(sorted({str(_PACKAGE_DIR), str(_PACKAGE_DIR.resolve())}))


def format_frame(filename: str, lineno: Optional[int], name: Optional[str]) -> str:
    line = f"{filename}:{lineno}"
    if name:
        line += f":in '{name}'"
    return line


def backtrace_lines(exception: Any) -> list[str]:
    """Return raw frame lines for ``exception``, falling back to the current stack."""
    backtrace = getattr(exception, "backtrace", None)
    if isinstance(backtrace, (list, tuple)) and backtrace:
        return [str(line) for line in backtrace]

    tb = getattr(exception, "__traceback__", None)
    if isinstance(tb, TracebackType):
        frames = traceback.extract_tb(tb)
    else:
        frames = traceback.extract_stack()[:-1]
    return [format_frame(frame.filename, frame.lineno, frame.name) for frame in reversed(frames)]


@functools.lru_cache(maxsize=1)
def library_paths() -> tuple[str, ...]:
    """Installation prefixes stripped from displayed file paths, longest first."""
    paths: set[str] = set()
    for key in ("purelib", "platlib", "stdlib", "platstdlib"):
        value = sysconfig.get_paths().get(key)
        if value:
            paths.add(value)
    try:
        paths.update(site.getsitepackages())
    except AttributeError:  # pragma: no cover - virtualenv's legacy site module
        pass
    user_site = getattr(site, "getusersitepackages", None)
    if user_site is not None:
        paths.add(user_site())
    cleaned = {path.rstrip("/\\") for path in paths if path}
    cleaned.discard("")
    return tuple(sorted(cleaned, key=lambda path: (-len(path), path)))


def _is_under(path: str, root: str) -> bool:
    return path.startswith(root + "/") or path.startswith(root + "\\")


def _strip_prefix(path: str, prefix: str) -> str:
    if _is_under(path, prefix):
        return path[len(prefix) + 1 :]
    return path


def _expand_path(file: str) -> str:
    try:
        candidate = Path(file)
        if candidate.is_absolute():
            return file
        return str(candidate.resolve(strict=True))
    except (OSError, RuntimeError) as exc:
        LOGGER.debug("Could not resolve stacktrace path %s: %s", file, exc)
        return file


def normalize_frame(
    line: str,
    *,
    project_root: Optional[str] = None,
    prefixes: Iterable[str] = (),
) -> Optional[dict[str, Any]]:
    match = BACKTRACE_LINE_REGEX.match(line)
    if match is None:
        return None
    file, line_number, method = match.groups()

    if any(_is_under(file, internal) for internal in INTERNAL_PATHS):
        return None

    file = _expand_path(file)
    if any(_is_under(file, internal) for internal in INTERNAL_PATHS):
        return None

    frame: dict[str, Any] = {"lineNumber": int(line_number)}
    if project_root and _is_under(file, project_root) and not VENDOR_PATTERN.search(file):
        frame["inProject"] = True

    if project_root:
        file = _strip_prefix(file, project_root)
    for prefix in prefixes:
        file = _strip_prefix(file, prefix)

    if not file:
        return None
    frame["file"] = file
    if method and not GENERATED_METHOD_PATTERN.match(method):
        frame["method"] = method
    return frame


def normalize_backtrace(lines: Iterable[str], project_root: Optional[str] = None) -> list[dict[str, Any]]:
    """Turn raw frame lines into payload frames, keeping their order."""
    prefixes = library_paths()
    frames = []
    for line in lines:
        frame = normalize_frame(line, project_root=project_root, prefixes=prefixes)
        if frame is not None:
            frames.append(frame)
    return frames


def stacktrace(exception: Any, project_root: Optional[str] = None) -> list[dict[str, Any]]:
    return normalize_backtrace(backtrace_lines(exception), project_root)
