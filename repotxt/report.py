"""Plain-text report assembly: folder listing followed by file contents."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from .filter_config import FilterConfig
from .tree_builder import check_cancelled

logger = logging.getLogger(__name__)

BINARY_CONTENT_SENTINEL = "[Binary file, content not displayed]"
UNREADABLE_CONTENT_SENTINEL = "[Unable to read file content]"
WRAP_WIDTH = 100
READ_WORKERS = 8


def read_text(path: Path) -> str:
    """Read text as UTF-8 (dropping a BOM), falling back to latin-1.

    Line endings are kept as stored.
    """
    raw = path.read_bytes()
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def read_file_content(path: Path, config: FilterConfig) -> tuple[str, bool]:
    """Return ``(text, is_real_content)`` for one report entry.

    Binary-extension files and unreadable files produce a sentinel and
    ``False`` so wrapping leaves them alone.
    """
    if config.is_binary(path):
        return BINARY_CONTENT_SENTINEL, False
    try:
        return read_text(path), True
    except OSError as exc:
        logger.debug("cannot read %s: %s", path, exc)
        return UNREADABLE_CONTENT_SENTINEL, False


def wrap_text(text: str, width: int = WRAP_WIDTH) -> str:
    """Break lines longer than ``width`` into chunks of at most ``width``.

    A full-width chunk followed by more text breaks at its last space when
    that space sits past the middle of the chunk; otherwise it hard-breaks.
    """
    out: list[str] = []
    for line in text.replace("\r\n", "\n").split("\n"):
        if len(line) <= width:
            out.append(line)
            continue
        idx = 0
        while idx < len(line):
            take = min(width, len(line) - idx)
            chunk = line[idx : idx + take]
            if take == width and idx + take < len(line):
                last_space = chunk.rfind(" ")
                if last_space > width // 2:
                    chunk = chunk[:last_space]
                    take = last_space
            out.append(chunk)
            idx += take
    return "\n".join(out).rstrip("\r\n")


def report_header(display_name: str, subpath: str | None = None) -> str:
    """Return the first report line, naming the subdirectory when there is one."""
    if subpath:
        return f"Folder Structure: {display_name} /{subpath.strip('/')}"
    return f"Folder Structure: {display_name}"


def render_report(
    header: str,
    structure: Iterable[str],
    files: Iterable[tuple[str, Path]],
    config: FilterConfig,
    wrap_long_lines: bool = False,
    cancel_event: threading.Event | None = None,
    deadline: float | None = None,
    max_workers: int = READ_WORKERS,
) -> str:
    """Assemble the report text.

    ``files`` pairs each display label with the file to read. Reads run on a
    thread pool; output keeps the order of ``files``.
    """
    parts: list[str] = [header, "\n"]
    for line in structure:
        parts.append(line)
        parts.append("\n")
    parts.append("\n")

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="repotxt-read") as executor:
        pending: list[tuple[str, Future[tuple[str, bool]]]] = []
        try:
            for label, path in files:
                check_cancelled(cancel_event, deadline)
                pending.append((label, executor.submit(read_file_content, path, config)))
            for label, future in pending:
                check_cancelled(cancel_event, deadline)
                content, is_real = future.result()
                if wrap_long_lines and is_real:
                    content = wrap_text(content)
                parts.append(f"File: {label}\n")
                parts.append(f"Content: {content}\n")
                parts.append("\n")
        except BaseException:
            for _label, future in pending:
                future.cancel()
            raise
    return "".join(parts)
