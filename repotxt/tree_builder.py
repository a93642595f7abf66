"""Directory walks producing the folder listing and the visible-file stream."""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from .filter_engine import FilterEngine

logger = logging.getLogger(__name__)


class ReportCancelled(RuntimeError):
    """Raised when a traversal or report is cancelled or runs past its deadline."""


def check_cancelled(cancel_event: threading.Event | None, deadline: float | None) -> None:
    """Raise ``ReportCancelled`` when the event is set or ``deadline`` passed.

    ``deadline`` is a ``time.monotonic()`` timestamp.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise ReportCancelled("report generation cancelled")
    if deadline is not None and time.monotonic() >= deadline:
        raise ReportCancelled("report generation timed out")


@dataclass(frozen=True)
class DirectoryChild:
    """One directory child with its kind resolved once."""

    name: str
    path: Path
    is_dir: bool


def list_directory_children(directory: Path) -> tuple[list[DirectoryChild], OSError | None]:
    """List ``directory`` children, directories first, then case-insensitive name.

    Returns ``(children, scan_error)``; a failed scan yields no children.
    Directory symlinks are reported as files so walks never follow them.
    """
    children: list[DirectoryChild] = []
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                children.append(DirectoryChild(name=entry.name, path=Path(entry.path), is_dir=is_dir))
    except OSError as exc:
        logger.debug("cannot scan %s: %s", directory, exc)
        return [], exc

    children.sort(key=lambda item: (not item.is_dir, item.name.lower(), item.name))
    return children, None


def _relative_label(engine: FilterEngine, path: Path, base_root: Path) -> str:
    relative = engine.normalizer.relative_posix(path, base_root)
    return relative if relative is not None else path.as_posix()


def build_flat_structure(
    engine: FilterEngine,
    base_root: Path,
    cancel_event: threading.Event | None = None,
    deadline: float | None = None,
) -> list[str]:
    """Return listing lines relative to ``base_root``; directories end with ``/``.

    Structurally hidden directories are never entered and structurally hidden
    files are never listed, whatever the manual overrides say.
    """
    base_root = engine.normalizer.normalize(base_root)
    lines: list[str] = []

    def walk(directory: Path) -> None:
        check_cancelled(cancel_event, deadline)
        if engine.is_structurally_hidden(directory, is_dir=True):
            return
        children, _scan_error = list_directory_children(directory)
        for child in children:
            if child.is_dir:
                if not engine.folder_visually_excluded(child.path):
                    lines.append(_relative_label(engine, child.path, base_root) + "/")
                    walk(child.path)
                elif engine.folder_contains_manual_includes(child.path):
                    walk(child.path)
                continue
            if engine.is_structurally_hidden(child.path, is_dir=False):
                continue
            if engine.is_effectively_excluded(child.path, is_dir=False):
                continue
            lines.append(_relative_label(engine, child.path, base_root))

    walk(base_root)
    return lines


def iter_visible_files(
    engine: FilterEngine,
    base_root: Path,
    cancel_event: threading.Event | None = None,
    deadline: float | None = None,
) -> Iterator[Path]:
    """Yield visible files beneath ``base_root`` from an iterative walk.

    Each directory yields its files in sorted order before its subdirectories
    are visited, also in sorted order.
    Structurally hidden files are skipped even when manually included.
    """
    base_root = engine.normalizer.normalize(base_root)
    stack: list[Path] = [base_root]
    while stack:
        check_cancelled(cancel_event, deadline)
        directory = stack.pop()
        if engine.is_structurally_hidden(directory, is_dir=True):
            continue
        if directory != base_root and engine.folder_visually_excluded(directory):
            continue

        children, _scan_error = list_directory_children(directory)
        subdirectories: list[Path] = []
        for child in children:
            if child.is_dir:
                subdirectories.append(child.path)
                continue
            if engine.is_structurally_hidden(child.path, is_dir=False):
                continue
            if engine.is_effectively_excluded(child.path, is_dir=False):
                continue
            yield child.path
        stack.extend(reversed(subdirectories))
