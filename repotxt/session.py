"""Repository session: root lifecycle, override commands, and report generation.

``RepoSession`` is the one object a host talks to. The host reports which root
is open, forwards user commands (toggle, reset, undo, settings) and asks for
reports. Every state change is saved and announced to subscribers through
plain callbacks.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from .filter_config import FilterConfig
from .filter_engine import FilterEngine
from .gitignore import GitIgnoreMatcher
from .overrides import OverrideStore
from .paths import PathNormalizer
from .report import render_report, report_header
from .state_store import PersistedState, StateStore
from .tree_builder import build_flat_structure, check_cancelled, iter_visible_files

logger = logging.getLogger(__name__)

NO_ROOT_REPORT = "No repository root opened"

StateListener = Callable[[], None]


@dataclass(frozen=True)
class SelectedPath:
    """One host-selected item for batch toggling."""

    path: Path
    is_dir: bool


class RepoSession:
    """Core state for the currently open repository root.

    Mutating methods are meant to be called from one thread. Reports may run
    elsewhere: ``generate_report`` freezes the filter state before walking.
    """

    def __init__(self, store: StateStore | None = None, case_sensitive: bool = False) -> None:
        self.store = store if store is not None else StateStore()
        self.normalizer = PathNormalizer(case_sensitive=case_sensitive)
        self._root: Path | None = None
        self._display_name: str | None = None
        self._listeners: list[StateListener] = []
        self._wrap_long_lines = False
        self._engine = self._blank_engine(None)

    def _blank_engine(self, root: Path | None) -> FilterEngine:
        return FilterEngine(
            root=root if root is not None else Path(os.sep),
            overrides=OverrideStore(self.normalizer),
        )

    # observers
    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` for state changes; return an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # read-only state
    @property
    def root(self) -> Path | None:
        return self._root

    @property
    def display_name(self) -> str | None:
        return self._display_name

    @property
    def config(self) -> FilterConfig:
        return self._engine.config

    @property
    def overrides(self) -> OverrideStore:
        return self._engine.overrides

    @property
    def engine(self) -> FilterEngine:
        return self._engine

    @property
    def state_path(self) -> Path | None:
        return self.store.path_for(self._root) if self._root is not None else None

    @property
    def can_undo(self) -> bool:
        return self._engine.overrides.can_undo

    @property
    def can_redo(self) -> bool:
        return self._engine.overrides.can_redo

    # settings
    @property
    def wrap_long_lines(self) -> bool:
        return self._wrap_long_lines

    @wrap_long_lines.setter
    def wrap_long_lines(self, value: bool) -> None:
        if self._wrap_long_lines == bool(value):
            return
        self._wrap_long_lines = bool(value)
        self._save()
        self._notify()

    @property
    def respect_gitignore(self) -> bool:
        return self._engine.respect_gitignore

    @respect_gitignore.setter
    def respect_gitignore(self, value: bool) -> None:
        if self._engine.respect_gitignore == bool(value):
            return
        self._engine.respect_gitignore = bool(value)
        self._save()
        self._notify()

    def update_filtering_patterns(
        self,
        hidden_dirs: Iterable[str],
        hidden_files: Iterable[str],
        auto_dirs: Iterable[str],
        auto_files: Iterable[str],
    ) -> None:
        """Replace the four pattern collections wholesale."""
        self._engine.config = self._engine.config.with_patterns(
            hidden_dir_names=hidden_dirs,
            hidden_file_globs=hidden_files,
            auto_ignore_dir_names=auto_dirs,
            auto_ignore_file_globs=auto_files,
        )
        self._save()
        self._notify()

    # root lifecycle
    def set_root(self, root: Path | str | None, display_name: str | None = None) -> bool:
        """Open, switch, or close the repository root.

        Returns whether a root is open afterwards. A path that is not an
        existing directory closes the current root.
        """
        if root is not None:
            candidate = self.normalizer.normalize(root)
            if candidate.is_dir():
                self._open(candidate, display_name)
                return True
        self._close()
        return False

    def _open(self, root: Path, display_name: str | None) -> None:
        state = self.store.load(root)
        engine = self._blank_engine(root)
        engine.config = state.config
        engine.respect_gitignore = state.respect_gitignore
        engine.overrides.replace(state.includes, state.excludes)
        engine.gitignore = GitIgnoreMatcher.from_root(root, case_sensitive=self.normalizer.case_sensitive)

        self._root = root
        self._display_name = display_name or root.name or str(root)
        self._wrap_long_lines = state.wrap_long_lines
        self._engine = engine
        logger.debug("opened root %s (%d overrides)", root, len(engine.overrides))
        self._notify()

    def _close(self) -> None:
        if self._root is None:
            return
        logger.debug("closed root %s", self._root)
        self._root = None
        self._display_name = None
        self._wrap_long_lines = False
        self._engine = self._blank_engine(None)
        self._notify()

    def close(self) -> None:
        self._close()

    def _reload_gitignore(self) -> None:
        if self._root is not None:
            self._engine.gitignore = GitIgnoreMatcher.from_root(
                self._root, case_sensitive=self.normalizer.case_sensitive
            )

    # persistence
    def snapshot_state(self) -> PersistedState:
        return PersistedState(
            includes=[str(path) for path in self._engine.overrides.includes],
            excludes=[str(path) for path in self._engine.overrides.excludes],
            wrap_long_lines=self._wrap_long_lines,
            respect_gitignore=self._engine.respect_gitignore,
            config=self._engine.config,
        )

    def _save(self) -> None:
        if self._root is None:
            return
        self.store.save(self._root, self.snapshot_state())

    # queries
    def is_effectively_excluded(self, path: Path | str) -> bool:
        return self._engine.is_effectively_excluded(path)

    def folder_visually_excluded(self, path: Path | str) -> bool:
        return self._engine.folder_visually_excluded(path)

    def _path_is_dir(self, path: Path) -> bool:
        try:
            return path.is_dir()
        except OSError:
            return False

    # override commands
    def toggle_exclude(self, path: Path | str) -> None:
        if self._root is None:
            return
        self._engine.overrides.toggle_exclude(path, self._engine.is_effectively_excluded, self._path_is_dir)
        self._save()
        self._notify()

    def toggle_exclude_multiple(self, selection: Iterable[SelectedPath | Path | str]) -> None:
        """Toggle every selected item as one undoable step."""
        if self._root is None:
            return
        known_dirs: dict[str, bool] = {}
        paths: list[Path] = []
        for item in selection:
            if isinstance(item, SelectedPath):
                path = self.normalizer.normalize(item.path)
                known_dirs[self.normalizer.key(path)] = item.is_dir
            else:
                path = self.normalizer.normalize(item)
            paths.append(path)
        if not paths:
            return

        def is_dir(path: Path) -> bool:
            known = known_dirs.get(self.normalizer.key(path))
            return known if known is not None else self._path_is_dir(path)

        self._engine.overrides.toggle_exclude_multiple(paths, self._engine.is_effectively_excluded, is_dir)
        self._save()
        self._notify()

    def reset_manual_rules(self) -> None:
        """Drop all manual overrides and re-read ``.gitignore``."""
        if self._root is None:
            return
        self._engine.overrides.clear()
        self._reload_gitignore()
        self._save()
        self._notify()

    def reset_to_defaults(self) -> None:
        """Drop overrides and restore compiled-in patterns and flags."""
        if self._root is None:
            return
        self._engine.overrides.clear()
        self._engine.config = FilterConfig.defaults()
        self._engine.respect_gitignore = True
        self._wrap_long_lines = False
        self._reload_gitignore()
        self._save()
        self._notify()

    def undo(self) -> bool:
        if not self._engine.overrides.undo():
            return False
        self._save()
        self._notify()
        return True

    def redo(self) -> bool:
        if not self._engine.overrides.redo():
            return False
        self._save()
        self._notify()
        return True

    # reports
    def resolve_report_root(self, subroot: Path | str | None) -> Path | None:
        """Return the directory a report should cover.

        ``subroot`` is honored only when it is an existing directory beneath
        the open root; otherwise the root itself is used.
        """
        if self._root is None:
            return None
        if subroot is None:
            return self._root
        candidate = self.normalizer.normalize(subroot)
        if candidate.is_dir() and self.normalizer.is_descendant_of(candidate, self._root):
            return candidate
        return self._root

    def generate_report(
        self,
        subroot: Path | str | None = None,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> str:
        """Build the report for the root or one of its subdirectories.

        Returns ``NO_ROOT_REPORT`` when no root is open. Raises
        ``ReportCancelled`` when ``cancel_event`` fires or ``timeout`` seconds
        pass.
        """
        if self._root is None or not self._root.is_dir():
            return NO_ROOT_REPORT
        deadline = time.monotonic() + timeout if timeout is not None else None
        base_root = self.resolve_report_root(subroot) or self._root
        engine = self._engine.scoped(base_root)
        wrap_long_lines = self._wrap_long_lines

        subpath = self.normalizer.relative_posix(base_root, self._root)
        header = report_header(self._display_name or self._root.name, subpath)
        structure = build_flat_structure(engine, base_root, cancel_event=cancel_event, deadline=deadline)
        check_cancelled(cancel_event, deadline)
        files = (
            (self.normalizer.relative_posix(path, base_root) or path.as_posix(), path)
            for path in iter_visible_files(engine, base_root, cancel_event=cancel_event, deadline=deadline)
        )
        return render_report(
            header,
            structure,
            files,
            engine.config,
            wrap_long_lines=wrap_long_lines,
            cancel_event=cancel_event,
            deadline=deadline,
        )
