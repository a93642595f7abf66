"""Manual include/exclude overrides with bounded snapshot undo/redo.

Overrides live in one map from path key to ``Forced`` so a path can never be
both included and excluded. Undo/redo keeps full snapshots of that map; the
maps are small enough that structural diffs are not worth it.
"""

from __future__ import annotations

import enum
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from .paths import PathNormalizer

MAX_UNDO_STATES = 50


class Forced(enum.Enum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class ForcedPath:
    """A forced decision plus the path spelling it was recorded with."""

    path: Path
    forced: Forced


ManualOverride = dict[str, ForcedPath]


class OverrideStore:
    """Manual override map and its undo/redo history.

    Not thread-safe: all mutations are expected from one dispatch context.
    """

    def __init__(self, normalizer: PathNormalizer | None = None, max_undo_states: int = MAX_UNDO_STATES) -> None:
        self.normalizer = normalizer or PathNormalizer()
        self._entries: ManualOverride = {}
        self._undo: deque[ManualOverride] = deque(maxlen=max_undo_states)
        self._redo: deque[ManualOverride] = deque(maxlen=max_undo_states)

    # queries
    def forced(self, path: Path | str) -> Forced | None:
        entry = self._entries.get(self.normalizer.key(path))
        return entry.forced if entry is not None else None

    def forced_for_key(self, key: str) -> Forced | None:
        entry = self._entries.get(key)
        return entry.forced if entry is not None else None

    def _paths_with(self, forced: Forced) -> list[Path]:
        return sorted(
            (entry.path for entry in self._entries.values() if entry.forced is forced),
            key=lambda path: str(path).casefold(),
        )

    @property
    def includes(self) -> list[Path]:
        return self._paths_with(Forced.INCLUDE)

    @property
    def excludes(self) -> list[Path]:
        return self._paths_with(Forced.EXCLUDE)

    def include_keys(self) -> list[str]:
        return [key for key, entry in self._entries.items() if entry.forced is Forced.INCLUDE]

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def snapshot(self) -> ManualOverride:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    # loading
    def replace(self, includes: Iterable[Path | str], excludes: Iterable[Path | str]) -> None:
        """Load persisted overrides and forget history.

        When a path appears in both lists the include wins.
        """
        self._entries = {}
        for raw in excludes:
            self._set(raw, Forced.EXCLUDE)
        for raw in includes:
            self._set(raw, Forced.INCLUDE)
        self._undo.clear()
        self._redo.clear()

    def restrict_to(self, root: Path) -> OverrideStore:
        """Return a history-free copy holding only entries beneath ``root``."""
        root_key = self.normalizer.key(root)
        scoped = OverrideStore(self.normalizer, max_undo_states=self._undo.maxlen or MAX_UNDO_STATES)
        scoped._entries = {
            key: entry
            for key, entry in self._entries.items()
            if PathNormalizer.key_is_descendant(key, root_key)
        }
        return scoped

    # mutations
    def _set(self, raw: Path | str, forced: Forced) -> None:
        path = self.normalizer.normalize(raw)
        self._entries[self.normalizer.key(path)] = ForcedPath(path=path, forced=forced)

    def _push_undo(self) -> None:
        self._undo.append(self.snapshot())
        self._redo.clear()

    def toggle(self, path: Path | str, currently_excluded: bool, is_dir: bool) -> Forced:
        """Flip the forced state of ``path`` without recording history.

        A directory-level decision purges descendant entries of the opposite
        kind. Returns the new forced state.
        """
        normalized = self.normalizer.normalize(path)
        key = self.normalizer.key(normalized)
        self._entries.pop(key, None)
        new_state = Forced.INCLUDE if currently_excluded else Forced.EXCLUDE
        self._entries[key] = ForcedPath(path=normalized, forced=new_state)
        if is_dir:
            opposite = Forced.EXCLUDE if new_state is Forced.INCLUDE else Forced.INCLUDE
            stale = [
                other_key
                for other_key, entry in self._entries.items()
                if entry.forced is opposite and PathNormalizer.key_is_descendant(other_key, key)
            ]
            for other_key in stale:
                del self._entries[other_key]
        return new_state

    def toggle_exclude(
        self,
        path: Path | str,
        is_excluded: Callable[[Path], bool],
        is_dir: Callable[[Path], bool],
    ) -> Forced:
        """Toggle one path as a single undoable step."""
        self._push_undo()
        normalized = self.normalizer.normalize(path)
        return self.toggle(normalized, is_excluded(normalized), is_dir(normalized))

    def toggle_exclude_multiple(
        self,
        paths: Iterable[Path | str],
        is_excluded: Callable[[Path], bool],
        is_dir: Callable[[Path], bool],
    ) -> None:
        """Toggle each path in order, recording one undo snapshot for the batch.

        Each toggle sees the effect of the toggles before it.
        """
        self._push_undo()
        for raw in paths:
            normalized = self.normalizer.normalize(raw)
            self.toggle(normalized, is_excluded(normalized), is_dir(normalized))

    def clear(self) -> None:
        """Drop every override as one undoable step."""
        self._push_undo()
        self._entries = {}

    def reset_history(self) -> None:
        self._undo.clear()
        self._redo.clear()

    def undo(self) -> bool:
        """Restore the previous snapshot; return ``False`` when there is none."""
        if not self._undo:
            return False
        self._redo.append(self.snapshot())
        self._entries = self._undo.pop()
        return True

    def redo(self) -> bool:
        """Re-apply the last undone snapshot; return ``False`` when there is none."""
        if not self._redo:
            return False
        self._undo.append(self.snapshot())
        self._entries = self._redo.pop()
        return True
