"""Structural-hide and auto-ignore pattern sets with compiled-in defaults."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from functools import lru_cache
from pathlib import PurePath

DEFAULT_HIDDEN_DIR_NAMES: tuple[str, ...] = (".git", ".vs", ".idea", ".vscode")
DEFAULT_HIDDEN_FILE_GLOBS: tuple[str, ...] = ("*.sln", "*.slnx", "*.suo", "*.user", ".gitignore")
DEFAULT_AUTO_IGNORE_DIR_NAMES: tuple[str, ...] = (
    "bin",
    "obj",
    "node_modules",
    "packages",
    "dist",
    "out",
    "build",
)
DEFAULT_AUTO_IGNORE_FILE_GLOBS: tuple[str, ...] = (
    "*.meta",
    "*.tmp",
    "*.log",
    "*.lock",
    "*.cache",
    "*.map",
    "*.min.*",
)
DEFAULT_BINARY_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico",
        ".exe", ".dll", ".pdb", ".zip", ".tar", ".gz", ".7z", ".rar", ".pdf",
        ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".bin", ".class", ".obj",
    }
)


@lru_cache(maxsize=512)
def _compile_name_glob(pattern: str) -> re.Pattern[str]:
    translated = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(translated, re.IGNORECASE)


def name_matches_glob(name: str, pattern: str) -> bool:
    """Case-insensitive whole-name match supporting ``*`` and ``?``."""
    return _compile_name_glob(pattern).fullmatch(name) is not None


def clean_patterns(values: Iterable[object]) -> list[str]:
    """Trim entries and drop empty ones, keeping first-seen order."""
    cleaned: list[str] = []
    seen: set[str] = set()
    for value in values:
        if not isinstance(value, str):
            continue
        text = value.strip()
        if not text or text in seen:
            continue
        seen.add(text)
        cleaned.append(text)
    return cleaned


def _dedupe_names(values: Iterable[object]) -> tuple[str, ...]:
    names: list[str] = []
    folded: set[str] = set()
    for name in clean_patterns(values):
        if name.casefold() in folded:
            continue
        folded.add(name.casefold())
        names.append(name)
    return tuple(names)


@dataclass(frozen=True)
class FilterConfig:
    """Immutable pattern configuration; edits produce a new instance.

    ``hidden_*`` patterns cannot be overridden by a manual include. The
    ``auto_ignore_*`` patterns are defaults a manual include can override.
    ``binary_extensions`` only suppress content in reports.
    """

    hidden_dir_names: tuple[str, ...] = DEFAULT_HIDDEN_DIR_NAMES
    hidden_file_globs: tuple[str, ...] = DEFAULT_HIDDEN_FILE_GLOBS
    auto_ignore_dir_names: tuple[str, ...] = DEFAULT_AUTO_IGNORE_DIR_NAMES
    auto_ignore_file_globs: tuple[str, ...] = DEFAULT_AUTO_IGNORE_FILE_GLOBS
    binary_extensions: frozenset[str] = DEFAULT_BINARY_EXTENSIONS
    _hidden_dirs_folded: frozenset[str] = field(init=False, repr=False, compare=False)
    _auto_dirs_folded: frozenset[str] = field(init=False, repr=False, compare=False)
    _binary_folded: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_hidden_dirs_folded", frozenset(n.casefold() for n in self.hidden_dir_names))
        object.__setattr__(self, "_auto_dirs_folded", frozenset(n.casefold() for n in self.auto_ignore_dir_names))
        object.__setattr__(self, "_binary_folded", frozenset(e.casefold() for e in self.binary_extensions))

    @classmethod
    def defaults(cls) -> FilterConfig:
        return cls()

    def with_patterns(
        self,
        hidden_dir_names: Iterable[object] | None = None,
        hidden_file_globs: Iterable[object] | None = None,
        auto_ignore_dir_names: Iterable[object] | None = None,
        auto_ignore_file_globs: Iterable[object] | None = None,
    ) -> FilterConfig:
        """Return a copy with the given collections replaced wholesale.

        ``None`` keeps the current collection. Entries are trimmed and empty
        ones dropped.
        """
        changes: dict[str, object] = {}
        if hidden_dir_names is not None:
            changes["hidden_dir_names"] = _dedupe_names(hidden_dir_names)
        if hidden_file_globs is not None:
            changes["hidden_file_globs"] = tuple(clean_patterns(hidden_file_globs))
        if auto_ignore_dir_names is not None:
            changes["auto_ignore_dir_names"] = _dedupe_names(auto_ignore_dir_names)
        if auto_ignore_file_globs is not None:
            changes["auto_ignore_file_globs"] = tuple(clean_patterns(auto_ignore_file_globs))
        return replace(self, **changes)

    def is_hidden_dir_name(self, name: str) -> bool:
        return name.casefold() in self._hidden_dirs_folded

    def is_hidden_file_name(self, name: str) -> bool:
        return any(name_matches_glob(name, pattern) for pattern in self.hidden_file_globs)

    def is_auto_ignored_dir_name(self, name: str) -> bool:
        return name.casefold() in self._auto_dirs_folded

    def is_auto_ignored_file_name(self, name: str) -> bool:
        return any(name_matches_glob(name, pattern) for pattern in self.auto_ignore_file_globs)

    def is_binary(self, path: PurePath) -> bool:
        """Return whether ``path`` has an extension whose content is suppressed."""
        return path.suffix.casefold() in self._binary_folded
