"""Single visibility decision per path.

Precedence, highest first:

1. manual include on the path itself
2. manual exclude on the path or any ancestor
3. structural hide (hidden directory names, hidden file globs)
4. root ``.gitignore`` when respected
5. auto-ignore directory names and file globs
6. visible

Binary extensions never exclude; the report only suppresses their content.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

from .filter_config import FilterConfig
from .gitignore import GitIgnoreMatcher
from .overrides import Forced, OverrideStore
from .paths import PathNormalizer


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


@dataclass
class FilterEngine:
    """Combine config, gitignore rules, and manual overrides for one root."""

    root: Path
    config: FilterConfig = field(default_factory=FilterConfig.defaults)
    gitignore: GitIgnoreMatcher = field(default_factory=GitIgnoreMatcher)
    overrides: OverrideStore = field(default_factory=OverrideStore)
    respect_gitignore: bool = True

    @property
    def normalizer(self) -> PathNormalizer:
        return self.overrides.normalizer

    def scoped(self, base_root: Path) -> FilterEngine:
        """Return a frozen copy whose overrides only cover ``base_root``'s subtree."""
        return replace(self, overrides=self.overrides.restrict_to(base_root))

    def _ancestors_within_root(self, path: Path) -> list[Path]:
        """Return ancestors of ``path`` strictly below the root, nearest first."""
        root_key = self.normalizer.key(self.root)
        ancestors: list[Path] = []
        for parent in path.parents:
            if not PathNormalizer.key_is_descendant(self.normalizer.key(parent), root_key):
                break
            ancestors.append(parent)
        return ancestors

    def is_structurally_hidden(self, path: Path | str, is_dir: bool | None = None) -> bool:
        """Return whether a non-overridable hide rule covers ``path``."""
        normalized = self.normalizer.normalize(path)
        if is_dir is None:
            is_dir = _is_dir(normalized)
        if is_dir:
            if self.config.is_hidden_dir_name(normalized.name):
                return True
        elif self.config.is_hidden_file_name(normalized.name):
            return True
        return any(self.config.is_hidden_dir_name(parent.name) for parent in self._ancestors_within_root(normalized))

    def is_gitignored(self, path: Path | str, is_dir: bool | None = None) -> bool:
        if not self.respect_gitignore or not self.gitignore.rules:
            return False
        normalized = self.normalizer.normalize(path)
        relative = self.normalizer.relative_posix(normalized, self.root)
        if relative is None:
            return False
        if is_dir is None:
            is_dir = _is_dir(normalized)
        return self.gitignore.is_ignored(relative, is_dir)

    def is_auto_ignored(self, path: Path | str, is_dir: bool | None = None) -> bool:
        normalized = self.normalizer.normalize(path)
        if is_dir is None:
            is_dir = _is_dir(normalized)
        if is_dir:
            return self.config.is_auto_ignored_dir_name(normalized.name)
        return self.config.is_auto_ignored_file_name(normalized.name)

    def is_effectively_excluded(self, path: Path | str, is_dir: bool | None = None) -> bool:
        normalized = self.normalizer.normalize(path)
        key = self.normalizer.key(normalized)
        forced = self.overrides.forced_for_key(key)
        if forced is Forced.INCLUDE:
            return False
        if forced is Forced.EXCLUDE:
            return True
        for parent in normalized.parents:
            if self.overrides.forced_for_key(self.normalizer.key(parent)) is Forced.EXCLUDE:
                return True

        if is_dir is None:
            is_dir = _is_dir(normalized)
        if self.is_structurally_hidden(normalized, is_dir):
            return True
        if self.is_gitignored(normalized, is_dir):
            return True
        return self.is_auto_ignored(normalized, is_dir)

    def folder_contains_manual_includes(self, folder: Path | str) -> bool:
        """Return whether some forced include lies strictly beneath ``folder``."""
        folder_key = self.normalizer.key(folder)
        return any(
            PathNormalizer.key_is_descendant(include_key, folder_key)
            for include_key in self.overrides.include_keys()
        )

    def folder_visually_excluded(self, folder: Path | str) -> bool:
        """Return whether ``folder``'s own listing line is omitted.

        An excluded folder that holds a forced include keeps its line so the
        include stays reachable. Structural hides always omit the folder.
        """
        normalized = self.normalizer.normalize(folder)
        if self.is_structurally_hidden(normalized, is_dir=True):
            return True
        if not self.is_effectively_excluded(normalized, is_dir=True):
            return False
        return not self.folder_contains_manual_includes(normalized)
