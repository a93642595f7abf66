"""Path canonicalization and comparison helpers.

Every path that enters the filter layer goes through ``PathNormalizer`` so
membership checks and descendant tests agree on one spelling per path.
Comparison is case-insensitive unless the normalizer is built otherwise.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class PathNormalizer:
    """Canonicalize paths and compare them with optional case folding."""

    case_sensitive: bool = False

    def normalize(self, path: str | os.PathLike[str]) -> Path:
        """Return absolute ``path`` without trailing separators.

        Symlinks are left untouched; only ``.``/``..`` segments collapse.
        """
        return Path(os.path.abspath(os.fspath(path)))

    def key(self, path: str | os.PathLike[str]) -> str:
        """Return the string used to compare ``path`` with other paths."""
        text = str(self.normalize(path))
        return text if self.case_sensitive else text.casefold()

    def same(self, left: str | os.PathLike[str], right: str | os.PathLike[str]) -> bool:
        return self.key(left) == self.key(right)

    def is_descendant_of(self, path: str | os.PathLike[str], root: str | os.PathLike[str]) -> bool:
        """Return whether ``path`` lies strictly beneath ``root``."""
        return self.key_is_descendant(self.key(path), self.key(root))

    @staticmethod
    def key_is_descendant(path_key: str, root_key: str) -> bool:
        prefix = root_key.rstrip(os.sep) + os.sep
        return path_key.startswith(prefix) and len(path_key) > len(prefix)

    def relative_posix(self, path: str | os.PathLike[str], root: str | os.PathLike[str]) -> str | None:
        """Return ``path`` relative to ``root`` with ``/`` separators.

        Returns ``None`` unless ``path`` is a strict descendant of ``root``.
        """
        normalized = self.normalize(path)
        normalized_root = self.normalize(root)
        if not self.is_descendant_of(normalized, normalized_root):
            return None
        prefix_len = len(str(normalized_root).rstrip(os.sep)) + 1
        relative = str(normalized)[prefix_len:]
        return to_posix(relative)


def to_posix(path_text: str) -> str:
    """Convert native separators in ``path_text`` to forward slashes."""
    if os.altsep:
        path_text = path_text.replace(os.altsep, "/")
    return path_text.replace(os.sep, "/")
