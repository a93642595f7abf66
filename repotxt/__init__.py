"""Public package surface for repotxt.

Exports the session facade plus ``main`` for programmatic CLI invocation.
Most implementation lives in submodules under ``repotxt``.
"""

from __future__ import annotations

from .session import NO_ROOT_REPORT, RepoSession, SelectedPath
from .tree_builder import ReportCancelled


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


__all__ = ["NO_ROOT_REPORT", "RepoSession", "ReportCancelled", "SelectedPath", "main"]
