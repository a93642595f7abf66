"""Per-root JSON state: manual overrides, flags, and filter patterns.

Each repository root maps to ``<sha256(lowercase root)>.json`` under the
per-user data directory. Missing or malformed state falls back to defaults
and failed writes are dropped.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as futures_wait
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_data_dir

from .filter_config import FilterConfig, clean_patterns

logger = logging.getLogger(__name__)

APP_NAME = "repotxt"
STATE_DIR = Path(user_data_dir(APP_NAME, appauthor=False))


def state_key(root: Path | str) -> str:
    """Return the hex SHA-256 of the lowercased root path."""
    return hashlib.sha256(str(root).lower().encode("utf-8")).hexdigest()


@dataclass
class PersistedState:
    """Everything remembered for one root."""

    includes: list[str] = field(default_factory=list)
    excludes: list[str] = field(default_factory=list)
    wrap_long_lines: bool = False
    respect_gitignore: bool = True
    config: FilterConfig = field(default_factory=FilterConfig.defaults)

    def to_json(self) -> dict[str, object]:
        return {
            "includes": list(self.includes),
            "excludes": list(self.excludes),
            "wrapLongLines": bool(self.wrap_long_lines),
            "respectGitIgnore": bool(self.respect_gitignore),
            "hiddenDirNames": list(self.config.hidden_dir_names),
            "hiddenFileGlobs": list(self.config.hidden_file_globs),
            "autoIgnoreDirNames": list(self.config.auto_ignore_dir_names),
            "autoIgnoreFileGlobs": list(self.config.auto_ignore_file_globs),
        }

    @classmethod
    def from_json(cls, data: object) -> PersistedState:
        """Build state from decoded JSON, defaulting each malformed key."""
        if not isinstance(data, dict):
            return cls()

        def string_list(key: str) -> list[str] | None:
            value = data.get(key)
            if not isinstance(value, list):
                return None
            return clean_patterns(value)

        def flag(key: str, default: bool) -> bool:
            value = data.get(key)
            return value if isinstance(value, bool) else default

        config = FilterConfig.defaults().with_patterns(
            hidden_dir_names=string_list("hiddenDirNames"),
            hidden_file_globs=string_list("hiddenFileGlobs"),
            auto_ignore_dir_names=string_list("autoIgnoreDirNames"),
            auto_ignore_file_globs=string_list("autoIgnoreFileGlobs"),
        )
        return cls(
            includes=string_list("includes") or [],
            excludes=string_list("excludes") or [],
            wrap_long_lines=flag("wrapLongLines", False),
            respect_gitignore=flag("respectGitIgnore", True),
            config=config,
        )


class StateStore:
    """Load and save ``PersistedState`` files inside ``state_dir``.

    With ``background`` enabled, saves serialize on the calling thread and
    are written by one worker thread in submission order, so the last save
    wins.
    """

    def __init__(self, state_dir: Path | None = None, background: bool = True) -> None:
        self.state_dir = state_dir if state_dir is not None else STATE_DIR
        self.background = background
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._pending: list[Future[None]] = []

    def path_for(self, root: Path | str) -> Path:
        return self.state_dir / f"{state_key(root)}.json"

    def load(self, root: Path | str) -> PersistedState:
        """Return persisted state for ``root`` or defaults when unavailable."""
        path = self.path_for(root)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return PersistedState()
        except Exception as exc:
            logger.debug("ignoring unreadable state file %s: %s", path, exc)
            return PersistedState()
        return PersistedState.from_json(data)

    def save(self, root: Path | str, state: PersistedState) -> None:
        """Persist ``state`` for ``root``; errors are logged and dropped."""
        path = self.path_for(root)
        try:
            payload = json.dumps(state.to_json(), indent=2) + "\n"
        except Exception as exc:
            logger.debug("cannot serialize state for %s: %s", root, exc)
            return
        if not self.background:
            _write_state(path, payload)
            return

        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="repotxt-save")
            self._pending = [future for future in self._pending if not future.done()]
            self._pending.append(self._executor.submit(_write_state, path, payload))

    def wait(self, timeout: float | None = None) -> None:
        """Block until queued background writes finish."""
        with self._lock:
            pending = list(self._pending)
            self._pending = []
        futures_wait(pending, timeout=timeout)


def _write_state(path: Path, payload: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, encoding="utf-8")
    except Exception as exc:
        logger.debug("cannot write state file %s: %s", path, exc)
