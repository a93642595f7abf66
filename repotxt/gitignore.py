"""Root ``.gitignore`` parsing and last-match-wins evaluation.

Only the ``.gitignore`` at the repository root is read. Each usable line is
compiled to one regex rule; rules are evaluated in file order and the last
matching rule decides whether a path is ignored.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

GITIGNORE_FILENAME = ".gitignore"


@dataclass(frozen=True)
class GitIgnoreRule:
    """One compiled ``.gitignore`` line."""

    pattern: re.Pattern[str]
    negated: bool
    directory_only: bool
    anchored: bool
    source: str = ""


def glob_to_regex(glob: str) -> str:
    """Translate a gitignore glob body into a regex fragment.

    ``**/`` spans zero or more directories, ``**`` spans anything, ``*`` and
    ``?`` never cross a ``/``.
    """
    out: list[str] = []
    idx = 0
    length = len(glob)
    while idx < length:
        ch = glob[idx]
        if ch == "*":
            if idx + 1 < length and glob[idx + 1] == "*":
                if idx + 2 < length and glob[idx + 2] == "/":
                    out.append("(?:.*/)?")
                    idx += 3
                    continue
                out.append(".*")
                idx += 2
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "/":
            out.append("/")
        else:
            out.append(re.escape(ch))
        idx += 1
    return "".join(out)


def compile_gitignore_rule(line: str, case_sensitive: bool = False) -> GitIgnoreRule | None:
    """Compile one raw ``.gitignore`` line, or return ``None`` to skip it."""
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    negated = text.startswith("!")
    body = text[1:] if negated else text
    body = body.replace("\\", "/").strip()
    anchored = body.startswith("/")
    body = body.lstrip("/")
    directory_only = body.endswith("/")
    body = body.rstrip("/")
    if not body:
        return None

    core = glob_to_regex(body)
    # Directories are matched as "name/", so dir-only rules need that slash.
    core += "/.*" if directory_only else "/?"
    prefix = "^" if anchored else "(?:^|.*/)"
    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        pattern = re.compile(prefix + core + "$", flags)
    except re.error as exc:
        logger.debug("dropping gitignore rule %r: %s", text, exc)
        return None
    return GitIgnoreRule(
        pattern=pattern,
        negated=negated,
        directory_only=directory_only,
        anchored=anchored,
        source=text,
    )


def parse_gitignore(lines: Iterable[str], case_sensitive: bool = False) -> list[GitIgnoreRule]:
    """Compile ``lines`` into an ordered rule list, dropping unusable lines."""
    rules: list[GitIgnoreRule] = []
    for line in lines:
        rule = compile_gitignore_rule(line, case_sensitive=case_sensitive)
        if rule is not None:
            rules.append(rule)
    return rules


@dataclass(frozen=True)
class GitIgnoreMatcher:
    """Ordered rule set for one repository root."""

    rules: tuple[GitIgnoreRule, ...] = ()

    @classmethod
    def from_text(cls, text: str, case_sensitive: bool = False) -> GitIgnoreMatcher:
        return cls(tuple(parse_gitignore(text.splitlines(), case_sensitive=case_sensitive)))

    @classmethod
    def from_root(cls, root: Path, case_sensitive: bool = False) -> GitIgnoreMatcher:
        """Load ``root/.gitignore``; a missing or unreadable file yields no rules."""
        gitignore_path = root / GITIGNORE_FILENAME
        try:
            raw = gitignore_path.read_bytes()
        except OSError:
            return cls()
        text = raw.decode("utf-8-sig", errors="replace")
        matcher = cls.from_text(text, case_sensitive=case_sensitive)
        logger.debug("loaded %d gitignore rules from %s", len(matcher.rules), gitignore_path)
        return matcher

    def is_ignored(self, relative_path: str, is_dir: bool) -> bool:
        """Return the last-match-wins verdict for a root-relative POSIX path."""
        if not self.rules:
            return False
        candidate = relative_path.strip("/")
        if not candidate:
            return False
        if is_dir:
            candidate += "/"

        ignored = False
        for rule in self.rules:
            if rule.pattern.match(candidate):
                ignored = not rule.negated
        return ignored
