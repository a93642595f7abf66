"""Tests for the repotxt command line."""

from __future__ import annotations

import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

from repotxt import cli
from repotxt.session import RepoSession
from repotxt.state_store import StateStore


class RepotxtCliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        base = Path(self._tmp.name).resolve()
        self.state_dir = base / "state"
        self.root = base / "repo"
        self.root.mkdir()
        (self.root / "src").mkdir()
        (self.root / "src" / "main.py").write_text("print('hi')\n", encoding="utf-8")
        (self.root / "build").mkdir()
        (self.root / "build" / "out.txt").write_text("artifact", encoding="utf-8")
        (self.root / "README.md").write_text("readme", encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str) -> tuple[int, str]:
        session = RepoSession(store=StateStore(state_dir=self.state_dir, background=False))
        out = io.StringIO()
        with redirect_stdout(out):
            code = cli.main([str(self.root), *argv], session=session)
        return code, out.getvalue()

    def test_prints_report_for_root(self) -> None:
        code, output = self._run("--name", "Demo")

        self.assertEqual(code, 0)
        self.assertTrue(output.startswith("Folder Structure: Demo\nsrc/\nsrc/main.py\nREADME.md\n\n"))
        self.assertIn("File: src/main.py\nContent: print('hi')\n\n", output)
        self.assertNotIn("build", output)

    def test_toggle_is_persisted_between_runs(self) -> None:
        code, _ = self._run("--toggle", "build", "--toggle", "README.md", "--no-report")
        self.assertEqual(code, 0)

        _, output = self._run()

        self.assertIn("build/\nbuild/out.txt\n", output)
        self.assertNotIn("README.md", output)

    def test_reset_drops_manual_rules(self) -> None:
        self._run("--toggle", "README.md", "--no-report")

        _, output = self._run("--reset")

        self.assertIn("File: README.md\n", output)

    def test_show_state_lists_overrides_and_flags(self) -> None:
        _, output = self._run("--toggle", "src", "--wrap", "--show-state", "--no-report")

        self.assertIn("Wrap long lines: on\n", output)
        self.assertIn("Respect .gitignore: on\n", output)
        self.assertIn(f"Excludes:\n  {self.root / 'src'}", output)
        self.assertNotIn("Folder Structure", output)

    def test_pattern_lists_replace_defaults(self) -> None:
        _, output = self._run("--auto-dirs", "", "--auto-files", "*.md, *.txt")

        self.assertIn("build/\n", output)
        self.assertNotIn("README.md", output)
        self.assertNotIn("build/out.txt", output)

    def test_subdir_report(self) -> None:
        _, output = self._run("--name", "Demo", "--subdir", "src")

        self.assertTrue(output.startswith("Folder Structure: Demo /src\nmain.py\n\n"))

    def test_missing_directory_exits(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            cli.main([str(self.root / "missing")])

        self.assertIn("Directory not found", str(ctx.exception))

    def test_toggle_without_open_root_exits(self) -> None:
        session = RepoSession(store=StateStore(state_dir=self.state_dir, background=False))

        with mock.patch.object(RepoSession, "set_root", return_value=False):
            with self.assertRaises(SystemExit) as ctx:
                cli.main([str(self.root), "--toggle", "README.md"], session=session)

        self.assertIn("No repository root opened", str(ctx.exception))

    def test_timeout_reports_error(self) -> None:
        session = RepoSession(store=StateStore(state_dir=self.state_dir, background=False))
        err = io.StringIO()

        with (
            mock.patch("repotxt.session.time") as session_time,
            mock.patch("repotxt.tree_builder.time") as walk_time,
        ):
            session_time.monotonic.return_value = 0.0
            walk_time.monotonic.return_value = 100.0
            with redirect_stderr(err), redirect_stdout(io.StringIO()):
                code = cli.main([str(self.root), "--timeout", "1"], session=session)

        self.assertEqual(code, 1)
        self.assertIn("repotxt:", err.getvalue())

    def test_timeout_must_be_positive(self) -> None:
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                cli.main([str(self.root), "--timeout", "0"])


if __name__ == "__main__":
    unittest.main()
