"""Tests for the repository session: lifecycle, commands, persistence, reports."""

from __future__ import annotations

import tempfile
import threading
import unittest
from pathlib import Path

from repotxt.filter_config import FilterConfig
from repotxt.session import NO_ROOT_REPORT, RepoSession, SelectedPath
from repotxt.state_store import StateStore
from repotxt.tree_builder import ReportCancelled


class RepoSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        base = Path(self._tmp.name).resolve()
        self.state_dir = base / "state"
        self.root = base / "repo"
        self.root.mkdir()
        (self.root / "src").mkdir()
        (self.root / "src" / "a.ts").write_text("export {}", encoding="utf-8")
        (self.root / "docs").mkdir()
        (self.root / "docs" / "intro.md").write_text("# hi", encoding="utf-8")
        (self.root / "node_modules").mkdir()
        (self.root / "node_modules" / "x.js").write_text("x", encoding="utf-8")
        (self.root / "notes.txt").write_text("n", encoding="utf-8")
        self.session = self._new_session()
        self.events: list[str] = []
        self.session.subscribe(lambda: self.events.append("changed"))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _new_session(self) -> RepoSession:
        return RepoSession(store=StateStore(state_dir=self.state_dir, background=False))

    def test_no_root_report_and_commands_are_noops(self) -> None:
        self.assertEqual(self.session.generate_report(), NO_ROOT_REPORT)

        self.session.toggle_exclude(self.root / "src")
        self.session.reset_manual_rules()
        self.session.reset_to_defaults()

        self.assertEqual(len(self.session.overrides), 0)
        self.assertEqual(self.events, [])
        self.assertFalse(self.state_dir.exists())

    def test_set_root_opens_and_closes(self) -> None:
        self.assertTrue(self.session.set_root(self.root, display_name="Repo"))
        self.assertEqual(self.session.root, self.root)
        self.assertEqual(self.session.display_name, "Repo")

        self.assertFalse(self.session.set_root(self.root / "notes.txt"))
        self.assertIsNone(self.session.root)
        self.assertEqual(self.session.generate_report(), NO_ROOT_REPORT)
        self.assertEqual(self.events, ["changed", "changed"])

    def test_display_name_defaults_to_folder_name(self) -> None:
        self.session.set_root(self.root)

        self.assertEqual(self.session.display_name, "repo")

    def test_unsubscribe_stops_notifications(self) -> None:
        calls: list[int] = []
        unsubscribe = self.session.subscribe(lambda: calls.append(1))
        self.session.set_root(self.root)
        unsubscribe()

        self.session.toggle_exclude(self.root / "src")

        self.assertEqual(calls, [1])

    def test_toggle_persists_and_reloads_on_reopen(self) -> None:
        self.session.set_root(self.root)
        self.session.toggle_exclude(self.root / "src")
        self.session.toggle_exclude(self.root / "node_modules")

        self.assertTrue(self.session.is_effectively_excluded(self.root / "src" / "a.ts"))
        self.assertFalse(self.session.is_effectively_excluded(self.root / "node_modules"))

        reopened = self._new_session()
        reopened.set_root(self.root)

        self.assertEqual(reopened.overrides.excludes, [self.root / "src"])
        self.assertEqual(reopened.overrides.includes, [self.root / "node_modules"])
        self.assertFalse(reopened.can_undo)

    def test_batch_toggle_uses_selected_kinds_and_undoes_as_one_step(self) -> None:
        self.session.set_root(self.root)

        self.session.toggle_exclude_multiple(
            [SelectedPath(self.root / "docs", is_dir=True), self.root / "notes.txt"]
        )

        self.assertEqual(self.session.overrides.excludes, [self.root / "docs", self.root / "notes.txt"])
        self.assertTrue(self.session.undo())
        self.assertEqual(len(self.session.overrides), 0)
        self.assertTrue(self.session.redo())
        self.assertEqual(len(self.session.overrides.excludes), 2)
        self.assertFalse(self.session.redo())

    def test_undo_without_history_does_not_notify(self) -> None:
        self.session.set_root(self.root)
        self.events.clear()

        self.assertFalse(self.session.undo())
        self.assertEqual(self.events, [])

    def test_undo_is_saved(self) -> None:
        self.session.set_root(self.root)
        self.session.toggle_exclude(self.root / "docs")
        self.session.undo()

        reopened = self._new_session()
        reopened.set_root(self.root)

        self.assertEqual(len(reopened.overrides), 0)

    def test_settings_changes_save_and_notify_only_on_change(self) -> None:
        self.session.set_root(self.root)
        self.events.clear()

        self.session.wrap_long_lines = True
        self.session.wrap_long_lines = True
        self.session.respect_gitignore = False

        self.assertEqual(self.events, ["changed", "changed"])
        reopened = self._new_session()
        reopened.set_root(self.root)
        self.assertTrue(reopened.wrap_long_lines)
        self.assertFalse(reopened.respect_gitignore)

    def test_update_filtering_patterns_replaces_all_four_collections(self) -> None:
        self.session.set_root(self.root)

        self.session.update_filtering_patterns(["docs"], [], [], ["*.txt"])

        self.assertTrue(self.session.is_effectively_excluded(self.root / "docs"))
        self.assertTrue(self.session.is_effectively_excluded(self.root / "notes.txt"))
        self.assertFalse(self.session.is_effectively_excluded(self.root / "node_modules"))
        reopened = self._new_session()
        reopened.set_root(self.root)
        self.assertEqual(reopened.config.hidden_dir_names, ("docs",))

    def test_reset_manual_rules_keeps_settings(self) -> None:
        self.session.set_root(self.root)
        self.session.wrap_long_lines = True
        self.session.toggle_exclude(self.root / "docs")

        self.session.reset_manual_rules()

        self.assertEqual(len(self.session.overrides), 0)
        self.assertTrue(self.session.wrap_long_lines)
        self.assertTrue(self.session.undo())
        self.assertEqual(self.session.overrides.excludes, [self.root / "docs"])

    def test_reset_to_defaults_restores_patterns_and_flags(self) -> None:
        self.session.set_root(self.root)
        self.session.update_filtering_patterns([], [], [], [])
        self.session.wrap_long_lines = True
        self.session.respect_gitignore = False
        self.session.toggle_exclude(self.root / "docs")

        self.session.reset_to_defaults()

        self.assertEqual(self.session.config, FilterConfig.defaults())
        self.assertFalse(self.session.wrap_long_lines)
        self.assertTrue(self.session.respect_gitignore)
        self.assertEqual(len(self.session.overrides), 0)

    def test_gitignore_is_reread_on_reset(self) -> None:
        self.session.set_root(self.root)
        self.assertFalse(self.session.is_effectively_excluded(self.root / "docs"))

        (self.root / ".gitignore").write_text("docs/\n", encoding="utf-8")
        self.session.reset_manual_rules()

        self.assertTrue(self.session.is_effectively_excluded(self.root / "docs"))

    def test_report_lists_structure_then_contents(self) -> None:
        self.session.set_root(self.root, display_name="Repo")

        report = self.session.generate_report()

        self.assertEqual(
            report,
            "Folder Structure: Repo\n"
            "docs/\n"
            "docs/intro.md\n"
            "src/\n"
            "src/a.ts\n"
            "notes.txt\n"
            "\n"
            "File: notes.txt\n"
            "Content: n\n"
            "\n"
            "File: docs/intro.md\n"
            "Content: # hi\n"
            "\n"
            "File: src/a.ts\n"
            "Content: export {}\n"
            "\n",
        )
        self.assertEqual(self.session.generate_report(), report)

    def test_subroot_report_is_relative_and_ignores_outside_overrides(self) -> None:
        self.session.set_root(self.root, display_name="Repo")
        self.session.toggle_exclude(self.root / "src")

        report = self.session.generate_report(subroot=self.root / "src")

        self.assertTrue(report.startswith("Folder Structure: Repo /src\na.ts\n\n"))
        self.assertIn("File: a.ts\nContent: export {}\n", report)

    def test_subroot_outside_root_falls_back_to_root(self) -> None:
        self.session.set_root(self.root, display_name="Repo")

        self.assertEqual(self.session.resolve_report_root(self.root.parent), self.root)
        self.assertEqual(self.session.resolve_report_root(self.root / "missing"), self.root)
        self.assertEqual(self.session.resolve_report_root(self.root / "docs"), self.root / "docs")

    def test_cancelled_report_raises(self) -> None:
        self.session.set_root(self.root)
        cancel_event = threading.Event()
        cancel_event.set()

        with self.assertRaises(ReportCancelled):
            self.session.generate_report(cancel_event=cancel_event)


if __name__ == "__main__":
    unittest.main()
