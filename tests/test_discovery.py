"""Tests for source file discovery."""

import tempfile
from pathlib import Path

from scanner.discovery import DEFAULT_EXCLUDE_DIRS, iter_files


def _touch(root: Path, relative: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")


class TestIterFiles:
    """Tests for walking a project tree."""

    def test_sorted_dart_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            for name in ["lib/b.dart", "lib/a.dart", "lib/notes.txt", "test/w_test.dart"]:
                _touch(root, name)

            files = [p.relative_to(root.resolve()).as_posix() for p in iter_files(root)]

            assert files == ["lib/a.dart", "lib/b.dart", "test/w_test.dart"]

    def test_platform_and_tool_dirs_skipped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            for name in ["android/x.dart", ".dart_tool/y.dart", "build/z.dart", "lib/main.dart"]:
                _touch(root, name)

            assert [p.name for p in iter_files(root)] == ["main.dart"]

    def test_suffix_patterns(self):
        """Test exclude entries starting with '*' match directory suffixes."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _touch(root, "lib/generated_l10n/a.dart")
            _touch(root, "lib/main.dart")

            files = iter_files(root, exclude_dirs=DEFAULT_EXCLUDE_DIRS | {"*_l10n"})

            assert [p.name for p in files] == ["main.dart"]

    def test_generated_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            for name in ["lib/user.dart", "lib/user.g.dart", "lib/user.freezed.dart"]:
                _touch(root, name)

            assert [p.name for p in iter_files(root)] == ["user.dart"]
            assert len(list(iter_files(root, include_generated=True))) == 3

    def test_max_depth(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _touch(root, "top.dart")
            _touch(root, "lib/src/deep.dart")

            assert [p.name for p in iter_files(root, max_depth=1)] == ["top.dart"]

    def test_platform_names_below_root_are_scanned(self):
        """Test folders named like platform runners are only skipped at the root."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _touch(root, "web/index.dart")
            _touch(root, "lib/features/web/login.dart")
            _touch(root, "lib/features/android/settings.dart")

            files = [p.relative_to(root.resolve()).as_posix() for p in iter_files(root)]

            assert files == ["lib/features/android/settings.dart", "lib/features/web/login.dart"]
