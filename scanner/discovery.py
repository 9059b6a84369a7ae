"""Source file discovery for Flutter/Dart projects."""

import logging
from pathlib import Path
from typing import Iterator, Set, Optional

logger = logging.getLogger(__name__)


DEFAULT_EXTENSIONS = {".dart"}
DEFAULT_EXCLUDE_DIRS = {
    ".git", ".hg", ".svn",
    ".dart_tool", ".pub-cache", ".pub", "build",
    ".idea", ".vscode", ".fvm",
    ".keycheck",
}
# Platform runner folders are only skipped at the top of the project; a
# feature folder named e.g. 'web' under lib/ is ordinary source.
ROOT_EXCLUDE_DIRS = {"ios", "android", "macos", "linux", "windows", "web"}
GENERATED_SUFFIXES = (".g.dart", ".freezed.dart", ".mocks.dart", ".gr.dart")


def _is_excluded(name: str, patterns: Set[str]) -> bool:
    if name in patterns:
        return True
    return any(name.endswith(pat.lstrip("*")) for pat in patterns if pat.startswith("*"))


def iter_files(
    root: Path,
    include_ext: Optional[Set[str]] = None,
    exclude_dirs: Optional[Set[str]] = None,
    max_depth: Optional[int] = None,
    include_generated: bool = False,
    root_exclude_dirs: Optional[Set[str]] = None,
) -> Iterator[Path]:
    """
    Iterate over source files in a directory tree.

    Entries are visited in sorted order, so two walks of the same tree yield
    the same sequence.

    Args:
        root: Root directory to scan.
        include_ext: File extensions to include (e.g., {'.dart'}).
                    If None, uses DEFAULT_EXTENSIONS.
        exclude_dirs: Directory names to skip at any depth. Entries starting
                     with '*' match by suffix. If None, uses
                     DEFAULT_EXCLUDE_DIRS.
        max_depth: Maximum depth to descend. None means unlimited.
        include_generated: If False, skip code-generator output such as
                          '*.g.dart' and '*.freezed.dart'.
        root_exclude_dirs: Directory names skipped only when they are direct
                          children of ``root``. If None, uses
                          ROOT_EXCLUDE_DIRS.

    Yields:
        Path objects for matching files.
    """
    if include_ext is None:
        include_ext = DEFAULT_EXTENSIONS
    if exclude_dirs is None:
        exclude_dirs = DEFAULT_EXCLUDE_DIRS
    if root_exclude_dirs is None:
        root_exclude_dirs = ROOT_EXCLUDE_DIRS

    root = root.resolve()

    def _walk(current: Path, depth: int) -> Iterator[Path]:
        if max_depth is not None and depth > max_depth:
            return

        try:
            entries = sorted(current.iterdir())
        except PermissionError:
            logger.debug("Skipping unreadable directory %s", current)
            return

        for entry in entries:
            if entry.is_dir():
                if _is_excluded(entry.name, exclude_dirs):
                    continue
                if depth == 0 and entry.name in root_exclude_dirs:
                    continue
                yield from _walk(entry, depth + 1)
            elif entry.is_file():
                if entry.suffix.lower() not in include_ext:
                    continue
                if not include_generated and entry.name.endswith(GENERATED_SUFFIXES):
                    continue
                yield entry

    yield from _walk(root, 0)
