"""Project scan orchestration: discovery, extraction, resolution, aggregation."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Set

from keymap.model import FoundKeysMap, ScanResult, ScanWarning
from .cache import ScanCache, file_fingerprint
from .constants import ConstantsRegistry, DEFAULT_REGISTRY_CLASS, build_registry, has_registry_class
from .discovery import iter_files
from .patterns import DEFAULT_KEY_WRAPPERS, PatternScanner, RawMatch, build_shapes

logger = logging.getLogger(__name__)


@dataclass
class FileScan:
    """Raw matches for one file, or the reason it could not be scanned."""

    path: Path
    matches: List[RawMatch] = field(default_factory=list)
    warning: Optional[ScanWarning] = None
    from_cache: bool = False
    declares_registry: bool = False


def extract_file(
    path: Path,
    scanner: PatternScanner,
    cache: Optional[ScanCache] = None,
    salt: str = "",
    registry_class: str = DEFAULT_REGISTRY_CLASS,
) -> FileScan:
    """
    Extract raw key candidates from one file.

    Also records whether the file declares the registry class, so the
    registry can be built without reading every file again. I/O and
    decoding failures are returned as a warning instead of raised.
    """
    fingerprint = None
    if cache is not None:
        try:
            fingerprint = file_fingerprint(path, salt)
        except OSError as e:
            return FileScan(path, warning=ScanWarning(path, f"cannot stat file: {e}"))
        entry = cache.get(fingerprint)
        if entry is not None:
            logger.debug("Cache hit for %s", path)
            return FileScan(
                path,
                matches=entry.matches,
                from_cache=True,
                declares_registry=entry.declares_registry,
            )

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        return FileScan(path, warning=ScanWarning(path, f"not valid UTF-8: {e.reason}"))
    except OSError as e:
        return FileScan(path, warning=ScanWarning(path, f"cannot read file: {e.strerror or e}"))

    matches = list(scanner.extract(text))
    declares_registry = registry_class in text and has_registry_class(text, registry_class)
    if cache is not None and fingerprint is not None:
        cache.put(fingerprint, matches, declares_registry)
    return FileScan(path, matches=matches, declares_registry=declares_registry)


def default_workers() -> int:
    return os.cpu_count() or 1


def build_key_map(
    root: Path,
    include_ext: Optional[Set[str]] = None,
    exclude_dirs: Optional[Set[str]] = None,
    max_depth: Optional[int] = None,
    include_generated: bool = False,
    registry_class: str = DEFAULT_REGISTRY_CLASS,
    wrappers: Sequence[str] = DEFAULT_KEY_WRAPPERS,
    cache: Optional[ScanCache] = None,
    workers: Optional[int] = None,
) -> ScanResult:
    """
    Scan a project and aggregate every key usage into a ``FoundKeysMap``.

    Files are extracted concurrently. The constants registry is then built
    from the files flagged as declaring it, and symbolic usages are resolved
    only after the registry is complete. Results are merged in discovery
    order, so the output does not depend on worker scheduling. The registry
    file itself is never counted as a usage site.

    Args:
        root: Project root directory.
        include_ext: File extensions to scan (default: .dart).
        exclude_dirs: Directory names to skip.
        max_depth: Maximum directory depth to scan.
        include_generated: Also scan generated files such as '*.g.dart'.
        registry_class: Name of the constants registry class.
        wrappers: Call names that wrap a key.
        cache: Optional scan cache service.
        workers: Worker pool size (default: CPU count).

    Returns:
        ScanResult with the found-keys map, scan warnings and registry.
    """
    root = root.resolve()
    files = list(iter_files(
        root=root,
        include_ext=include_ext,
        exclude_dirs=exclude_dirs,
        max_depth=max_depth,
        include_generated=include_generated,
    ))
    logger.debug("Discovered %d source files under %s", len(files), root)

    shapes = build_shapes(wrappers, registry_class)
    extractor = PatternScanner(shapes)
    salt = registry_class + "|" + ",".join(sorted(set(wrappers)))

    pool = ThreadPoolExecutor(max_workers=max(1, workers or default_workers()))
    try:
        scan_futures = [
            pool.submit(extract_file, path, extractor, cache, salt, registry_class)
            for path in files
        ]
        file_scans = [future.result() for future in scan_futures]
    except BaseException:
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    pool.shutdown(wait=True)

    candidates = [scan.path for scan in file_scans if scan.declares_registry]
    registry: ConstantsRegistry = build_registry(candidates, registry_class, root)
    resolver = PatternScanner(shapes, registry)
    result = ScanResult(root=root, registry=registry, extra_registries=registry.shadowed)
    found = FoundKeysMap()

    for file_scan in file_scans:
        if file_scan.warning is not None:
            logger.warning("%s", file_scan.warning)
            result.warnings.append(file_scan.warning)
            continue
        if registry.path is not None and file_scan.path == registry.path:
            continue
        if file_scan.from_cache:
            result.cache_hits += 1
        for raw in file_scan.matches:
            found.add(resolver.resolve(raw, file_scan.path))
        result.scanned_files.append(file_scan.path)

    result.found = found
    logger.debug("Found %r in %d files", found, len(result.scanned_files))
    return result
