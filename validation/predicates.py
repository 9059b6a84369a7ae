"""Project inspection checks: test dependencies and integration test entry."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import yaml

logger = logging.getLogger(__name__)


INTEGRATION_TEST_PACKAGE = "integration_test"
APPIUM_SERVER_PACKAGE = "appium_flutter_server"
APPIUM_IMPORT = "package:appium_flutter_server/appium_flutter_server.dart"
APPIUM_INIT_CALL = "initializeTest("


@dataclass(frozen=True)
class DependencyStatus:
    """Which required test dependencies the project declares."""

    has_integration_test: bool
    has_appium_server: bool

    @property
    def ok(self) -> bool:
        return self.has_integration_test and self.has_appium_server


def _project_dirs(project: Path) -> List[Path]:
    # A package's example app counts as part of the project.
    dirs = [project]
    example = project / "example"
    if example.is_dir():
        dirs.append(example)
    return dirs


def _load_pubspec(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning("Cannot read %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def check_dependencies(project: Path) -> DependencyStatus:
    """
    Check pubspec.yaml for the packages automation tests need.

    ``integration_test`` may be in dependencies or dev_dependencies;
    ``appium_flutter_server`` must be in dev_dependencies.
    """
    has_integration_test = False
    has_appium_server = False

    for directory in _project_dirs(Path(project)):
        pubspec_path = directory / "pubspec.yaml"
        if not pubspec_path.is_file():
            continue
        pubspec = _load_pubspec(pubspec_path)
        deps = pubspec.get("dependencies") or {}
        dev_deps = pubspec.get("dev_dependencies") or {}
        if not isinstance(deps, dict):
            deps = {}
        if not isinstance(dev_deps, dict):
            dev_deps = {}

        has_integration_test |= INTEGRATION_TEST_PACKAGE in deps or INTEGRATION_TEST_PACKAGE in dev_deps
        has_appium_server |= APPIUM_SERVER_PACKAGE in dev_deps

    return DependencyStatus(has_integration_test, has_appium_server)


def check_test_setup(project: Path) -> bool:
    """
    Check that an integration test initializes the Appium Flutter server.

    Looks for a ``.dart`` file under ``integration_test/`` that imports
    appium_flutter_server and calls ``initializeTest(``.
    """
    for directory in _project_dirs(Path(project)):
        test_dir = directory / "integration_test"
        if not test_dir.is_dir():
            continue
        for test_file in sorted(test_dir.rglob("*.dart")):
            try:
                content = test_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            if APPIUM_IMPORT in content and APPIUM_INIT_CALL in content:
                return True
    return False
