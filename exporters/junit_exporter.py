"""JUnit XML report so CI systems can show each check as a test case."""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from validation.pipeline import CheckOutcome
from validation.validator import PolicyMode
from .common import display_path

SUITE_NAME = "keycheck"


def _case(suite: ET.Element, classname: str, name: str, failure: Optional[str] = None) -> None:
    case = ET.SubElement(suite, "testcase", classname=classname, name=name)
    if failure is not None:
        ET.SubElement(case, "failure", message=failure, type="KeycheckFailure").text = failure


def to_junit(outcome: CheckOutcome, base: Optional[Path] = None) -> str:
    """
    Render a check outcome as a JUnit XML document.

    Each expected key is one test case that fails when the key is missing
    and the policy fails on missing keys. Extra keys, baseline removals and
    the project predicates get one case each.
    """
    result = outcome.result
    root = outcome.scan.root
    suite = ET.Element("testsuite", name=SUITE_NAME)

    for key in sorted(result.matched_keys | result.missing_keys):
        failure = None
        if key in result.missing_keys:
            failure = f"Expected key '{key}' not found"
            if not result.missing_failed:
                # Reported but not failing under this policy.
                ET.SubElement(
                    ET.SubElement(suite, "testcase", classname=f"{SUITE_NAME}.keys", name=key),
                    "skipped",
                    message=failure,
                )
                continue
        _case(suite, f"{SUITE_NAME}.keys", key, failure)

    extra_failure = None
    if result.extra_failed:
        extra_failure = "Unexpected keys: " + ", ".join(sorted(result.extra_keys))
    _case(suite, f"{SUITE_NAME}.checks", "extra_keys", extra_failure)

    if result.policy_mode is PolicyMode.PROGRESSIVE:
        removal_failure = None
        if result.removed_keys:
            removal_failure = "Removed since baseline: " + ", ".join(sorted(result.removed_keys))
        _case(suite, f"{SUITE_NAME}.checks", "baseline", removal_failure)

    _case(
        suite, f"{SUITE_NAME}.checks", "dependencies",
        None if result.has_dependencies else "integration_test or appium_flutter_server missing from pubspec.yaml",
    )
    _case(
        suite, f"{SUITE_NAME}.checks", "integration_test_setup",
        None if result.has_test_setup else "No integration test initializes appium_flutter_server",
    )

    for warning in result.warnings:
        ET.SubElement(suite, "system-err").text = f"{display_path(warning.path, root, base)}: {warning.message}"

    cases = suite.findall("testcase")
    suite.set("tests", str(len(cases)))
    suite.set("failures", str(sum(1 for c in cases if c.find("failure") is not None)))
    suite.set("skipped", str(sum(1 for c in cases if c.find("skipped") is not None)))
    suite.set("errors", "0")

    ET.indent(suite)
    return ET.tostring(suite, encoding="unicode", xml_declaration=True) + "\n"
