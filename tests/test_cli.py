"""Tests for the keycheck command line."""

import json
import tempfile
from pathlib import Path

import yaml

from cli import EXIT_CONFIG_ERROR, EXIT_IO_ERROR, EXIT_OK, EXIT_VALIDATION_FAILED, main


REGISTRY = """
class KeyConstants {
  static const loginButton = 'login_button';
}
"""


def _write(root: Path, relative: str, text: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _project(root: Path, expected=("email_field", "login_button")) -> None:
    _write(root, "lib/login.dart", "Key('email_field')\nKey(KeyConstants.loginButton)")
    _write(root, "lib/keys.dart", REGISTRY)
    _write(root, "keys.yaml", yaml.safe_dump({"keys": list(expected)}))
    # Predicates are covered elsewhere; disable them for CLI runs.
    _write(root, ".keycheck.yaml", "check_dependencies: false\ncheck_test_setup: false\ncache: false\n")


class TestMain:
    """Tests for exit codes and output."""

    def test_passing_run(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root)

            code = main([str(root), "-k", str(root / "keys.yaml")])

            assert code == EXIT_OK
            assert "Status: PASSED" in capsys.readouterr().out

    def test_missing_key_fails(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root, expected=("email_field", "login_button", "submit_button"))

            code = main([str(root), "-k", str(root / "keys.yaml"), "-f", "json"])

            assert code == EXIT_VALIDATION_FAILED
            data = json.loads(capsys.readouterr().out)
            assert data["result"]["missing_keys"] == ["submit_button"]

    def test_lenient_policy_passes(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root, expected=("submit_button",))

            code = main([str(root), "-k", str(root / "keys.yaml"), "--policy", "lenient", "-q"])

            assert code == EXIT_OK

    def test_fail_on_extra(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root, expected=("email_field",))

            assert main([str(root), "-k", str(root / "keys.yaml"), "-q"]) == EXIT_OK
            assert main([str(root), "-k", str(root / "keys.yaml"), "--fail-on-extra", "-q"]) == EXIT_VALIDATION_FAILED

    def test_exclude_option(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root, expected=("email_field", "login_button", "submit_button"))

            code = main([str(root), "-k", str(root / "keys.yaml"), "--exclude", "submit", "-q"])

            assert code == EXIT_OK

    def test_missing_keys_file_is_config_error(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root)

            code = main([str(root), "-k", str(root / "absent.yaml")])

            assert code == EXIT_CONFIG_ERROR
            assert "Error:" in capsys.readouterr().err

    def test_invalid_config_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root)
            _write(root, ".keycheck.yaml", "polcy: strict\n")

            assert main([str(root), "-k", str(root / "keys.yaml")]) == EXIT_CONFIG_ERROR

    def test_unwritable_output(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root)

            code = main([str(root), "-k", str(root / "keys.yaml"), "-o", str(root / "missing_dir" / "out.txt")])

            assert code == EXIT_IO_ERROR

    def test_output_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root)
            out = root / "report.xml"

            code = main([str(root), "-k", str(root / "keys.yaml"), "-f", "junit", "-o", str(out)])

            assert code == EXIT_OK
            assert out.read_text(encoding="utf-8").startswith("<?xml")


class TestAlternativeModes:
    """Tests for key generation, registry report and baseline updates."""

    def test_generate_keys(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root)
            out = root / "generated.yaml"

            code = main([str(root), "--generate-keys", "-o", str(out)])

            assert code == EXIT_OK
            assert yaml.safe_load(out.read_text(encoding="utf-8")) == {"keys": ["email_field", "login_button"]}

    def test_key_constants_report(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root)

            code = main([str(root), "--key-constants-report", "-f", "json"])

            assert code == EXIT_OK
            data = json.loads(capsys.readouterr().out)
            assert data["has_registry"] is True
            assert data["constants_found"] == ["loginButton"]
            assert data["constant_keys"] == ["login_button"]

    def test_progressive_with_baseline_update(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root)
            baseline = root / "baseline.json"
            args = [str(root), "--policy", "progressive", "--baseline", str(baseline), "-q"]

            assert main(args + ["--update-baseline"]) == EXIT_OK
            assert json.loads(baseline.read_text(encoding="utf-8"))["keys"].keys() == {"email_field", "login_button"}

            _write(root, "lib/login.dart", "Key(KeyConstants.loginButton)")
            assert main(args) == EXIT_VALIDATION_FAILED

    def test_update_baseline_requires_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _project(root)

            assert main([str(root), "-k", str(root / "keys.yaml"), "--update-baseline"]) == EXIT_CONFIG_ERROR
