"""
Declarative run configuration.

Values come from ``.keycheck.yaml`` and are overridden by command line
arguments. Unknown keys are rejected so that typos surface as
configuration errors instead of silently doing nothing.
"""

from datetime import timedelta
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from keymap.errors import ConfigurationError
from scanner.constants import DEFAULT_REGISTRY_CLASS
from scanner.patterns import DEFAULT_KEY_WRAPPERS
from validation.validator import PolicyMode


class KeycheckConfig(BaseModel):
    """Settings for one scan-and-validate run."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    keys: Optional[Path] = Field(None, description="Expected-key YAML file.")
    path: Path = Field(Path("."), description="Project root to scan.")

    include_only: List[str] = Field(default_factory=list, description="Keep only keys matching any pattern.")
    exclude: List[str] = Field(default_factory=list, description="Drop keys matching any pattern.")
    tracked_keys: List[str] = Field(default_factory=list, description="Validate only this subset.")

    policy: PolicyMode = Field(PolicyMode.STRICT, description="strict, lenient or progressive.")
    fail_on_missing: bool = Field(True, description="Strict mode: fail on missing expected keys.")
    fail_on_extra: bool = Field(False, description="Strict mode: fail on keys not in the expected list.")
    baseline: Optional[Path] = Field(None, description="Baseline snapshot for progressive mode.")
    grace_period_days: float = Field(0.0, ge=0, description="Days a removed baseline key is tolerated.")

    registry_class: str = Field(DEFAULT_REGISTRY_CLASS, description="Constants registry class name.")
    key_wrappers: List[str] = Field(default_factory=lambda: list(DEFAULT_KEY_WRAPPERS))
    extensions: List[str] = Field(default_factory=lambda: [".dart"])
    exclude_dirs: List[str] = Field(default_factory=list, description="Extra directory names to skip.")
    include_generated: bool = False
    max_depth: Optional[int] = Field(None, ge=0)

    cache: bool = True
    cache_dir: Optional[Path] = None
    cache_max_age_hours: float = Field(24.0, gt=0)
    workers: Optional[int] = Field(None, ge=1)

    check_dependencies: bool = Field(True, description="Require integration_test and appium_flutter_server.")
    check_test_setup: bool = Field(True, description="Require an initialized integration test.")

    report: str = Field("ascii", description="Report format.")

    @field_validator("policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        return [ext.lower() if ext.startswith(".") else "." + ext.lower() for ext in v]

    @field_validator("key_wrappers")
    @classmethod
    def require_wrappers(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("at least one key wrapper is required")
        return v

    @field_validator("report")
    @classmethod
    def validate_report(cls, v: str) -> str:
        formats = ("ascii", "json", "markdown", "junit")
        if v not in formats:
            raise ValueError(f"report must be one of {', '.join(formats)}")
        return v

    @property
    def grace_period(self) -> timedelta:
        return timedelta(days=self.grace_period_days)

    @property
    def cache_max_age(self) -> timedelta:
        return timedelta(hours=self.cache_max_age_hours)

    def resolve_path(self, value: Optional[Path], base: Path) -> Optional[Path]:
        """Resolve a configured path relative to ``base`` (usually the config file's directory)."""
        if value is None:
            return None
        return value if value.is_absolute() else (base / value)

    def merge_with(self, **overrides: Any) -> "KeycheckConfig":
        """
        Return a copy with overrides applied.

        ``None`` values are ignored, so unset command line options keep the
        file's values.
        """
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return KeycheckConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(format_validation_error(e)) from e


def format_validation_error(error: ValidationError, source: str = "configuration") -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        problems.append(f"{location}: {item['msg']}")
    return f"Invalid {source}: " + "; ".join(problems)
