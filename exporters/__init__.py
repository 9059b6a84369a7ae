"""Exporters for rendering check outcomes in various output formats."""

from .ascii_exporter import registry_to_ascii, to_ascii
from .json_exporter import to_json
from .markdown_exporter import to_markdown
from .junit_exporter import to_junit

__all__ = ["registry_to_ascii", "to_ascii", "to_json", "to_markdown", "to_junit"]
