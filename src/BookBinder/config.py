from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from .errors import ConfigError
from .styled_text import DEFAULT_PARAGRAPH_DELIMITER


@dataclass(frozen=True)
class BindSettings:
    paragraph_delimiter: str = DEFAULT_PARAGRAPH_DELIMITER
    blank_lines: bool = False


_FIELD_TYPES = {"paragraph_delimiter": str, "blank_lines": bool}


def parse_settings(text: str) -> BindSettings:
    """Parse a YAML settings document; an empty document yields the defaults."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ConfigError("YAML root must be a mapping with defined fields.")

    known = {f.name for f in fields(BindSettings)}
    # YAML keys are not necessarily strings
    unknown = sorted(map(str, set(data) - known))
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(unknown)}")

    for key, value in data.items():
        expected = _FIELD_TYPES[key]
        if not isinstance(value, expected):
            raise ConfigError(f"Setting '{key}' must be of type {expected.__name__}, got {value!r}")
    return BindSettings(**data)


def load_settings(path: Path | None) -> BindSettings:
    if path is None:
        return BindSettings()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read settings file {path}") from exc
    try:
        return parse_settings(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed settings file {path}") from exc
