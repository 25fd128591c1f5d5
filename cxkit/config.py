"""Loading of the per-project ``.cx/cx.yaml`` configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

__all__ = ["ConfigError", "Config", "load"]

_KNOWN_KEYS = frozenset({"schema", "context", "rules"})


class ConfigError(ValueError):
    """Raised when cx.yaml cannot be read or is malformed."""


@dataclass
class Config:
    schema: str = ""
    context: str = ""
    rules: dict[str, list[str]] = field(default_factory=dict)


def _as_text(key: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    raise ConfigError(f"parsing cx.yaml: {key!r} must be a string")


def _as_rules(value: Any) -> dict[str, list[str]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError("parsing cx.yaml: 'rules' must be a mapping")
    rules: dict[str, list[str]] = {}
    for artifact, items in value.items():
        if not isinstance(artifact, str):
            raise ConfigError("parsing cx.yaml: rule keys must be strings")
        if items is None:
            rules[artifact] = []
            continue
        if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
            raise ConfigError(f"parsing cx.yaml: rules for {artifact!r} must be a list of strings")
        rules[artifact] = list(items)
    return rules


def load(root_dir: str | Path) -> Config:
    """Read ``.cx/cx.yaml`` under *root_dir*; an absent file yields an empty Config."""
    path = Path(root_dir) / ".cx" / "cx.yaml"
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Config()
    except OSError as exc:
        raise ConfigError(f"reading cx.yaml: {exc}") from exc

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"parsing cx.yaml: {exc}") from exc

    if raw is None:
        return Config()
    if not isinstance(raw, dict):
        raise ConfigError("parsing cx.yaml: top level must be a mapping")

    for key in raw:
        if key not in _KNOWN_KEYS:
            raise ConfigError(f'cx.yaml: unrecognized key "{key}"')

    return Config(
        schema=_as_text("schema", raw.get("schema")),
        context=_as_text("context", raw.get("context")),
        rules=_as_rules(raw.get("rules")),
    )