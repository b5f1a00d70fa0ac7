from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

from .errors import ConfigError


def _string_set(value: Any, key: str) -> Set[str]:
    if value is None:
        return set()
    if isinstance(value, str):
        return {part.strip() for part in value.split(",") if part.strip()}
    if isinstance(value, (list, tuple, set)):
        return {str(part).strip() for part in value if str(part).strip()}
    raise ConfigError(f"'{key}' must be a list or a comma separated string")


def _string_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(part) for part in value]
    raise ConfigError(f"'{key}' must be a list")


def _optional_path(value: Any) -> Optional[Path]:
    return Path(value) if value else None


@dataclass
class RunConfig:
    """Settings of one compatibility test run."""

    war: Path
    working_dir: Path
    include_plugins: Set[str] = field(default_factory=set)
    exclude_plugins: Set[str] = field(default_factory=set)
    fail_fast: bool = True
    fallback_github_organization: Optional[str] = None
    build_properties: Dict[str, str] = field(default_factory=dict)
    external_maven: str = "mvn"
    maven_settings: Optional[Path] = None
    maven_args: List[str] = field(default_factory=list)
    extension_locations: List[str] = field(default_factory=list)
    exclude_hooks: Set[str] = field(default_factory=set)
    local_checkout_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        self.war = Path(self.war)
        self.working_dir = Path(self.working_dir)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        for key in ("war", "working_dir"):
            if not data.get(key):
                raise ConfigError(f"Configuration must define '{key}'")
        properties = data.get("build_properties") or {}
        if not isinstance(properties, dict):
            raise ConfigError("'build_properties' must be a mapping")
        return cls(
            war=Path(data["war"]),
            working_dir=Path(data["working_dir"]),
            include_plugins=_string_set(data.get("include_plugins"), "include_plugins"),
            exclude_plugins=_string_set(data.get("exclude_plugins"), "exclude_plugins"),
            fail_fast=bool(data.get("fail_fast", True)),
            fallback_github_organization=data.get("fallback_github_organization") or None,
            build_properties={str(k): str(v) for k, v in properties.items()},
            external_maven=str(data.get("external_maven") or "mvn"),
            maven_settings=_optional_path(data.get("maven_settings")),
            maven_args=_string_list(data.get("maven_args"), "maven_args"),
            extension_locations=_string_list(data.get("extension_locations"), "extension_locations"),
            exclude_hooks=_string_set(data.get("exclude_hooks"), "exclude_hooks"),
            local_checkout_dir=_optional_path(data.get("local_checkout_dir")),
        )

    @classmethod
    def from_file(cls, path: str | Path, **overrides: Any) -> "RunConfig":
        """Load a JSON or YAML configuration file; ``overrides`` replace file values."""

        raw_text = Path(path).read_text()
        try:
            raw_data = json.loads(raw_text)
        except json.JSONDecodeError:
            try:
                raw_data = yaml.safe_load(raw_text)
            except yaml.YAMLError as exc:
                raise ConfigError(f"Cannot parse configuration file {path}: {exc}") from exc

        if raw_data is None:
            raw_data = {}
        if not isinstance(raw_data, dict):
            raise ConfigError("Configuration file must contain a mapping")
        raw_data.update({key: value for key, value in overrides.items() if value is not None})
        return cls.from_dict(raw_data)

    def local_checkout_provided(self) -> bool:
        return self.local_checkout_dir is not None and self.local_checkout_dir.exists()
