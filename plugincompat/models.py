from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class PluginMetadata:
    """Everything needed to check out and build one plugin."""

    plugin_id: str
    name: str
    version: str
    git_commit: str
    scm_url: Optional[str] = None
    module_path: Optional[str] = None

    def to_builder(self) -> "PluginMetadata.Builder":
        return PluginMetadata.Builder(**dataclasses.asdict(self))

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    class Builder:
        """Collects fields one at a time as extractors and hooks learn them."""

        def __init__(self, **fields: Any) -> None:
            self._fields: Dict[str, Any] = dict(fields)

        def with_plugin_id(self, plugin_id: str) -> "PluginMetadata.Builder":
            self._fields["plugin_id"] = plugin_id
            return self

        def with_name(self, name: Optional[str]) -> "PluginMetadata.Builder":
            self._fields["name"] = name
            return self

        def with_version(self, version: str) -> "PluginMetadata.Builder":
            self._fields["version"] = version
            return self

        def with_git_commit(self, git_commit: str) -> "PluginMetadata.Builder":
            self._fields["git_commit"] = git_commit
            return self

        def with_scm_url(self, scm_url: Optional[str]) -> "PluginMetadata.Builder":
            self._fields["scm_url"] = scm_url
            return self

        def with_module_path(self, module_path: Optional[str]) -> "PluginMetadata.Builder":
            self._fields["module_path"] = module_path
            return self

        def build(self) -> "PluginMetadata":
            missing = [
                name
                for name in ("plugin_id", "version", "git_commit")
                if not self._fields.get(name)
            ]
            if missing:
                raise ValueError(f"PluginMetadata is missing required fields: {', '.join(missing)}")
            fields = dict(self._fields)
            if not fields.get("name"):
                fields["name"] = fields["plugin_id"]
            return PluginMetadata(**fields)


@dataclass(frozen=True)
class CoreEntry:
    version: str


@dataclass(frozen=True)
class PluginEntry:
    """A plugin bundled inside a scanned archive."""

    short_name: str
    version: str
    url: str
    long_name: Optional[str] = None
    descriptor: Optional["ProjectDescriptor"] = None


@dataclass(frozen=True)
class ScannedArchive:
    core: CoreEntry
    plugins: List[PluginEntry] = field(default_factory=list)

    @property
    def core_version(self) -> str:
        return self.core.version


@dataclass(frozen=True)
class ProjectModel:
    """The parts of a Maven project model the extractors look at."""

    artifact_id: str
    group_id: Optional[str] = None
    version: Optional[str] = None
    name: Optional[str] = None
    packaging: str = "jar"
    scm_connection: Optional[str] = None
    scm_tag: Optional[str] = None
    modules: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProjectDescriptor:
    """Build inputs of one bundled plugin: its manifest and its project model."""

    plugin_id: str
    version: str
    manifest: Mapping[str, str]
    model: ProjectModel
