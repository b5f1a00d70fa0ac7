"""Pluggable derivation of PluginMetadata from a bundled plugin's descriptor."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional

from .errors import SourcesUnavailableError
from .models import PluginMetadata, ProjectDescriptor, ProjectModel
from .ordering import sort_by_priority
from .pom import read_pom

logger = logging.getLogger(__name__)

GIT_SCM_PREFIX = "scm:git:"
PLUGIN_PACKAGINGS = frozenset({"hpi", "jpi"})


def git_url_from_connection(connection: Optional[str]) -> str:
    """Strip the ``scm:git:`` prefix from an SCM connection; git is the only supported SCM."""

    if connection and connection.startswith(GIT_SCM_PREFIX):
        return connection[len(GIT_SCM_PREFIX):]
    raise SourcesUnavailableError(
        f"SCM URL {connection} is not supported by the tester - only git urls are allowed"
    )


class PluginMetadataExtractor:
    """Derives the buildable unit of a plugin, or returns None if it does not apply."""

    priority = 0

    def extract_metadata(self, descriptor: ProjectDescriptor) -> Optional[PluginMetadata]:
        raise NotImplementedError

    def _has_commit(self, descriptor: ProjectDescriptor) -> bool:
        if descriptor.manifest.get("Plugin-GitHash") or descriptor.model.scm_tag:
            return True
        logger.warning("No commit recorded for %s; skipping", descriptor.plugin_id)
        return False

    def _builder(self, descriptor: ProjectDescriptor, scm_url: str) -> PluginMetadata.Builder:
        model = descriptor.model
        return (
            PluginMetadata.Builder()
            .with_plugin_id(descriptor.plugin_id)
            .with_name(model.name or descriptor.manifest.get("Long-Name"))
            .with_version(descriptor.version)
            .with_scm_url(scm_url)
            .with_git_commit(descriptor.manifest.get("Plugin-GitHash") or model.scm_tag)
        )


class ManifestMetadataExtractor(PluginMetadataExtractor):
    """Reads the SCM coordinates that current plugin builds record in the manifest."""

    priority = 100

    def extract_metadata(self, descriptor: ProjectDescriptor) -> Optional[PluginMetadata]:
        manifest = descriptor.manifest
        connection = manifest.get("Plugin-ScmConnection")
        commit = manifest.get("Plugin-GitHash") or manifest.get("Plugin-ScmTag")
        if not connection or not commit:
            return None
        return (
            self._builder(descriptor, git_url_from_connection(connection))
            .with_git_commit(commit)
            .with_module_path(manifest.get("Plugin-Module") or None)
            .build()
        )


class LegacyMultimoduleExtractor(PluginMetadataExtractor):
    """Known multi-module repositories whose layout cannot be inferred.

    This is a data-quality workaround for plugins built before their manifest
    recorded the module they come from. Entries can be dropped once those
    plugins publish ``Plugin-Module``.
    """

    priority = -500

    GROUP_IDS_WITH_NAME_AS_MODULE: FrozenSet[str] = frozenset(
        {"io.jenkins.blueocean", "io.jenkins.plugins.mina-sshd-api"}
    )
    MODULE_OVERRIDES: Dict[str, str] = {
        # https://github.com/jenkinsci/pipeline-model-definition-plugin
        "pipeline-model-api": "pipeline-model-api",
        "pipeline-model-definition": "pipeline-model-definition",
        "pipeline-model-extensions": "pipeline-model-extensions",
        "pipeline-stage-tags-metadata": "pipeline-stage-tags-metadata",
        # https://github.com/jenkinsci/declarative-pipeline-migration-assistant-plugin
        "declarative-pipeline-migration-assistant": "declarative-pipeline-migration-assistant",
        "declarative-pipeline-migration-assistant-api": "declarative-pipeline-migration-assistant-api",
        # https://github.com/jenkinsci/pipeline-stage-view-plugin
        "pipeline-rest-api": "rest-api",
        "pipeline-stage-view": "ui",
        "swarm": "plugin",
        "warnings-ng": "plugin",
        "workflow-cps": "plugin",
    }

    def extract_metadata(self, descriptor: ProjectDescriptor) -> Optional[PluginMetadata]:
        plugin_id = descriptor.plugin_id
        group_id = descriptor.manifest.get("Group-Id") or descriptor.model.group_id
        if group_id in self.GROUP_IDS_WITH_NAME_AS_MODULE:
            module_path = plugin_id
        else:
            module_path = self.MODULE_OVERRIDES.get(plugin_id)
        if module_path is None:
            return None
        if not self._has_commit(descriptor):
            return None
        scm_url = git_url_from_connection(descriptor.model.scm_connection)
        return self._builder(descriptor, scm_url).with_module_path(module_path).build()


class SingleModuleExtractor(PluginMetadataExtractor):
    """Plugins whose project sits at the root of its repository."""

    priority = -1000

    def extract_metadata(self, descriptor: ProjectDescriptor) -> Optional[PluginMetadata]:
        scm_url = git_url_from_connection(descriptor.model.scm_connection)
        if not self._has_commit(descriptor):
            return None
        return self._builder(descriptor, scm_url).build()


BUILTIN_EXTRACTORS = (ManifestMetadataExtractor, LegacyMultimoduleExtractor, SingleModuleExtractor)


class MetadataExtractionChain:
    """Tries extractors highest priority first and keeps the first answer."""

    def __init__(self, extractors: Iterable[PluginMetadataExtractor]) -> None:
        self.extractors = sort_by_priority(extractors)

    def extract(self, descriptor: ProjectDescriptor) -> Optional[PluginMetadata]:
        for extractor in self.extractors:
            metadata = extractor.extract_metadata(descriptor)
            if metadata is not None:
                logger.debug(
                    "Metadata for %s extracted by %s", descriptor.plugin_id, type(extractor).__name__
                )
                return metadata
        logger.info("No extractor could describe %s; it will not be tested", descriptor.plugin_id)
        return None


def _collect_plugin_models(root: Path, relative: Optional[str], found: List[tuple]) -> None:
    pom_path = root / relative / "pom.xml" if relative else root / "pom.xml"
    model = read_pom(pom_path)
    if model.packaging in PLUGIN_PACKAGINGS:
        found.append((relative, model))
    for module in model.modules:
        child = f"{relative}/{module}" if relative else module
        _collect_plugin_models(root, child, found)


def extract_local_checkout_metadata(directory: str | Path) -> List[PluginMetadata]:
    """Describe every plugin module of an existing checkout.

    The checkout is built as found, so the commit is always ``HEAD`` and no
    clone takes place.
    """

    root = Path(directory)
    root_model: ProjectModel = read_pom(root / "pom.xml")
    scm_url = git_url_from_connection(root_model.scm_connection)
    found: List[tuple] = []
    _collect_plugin_models(root, None, found)
    results = []
    for module_path, model in found:
        version = model.version or root_model.version
        if version is None:
            raise SourcesUnavailableError(f"No version declared for {model.artifact_id} in {root}")
        results.append(
            PluginMetadata.Builder()
            .with_plugin_id(model.artifact_id)
            .with_name(model.name)
            .with_version(version)
            .with_scm_url(scm_url)
            .with_git_commit("HEAD")
            .with_module_path(module_path)
            .build()
        )
    return results
