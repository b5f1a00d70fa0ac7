from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from conftest import pom_text
from plugincompat.errors import SourcesUnavailableError
from plugincompat.extractors import (
    LegacyMultimoduleExtractor,
    ManifestMetadataExtractor,
    MetadataExtractionChain,
    PluginMetadataExtractor,
    SingleModuleExtractor,
    extract_local_checkout_metadata,
    git_url_from_connection,
)
from plugincompat.models import PluginMetadata, ProjectDescriptor, ProjectModel


def _descriptor(
    plugin_id: str,
    *,
    connection: Optional[str] = "scm:git:https://github.com/jenkinsci/demo-plugin.git",
    tag: Optional[str] = "demo-1.0",
    group_id: str = "org.jenkins-ci.plugins",
    **manifest: str,
) -> ProjectDescriptor:
    model = ProjectModel(
        artifact_id=plugin_id,
        group_id=group_id,
        version="1.0",
        name=f"{plugin_id} name",
        packaging="hpi",
        scm_connection=connection,
        scm_tag=tag,
    )
    return ProjectDescriptor(plugin_id, "1.0", {k.replace("_", "-"): v for k, v in manifest.items()}, model)


class Recording(PluginMetadataExtractor):
    priority = 50

    def __init__(self) -> None:
        self.calls = 0

    def extract_metadata(self, descriptor: ProjectDescriptor) -> Optional[PluginMetadata]:
        self.calls += 1
        return None


def test_git_connection_prefix_is_stripped() -> None:
    assert git_url_from_connection("scm:git:git@github.com:a/b.git") == "git@github.com:a/b.git"


@pytest.mark.parametrize("connection", ["scm:svn:https://svn.example.com/repo", None])
def test_non_git_scm_is_rejected(connection: Optional[str]) -> None:
    with pytest.raises(SourcesUnavailableError):
        SingleModuleExtractor().extract_metadata(_descriptor("demo", connection=connection))


def test_single_module_plugin() -> None:
    metadata = SingleModuleExtractor().extract_metadata(_descriptor("demo"))
    assert metadata == PluginMetadata(
        plugin_id="demo",
        name="demo name",
        version="1.0",
        git_commit="demo-1.0",
        scm_url="https://github.com/jenkinsci/demo-plugin.git",
        module_path=None,
    )


def test_single_module_without_commit_is_skipped() -> None:
    assert SingleModuleExtractor().extract_metadata(_descriptor("demo", tag=None)) is None


def test_manifest_extractor_uses_recorded_coordinates() -> None:
    descriptor = _descriptor(
        "pipeline-model-api",
        connection=None,
        Plugin_ScmConnection="scm:git:https://github.com/jenkinsci/pipeline-model-definition-plugin",
        Plugin_GitHash="0123abcd",
        Plugin_Module="pipeline-model-api",
    )
    metadata = ManifestMetadataExtractor().extract_metadata(descriptor)
    assert metadata.git_commit == "0123abcd"
    assert metadata.module_path == "pipeline-model-api"
    assert metadata.scm_url == "https://github.com/jenkinsci/pipeline-model-definition-plugin"


def test_manifest_extractor_ignores_older_manifests() -> None:
    assert ManifestMetadataExtractor().extract_metadata(_descriptor("demo")) is None


@pytest.mark.parametrize(
    "plugin_id, group_id, module_path",
    [
        ("pipeline-rest-api", "org.jenkins-ci.plugins.pipeline-stage-view", "rest-api"),
        ("pipeline-stage-view", "org.jenkins-ci.plugins.pipeline-stage-view", "ui"),
        ("warnings-ng", "io.jenkins.plugins", "plugin"),
        ("blueocean-rest", "io.jenkins.blueocean", "blueocean-rest"),
        ("pipeline-model-definition", "org.jenkinsci.plugins", "pipeline-model-definition"),
    ],
)
def test_legacy_multimodule_table(plugin_id: str, group_id: str, module_path: str) -> None:
    metadata = LegacyMultimoduleExtractor().extract_metadata(_descriptor(plugin_id, group_id=group_id))
    assert metadata is not None
    assert metadata.module_path == module_path


def test_legacy_multimodule_ignores_unknown_plugins() -> None:
    assert LegacyMultimoduleExtractor().extract_metadata(_descriptor("demo")) is None


def test_chain_stops_at_first_result() -> None:
    recording = Recording()
    chain = MetadataExtractionChain(
        [SingleModuleExtractor(), LegacyMultimoduleExtractor(), recording, ManifestMetadataExtractor()]
    )
    assert [type(e).__name__ for e in chain.extractors] == [
        "ManifestMetadataExtractor",
        "Recording",
        "LegacyMultimoduleExtractor",
        "SingleModuleExtractor",
    ]

    metadata = chain.extract(_descriptor("swarm"))
    assert metadata.module_path == "plugin"
    assert recording.calls == 1


def test_chain_without_result_excludes_plugin() -> None:
    chain = MetadataExtractionChain([Recording(), LegacyMultimoduleExtractor()])
    assert chain.extract(_descriptor("demo")) is None


def test_local_checkout_lists_plugin_modules(tmp_path: Path) -> None:
    connection = "scm:git:https://github.com/jenkinsci/multi-plugin.git"
    (tmp_path / "pom.xml").write_text(
        pom_text("multi-parent", connection=connection, packaging="pom", version="2.0", modules=["api", "plugin"])
    )
    for module, packaging in (("api", "jar"), ("plugin", "hpi")):
        (tmp_path / module).mkdir()
        (tmp_path / module / "pom.xml").write_text(
            pom_text(f"multi-{module}", connection=connection, packaging=packaging, version="2.0")
        )

    plugins = extract_local_checkout_metadata(tmp_path)
    assert [(p.plugin_id, p.module_path, p.git_commit) for p in plugins] == [
        ("multi-plugin", "plugin", "HEAD"),
    ]
    assert plugins[0].scm_url == "https://github.com/jenkinsci/multi-plugin.git"
