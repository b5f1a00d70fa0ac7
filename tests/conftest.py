from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

import pytest

CORE_JAR = "WEB-INF/lib/jenkins-core-2.401.1.jar"


def manifest_text(attributes: Dict[str, str]) -> str:
    lines = ["Manifest-Version: 1.0"]
    lines.extend(f"{key}: {value}" for key, value in attributes.items())
    return "\r\n".join(lines) + "\r\n\r\n"


def pom_text(
    artifact_id: str,
    *,
    connection: Optional[str] = None,
    tag: Optional[str] = "plugin-1.0",
    group_id: str = "org.jenkins-ci.plugins",
    version: str = "1.0",
    name: Optional[str] = None,
    packaging: str = "hpi",
    modules: Iterable[str] = (),
) -> str:
    if connection is None:
        connection = f"scm:git:https://github.com/jenkinsci/{artifact_id}-plugin.git"
    parts = [
        '<project xmlns="http://maven.apache.org/POM/4.0.0">',
        f"<groupId>{group_id}</groupId>",
        f"<artifactId>{artifact_id}</artifactId>",
        f"<version>{version}</version>",
        f"<packaging>{packaging}</packaging>",
    ]
    if name:
        parts.append(f"<name>{name}</name>")
    modules = list(modules)
    if modules:
        parts.append("<modules>" + "".join(f"<module>{m}</module>" for m in modules) + "</modules>")
    scm = f"<connection>{connection}</connection>"
    if tag:
        scm += f"<tag>{tag}</tag>"
    parts.append(f"<scm>{scm}</scm>")
    parts.append("</project>")
    return "\n".join(parts)


def plugin_archive(manifest: Dict[str, str], pom: Optional[str] = None, pom_path: Optional[str] = None) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("META-INF/MANIFEST.MF", manifest_text(manifest))
        if pom is not None:
            archive.writestr(pom_path or "META-INF/maven/org.jenkins-ci.plugins/plugin/pom.xml", pom)
        archive.writestr("WEB-INF/lib/plugin.jar", b"")
    return buffer.getvalue()


def simple_plugin(
    plugin_id: str,
    version: str = "1.0",
    *,
    connection: Optional[str] = None,
    tag: str = "plugin-1.0",
    long_name: Optional[str] = None,
) -> bytes:
    manifest = {"Short-Name": plugin_id, "Plugin-Version": version}
    if long_name:
        manifest["Long-Name"] = long_name
    pom = pom_text(plugin_id, connection=connection, tag=tag, version=version, name=long_name)
    return plugin_archive(
        manifest, pom, f"META-INF/maven/org.jenkins-ci.plugins/{plugin_id}/pom.xml"
    )


WarFactory = Callable[..., Path]


@pytest.fixture
def make_war(tmp_path: Path) -> WarFactory:
    def _make(
        entries: Dict[str, bytes],
        core_jars: Iterable[str] = (CORE_JAR,),
        name: str = "jenkins.war",
    ) -> Path:
        war = tmp_path / name
        with zipfile.ZipFile(war, "w") as archive:
            archive.writestr("META-INF/MANIFEST.MF", manifest_text({}))
            for core_jar in core_jars:
                archive.writestr(core_jar, b"")
            for entry_name, data in entries.items():
                archive.writestr(entry_name, data)
        return war

    return _make
