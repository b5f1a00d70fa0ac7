"""Single-pass scanning of a core distribution archive (WAR)."""

from __future__ import annotations

import io
import logging
import re
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import StructuralError
from .manifest import MANIFEST_PATH, parse_manifest
from .models import CoreEntry, PluginEntry, ProjectDescriptor, ScannedArchive
from .pom import parse_pom

logger = logging.getLogger(__name__)

CORE_ENTRY_PATTERN = re.compile(
    r"WEB-INF/lib/jenkins-core-"
    r"([0-9.]+(?:-[0-9a-f.]+)*"
    r"(?:-(?i:([a-z]+)(-)?([0-9a-f.]+)?))?"
    r"(?:-(?i:([a-z]+)(-)?([0-9a-f_.]+)?))?"
    r"(?:-SNAPSHOT)?)[.]jar"
)
PLUGIN_ENTRY_PATTERN = re.compile(r"WEB-INF/(?:optional-)?plugins/([^/.]+)[.][hj]pi")
DETACHED_PLUGIN_ENTRY_PATTERN = re.compile(r"WEB-INF/detached-plugins/([^/.]+)[.][hj]pi")

_SNAPSHOT_QUALIFIER = re.compile(r"^(.+-SNAPSHOT)(.+)$")
_EMBEDDED_POM = re.compile(r"META-INF/maven/([^/]+)/([^/]+)/pom\.xml")


def normalize_version(version: str) -> str:
    """Drop any build qualifier that follows ``-SNAPSHOT``, keeping the marker."""

    match = _SNAPSHOT_QUALIFIER.match(version)
    if match:
        return match.group(1)
    return version


@contextmanager
def _open_archive(path: Path) -> Iterator[zipfile.ZipFile]:
    try:
        with zipfile.ZipFile(path) as archive:
            yield archive
    except (OSError, zipfile.BadZipFile) as exc:
        raise StructuralError(f"Unable to read {path}: {exc}") from exc


def _read_plugin(
    archive: zipfile.ZipFile, entry_name: str, match: re.Match[str]
) -> Tuple[str, str, Dict[str, str], zipfile.ZipFile]:
    nested = zipfile.ZipFile(io.BytesIO(archive.read(entry_name)))
    try:
        manifest = parse_manifest(nested.read(MANIFEST_PATH))
    except (KeyError, ValueError) as exc:
        nested.close()
        raise StructuralError(f"Unreadable manifest in {entry_name}: {exc}") from exc
    short_name = manifest.get("Short-Name") or manifest.get("Extension-Name") or match.group(1)
    version = manifest.get("Plugin-Version")
    if version is None:
        nested.close()
        raise StructuralError(f"No Plugin-Version in the manifest of {entry_name}")
    return short_name, normalize_version(version), manifest, nested


def _embedded_pom(nested: zipfile.ZipFile, plugin_id: str) -> Optional[str]:
    candidates = [name for name in nested.namelist() if _EMBEDDED_POM.fullmatch(name)]
    for name in candidates:
        if _EMBEDDED_POM.fullmatch(name).group(2) == plugin_id:
            return name
    return candidates[0] if candidates else None


def _read_descriptor(
    nested: zipfile.ZipFile, entry_name: str, short_name: str, version: str, manifest: Dict[str, str]
) -> Optional[ProjectDescriptor]:
    pom_name = _embedded_pom(nested, short_name)
    if pom_name is None:
        return None
    try:
        model = parse_pom(nested.read(pom_name))
    except (ValueError, SyntaxError) as exc:
        raise StructuralError(f"Unreadable {pom_name} in {entry_name}: {exc}") from exc
    return ProjectDescriptor(short_name, version, manifest, model)


def scan_archive(path: str | Path, plugin_pattern: re.Pattern[str] = PLUGIN_ENTRY_PATTERN) -> ScannedArchive:
    """Extract the core version and the bundled plugin inventory of an archive.

    ``plugin_pattern`` selects which class of bundled plugin is inventoried; its
    first group is the fallback short name. Each plugin entry carries the
    descriptor built from its manifest and embedded pom.xml, or None when the
    plugin archive has no pom.xml.
    """

    path = Path(path)
    core: Optional[CoreEntry] = None
    plugins: List[PluginEntry] = []
    with _open_archive(path) as archive:
        for entry_name in archive.namelist():
            match = CORE_ENTRY_PATTERN.fullmatch(entry_name)
            if match:
                if core is not None:
                    raise StructuralError(f">1 jenkins-core.jar in {path}")
                core = CoreEntry(match.group(1))

            match = plugin_pattern.fullmatch(entry_name)
            if match:
                short_name, version, manifest, nested = _read_plugin(archive, entry_name, match)
                with nested:
                    descriptor = _read_descriptor(nested, entry_name, short_name, version, manifest)
                url = f"jar:{path.resolve().as_uri()}!/{entry_name}"
                plugins.append(
                    PluginEntry(short_name, version, url, manifest.get("Long-Name"), descriptor)
                )
    if core is None:
        raise StructuralError(f"no jenkins-core.jar in {path}")
    logger.info("Scanned contents of %s with %d plugins", path, len(plugins))
    return ScannedArchive(core, plugins)


def extract_core_version(path: str | Path) -> str:
    return scan_archive(path).core_version


def iter_plugin_descriptors(plugins: Iterable[PluginEntry]) -> Iterator[ProjectDescriptor]:
    """Yield the descriptors of scanned plugins, skipping those without a pom.xml."""

    for plugin in plugins:
        if plugin.descriptor is None:
            logger.warning("No embedded pom.xml in %s; skipping %s", plugin.url, plugin.short_name)
            continue
        yield plugin.descriptor
