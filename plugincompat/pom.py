from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from .models import ProjectModel


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if element is None:
        return None
    for child in element:
        if isinstance(child.tag, str) and _local(child.tag) == name:
            return child
    return None


def _text(element: Optional[ET.Element], *path: str) -> Optional[str]:
    for name in path:
        element = _child(element, name)
    if element is None or element.text is None:
        return None
    return element.text.strip() or None


def parse_pom(data: bytes | str) -> ProjectModel:
    """Build a ProjectModel from the XML text of a POM, with or without namespace."""

    root = ET.fromstring(data)
    artifact_id = _text(root, "artifactId")
    if artifact_id is None:
        raise ValueError("POM does not declare an artifactId")
    modules_element = _child(root, "modules")
    modules = []
    if modules_element is not None:
        modules = [
            module.text.strip()
            for module in modules_element
            if isinstance(module.tag, str) and _local(module.tag) == "module" and module.text
        ]
    return ProjectModel(
        artifact_id=artifact_id,
        group_id=_text(root, "groupId") or _text(root, "parent", "groupId"),
        version=_text(root, "version") or _text(root, "parent", "version"),
        name=_text(root, "name"),
        packaging=_text(root, "packaging") or "jar",
        scm_connection=_text(root, "scm", "connection"),
        scm_tag=_text(root, "scm", "tag"),
        modules=modules,
    )


def read_pom(path: str | Path) -> ProjectModel:
    return parse_pom(Path(path).read_bytes())
