from __future__ import annotations

import re
from typing import Dict

MANIFEST_PATH = "META-INF/MANIFEST.MF"


def parse_manifest(data: bytes | str) -> Dict[str, str]:
    """Parse the main section of a JAR manifest.

    Continuation lines (a single leading space) are joined onto the previous
    header. Parsing stops at the first blank line, which ends the main section.
    """

    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    attributes: Dict[str, str] = {}
    current: str | None = None
    for line in re.split(r"\r\n|\r|\n", text):
        if not line:
            if attributes:
                break
            continue
        if line.startswith(" "):
            if current is None:
                raise ValueError(f"Continuation line without a header: {line!r}")
            attributes[current] += line[1:]
            continue
        name, sep, value = line.partition(":")
        if not sep:
            raise ValueError(f"Malformed manifest header: {line!r}")
        current = name.strip()
        attributes[current] = value[1:] if value.startswith(" ") else value
    return attributes
