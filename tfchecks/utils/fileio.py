"""Basic file IO helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from tfchecks.blocks import END_LINE_KEY, LINE_KEY


class LineNumberLoader(yaml.SafeLoader):
    """YAML loader that records the source lines of every mapping."""


def _construct_mapping(loader: LineNumberLoader, node: yaml.MappingNode) -> Any:
    mapping = loader.construct_mapping(node, deep=True)
    mapping[LINE_KEY] = node.start_mark.line + 1
    mapping[END_LINE_KEY] = node.end_mark.line + 1
    return mapping


LineNumberLoader.add_constructor(yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_mapping)


def read_yaml_file(path: Path, track_lines: bool = False) -> Any:
    """Return the parsed YAML (or JSON) if the file exists, otherwise ``None``."""

    if not path.exists():
        return None
    loader = LineNumberLoader if track_lines else yaml.SafeLoader
    with path.open("r", encoding="utf-8") as handle:
        return yaml.load(handle, Loader=loader)


def read_text_file(path: Path) -> str:
    """Return the file contents as UTF-8 text, or an empty string if missing."""

    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8")
