"""Infrastructure-as-code helpers: Terraform JSON syntax into blocks."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from tfchecks.blocks import END_LINE_KEY, LINE_KEY, Block, Location, Module, Modules
from tfchecks.errors import ConfigError

from .fileio import read_text_file, read_yaml_file

logger = logging.getLogger(__name__)

TERRAFORM_JSON_SUFFIX = ".tf.json"

# number of labels carried by each top-level block type
LABEL_DEPTH = {
    "resource": 2,
    "data": 2,
    "module": 1,
    "variable": 1,
    "output": 1,
    "provider": 1,
    "locals": 0,
    "terraform": 0,
}


def load_template(path: Path) -> Dict[str, Any] | None:
    """Load one Terraform JSON file into a dictionary with line markers."""

    try:
        data = read_yaml_file(path, track_lines=True)
    except yaml.YAMLError:
        # tab-indented JSON is not valid YAML; fall back without line numbers
        try:
            data = json.loads(read_text_file(path))
        except ValueError as exc:
            raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigError(f"Template at {path} is not a mapping")
    return data


def blocks_from_template(
    template: Dict[str, Any],
    filename: str,
    module_path: Tuple[str, ...] = (),
) -> List[Block]:
    """Flatten a Terraform JSON document into top-level blocks, in document order."""

    blocks: List[Block] = []
    for block_type, content in template.items():
        if block_type.startswith("__"):
            continue
        depth = LABEL_DEPTH.get(block_type)
        if depth is None:
            logger.debug("Skipping unknown top-level key %s in %s", block_type, filename)
            continue
        for labels, body in _walk_labels(content, depth):
            location = Location(filename, body.get(LINE_KEY, 0), body.get(END_LINE_KEY, 0))
            blocks.append(
                Block(type=block_type, labels=labels, body=body, location=location, module_path=module_path)
            )
    return blocks


def _walk_labels(content: Any, depth: int, labels: Tuple[str, ...] = ()):
    if depth == 0:
        for body in content if isinstance(content, list) else [content]:
            if isinstance(body, dict):
                yield labels, body
        return
    if isinstance(content, list):
        for item in content:
            yield from _walk_labels(item, depth, labels)
        return
    if not isinstance(content, dict):
        return
    for key, value in content.items():
        if key.startswith("__"):
            continue
        yield from _walk_labels(value, depth - 1, labels + (key,))


def load_module(directory: Path, module_path: Tuple[str, ...] = ()) -> Module:
    """Load every ``*.tf.json`` file directly inside ``directory``."""

    blocks: List[Block] = []
    for path in sorted(directory.glob(f"*{TERRAFORM_JSON_SUFFIX}")):
        if not path.is_file():
            continue
        template = load_template(path)
        if template is None:
            continue
        blocks.extend(blocks_from_template(template, str(path), module_path))
    logger.debug("Loaded %d blocks from %s", len(blocks), directory)
    return Module(path=str(directory), blocks=tuple(blocks))


def load_modules(root: Path) -> Modules:
    """Load the root module and any local child modules it references."""

    if not root.is_dir():
        raise ConfigError(f"Scan target is not a directory: {root}")
    modules = [load_module(root)]
    _load_children(root, modules[0], (), modules, {root.resolve()})
    return Modules(modules)


def _load_children(
    directory: Path,
    module: Module,
    module_path: Tuple[str, ...],
    modules: List[Module],
    seen: set,
) -> None:
    for block in module.blocks:
        if block.type != "module" or not block.labels:
            continue
        source = block.attribute("source")
        if not isinstance(source, str) or not source.startswith(("./", "../")):
            continue
        child_dir = (directory / source).resolve()
        if child_dir in seen or not child_dir.is_dir():
            continue
        seen.add(child_dir)
        child_path = module_path + (block.labels[0],)
        child = load_module(child_dir, child_path)
        modules.append(child)
        _load_children(child_dir, child, child_path, modules, seen)
