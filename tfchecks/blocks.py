"""Read-only block/module model that custom checks are evaluated against."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

LINE_KEY = "__line__"
END_LINE_KEY = "__end_line__"
TAG_ATTRIBUTES = ("tags", "tags_all")
# block types whose first label names the resource type
TYPED_BLOCKS = ("resource", "data")


@dataclass(frozen=True)
class Location:
    filename: str
    start_line: int = 0
    end_line: int = 0

    def __str__(self) -> str:
        if not self.start_line:
            return self.filename
        if self.end_line and self.end_line != self.start_line:
            return f"{self.filename}:{self.start_line}-{self.end_line}"
        return f"{self.filename}:{self.start_line}"


@dataclass(frozen=True)
class Block:
    """One declared configuration element: type, labels, attributes and nested blocks.

    ``body`` is the decoded mapping of the element. Mapping values (or lists of
    mappings) inside the body are reachable both as attributes, through dotted
    paths, and as nested blocks typed by their key.
    """

    type: str
    labels: Tuple[str, ...] = ()
    body: Dict[str, Any] = field(default_factory=dict)
    location: Location = field(default_factory=lambda: Location("<memory>"))
    module_path: Tuple[str, ...] = ()

    @property
    def type_label(self) -> Optional[str]:
        return self.labels[0] if self.labels else None

    @property
    def name_label(self) -> Optional[str]:
        return self.labels[-1] if self.labels else None

    @property
    def in_module(self) -> bool:
        return bool(self.module_path)

    @property
    def address(self) -> str:
        if self.type == "resource":
            local = ".".join(self.labels)
        else:
            local = ".".join((self.type,) + self.labels)
        prefix = "".join(f"module.{name}." for name in self.module_path)
        return f"{prefix}{local}"

    def matches_type(self, name: str) -> bool:
        if self.type in TYPED_BLOCKS:
            return self.type_label == name
        return self.type == name

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------
    def attribute(self, path: str) -> Any:
        """Resolve a dotted attribute path, returning ``None`` when it is absent."""

        current: Any = self.body
        for part in path.split("."):
            if isinstance(current, list):
                if part.isdigit():
                    index = int(part)
                    if index >= len(current):
                        return None
                    current = current[index]
                    continue
                # implicit first element for repeated nested blocks
                if not current:
                    return None
                current = current[0]
            if not isinstance(current, dict) or part.startswith("__") or part not in current:
                return None
            current = current[part]
        return _strip_markers(current)

    def has_attribute(self, path: str) -> bool:
        return self.attribute(path) is not None

    def has_child(self, name: str) -> bool:
        return self.has_attribute(name) or bool(self.child_blocks(name))

    def has_tag(self, key: str) -> bool:
        for attr in TAG_ATTRIBUTES:
            tags = self.attribute(attr)
            if isinstance(tags, dict) and key in tags:
                return True
        return False

    def tag(self, key: str) -> Any:
        for attr in TAG_ATTRIBUTES:
            tags = self.attribute(attr)
            if isinstance(tags, dict) and key in tags:
                return tags[key]
        return None

    # ------------------------------------------------------------------
    # Nested blocks
    # ------------------------------------------------------------------
    def child_blocks(self, name: Optional[str] = None) -> List["Block"]:
        children: List[Block] = []
        for key, value in self.body.items():
            if key.startswith("__") or (name is not None and key != name):
                continue
            for item in value if isinstance(value, list) else [value]:
                if isinstance(item, dict):
                    children.append(self._nested(key, item))
        return children

    def _nested(self, key: str, body: Dict[str, Any]) -> "Block":
        location = Location(
            self.location.filename,
            body.get(LINE_KEY, self.location.start_line),
            body.get(END_LINE_KEY, self.location.end_line),
        )
        return Block(type=key, body=body, location=location, module_path=self.module_path)


@dataclass(frozen=True)
class Module:
    """Blocks declared by one configuration directory."""

    path: str
    blocks: Tuple[Block, ...] = ()


class Modules(Sequence[Module]):
    """All modules of one scan, in scan order."""

    def __init__(self, modules: Sequence[Module] = ()) -> None:
        self._modules = tuple(modules)

    def __getitem__(self, index):  # type: ignore[override]
        return self._modules[index]

    def __len__(self) -> int:
        return len(self._modules)

    def blocks(self) -> Iterator[Block]:
        for module in self._modules:
            yield from module.blocks

    def blocks_by_type(self, name: str) -> List[Block]:
        return [block for block in self.blocks() if block.matches_type(name)]

    @classmethod
    def of(cls, *blocks: Block) -> "Modules":
        """Wrap loose blocks in a single root module."""

        return cls([Module(path=".", blocks=tuple(blocks))])


def _strip_markers(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _strip_markers(item) for key, item in value.items() if not key.startswith("__")}
    if isinstance(value, list):
        return [_strip_markers(item) for item in value]
    return value
