"""Custom check definitions and the registry that holds them for a scan."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

from tfchecks.blocks import Block
from tfchecks.errors import MalformedRuleDefinition
from tfchecks.severity import Severity

from .matchspec import MatchSpec

MESSAGE_PLACEHOLDERS = ("address", "type", "name")


@dataclass(frozen=True)
class Check:
    """One user-defined rule: applicability filter, match spec and reporting metadata."""

    code: str
    description: str
    required_types: Tuple[str, ...]
    required_labels: Tuple[str, ...]
    severity: Severity
    match_spec: MatchSpec
    error_message: str = ""
    related_links: Tuple[str, ...] = ()
    impact: str = ""
    resolution: str = ""
    source: str = ""

    def applies_to(self, block: Block) -> bool:
        if block.type not in self.required_types:
            return False
        if len(self.required_labels) > len(block.labels):
            return False
        return all(expected == actual for expected, actual in zip(self.required_labels, block.labels))

    def render_message(self, block: Block) -> str:
        values = {
            "address": block.address,
            "type": block.type_label or block.type,
            "name": block.name_label or "",
        }
        message = self.error_message or self.description
        for placeholder in MESSAGE_PLACEHOLDERS:
            message = message.replace("{" + placeholder + "}", values[placeholder])
        return message


class CheckRegistry(Mapping[str, Check]):
    """Read-only, insertion-ordered mapping of check code to check."""

    def __init__(self, checks: Iterable[Check] = ()) -> None:
        registered: Dict[str, Check] = {}
        for check in checks:
            existing = registered.get(check.code)
            if existing is not None:
                raise MalformedRuleDefinition(
                    f"duplicate check code (already defined in {existing.source or '<memory>'})",
                    source=check.source or None,
                    code=check.code,
                )
            registered[check.code] = check
        self._checks = registered

    def __getitem__(self, code: str) -> Check:
        return self._checks[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._checks)

    def __len__(self) -> int:
        return len(self._checks)

    def checks(self) -> Tuple[Check, ...]:
        return tuple(self._checks.values())

    def find(self, code: str) -> Optional[Check]:
        return self._checks.get(code)
