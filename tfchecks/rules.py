"""Rule protocol shared by everything that contributes findings to a scan."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from tfchecks.blocks import Modules
from tfchecks.result import ScanResult


class Rule(Protocol):
    """Protocol implemented by all rule evaluators."""

    name: str

    def scan(self, context: "ScanContext", result: ScanResult) -> None:
        """Analyze the provided context and append findings to ``result``."""


@dataclass
class ScanContext:
    """Bundle inputs shared across rules."""

    modules: Modules
    target: str = "."
