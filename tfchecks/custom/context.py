"""Per-evaluation variable bindings."""

from __future__ import annotations

from typing import Any, Dict, Optional

from tfchecks.blocks import Modules


class EvaluationContext:
    """Mutable variable environment threaded through one match spec evaluation.

    A fresh context is created for every (check, block) pair and never shared
    between evaluations. Bindings are only ever added or overwritten, never
    removed. ``modules`` gives ``requiresPresence`` read access to every block
    of the scan.
    """

    def __init__(self, modules: Optional[Modules] = None) -> None:
        self.modules = modules if modules is not None else Modules()
        self._variables: Dict[str, Any] = {}

    def bind(self, name: str, value: Any) -> None:
        self._variables[name] = value

    def resolve(self, value: Any) -> Any:
        """Substitute ``value`` with its binding when it names a bound variable verbatim."""

        if isinstance(value, str) and value in self._variables:
            return self._variables[value]
        return value

    def __contains__(self, name: object) -> bool:
        return name in self._variables

    @property
    def variables(self) -> Dict[str, Any]:
        return dict(self._variables)
