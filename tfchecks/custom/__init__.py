"""Declarative custom checks: match spec model, evaluator, loader and runner."""

from .checks import Check, CheckRegistry
from .context import EvaluationContext
from .evaluator import evaluate
from .loader import build_registry, find_checks_files, load_checks, load_checks_file
from .matchspec import Action, MatchSpec
from .runner import CustomCheckRunner

__all__ = [
    "Action",
    "Check",
    "CheckRegistry",
    "CustomCheckRunner",
    "EvaluationContext",
    "MatchSpec",
    "build_registry",
    "evaluate",
    "find_checks_files",
    "load_checks",
    "load_checks_file",
]
