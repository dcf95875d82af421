"""Interpreter that walks a match spec tree against a block."""

from __future__ import annotations

import functools
import logging
import re
from typing import Any, Callable, Dict, List, Optional

from tfchecks.blocks import Block

from .context import EvaluationContext
from .matchspec import Action, MatchSpec

logger = logging.getLogger(__name__)


def evaluate(spec: MatchSpec, block: Block, context: EvaluationContext) -> bool:
    """Return ``True`` when ``block`` satisfies ``spec`` (or ``spec`` does not apply to it).

    Evaluation is a single depth-first, left-to-right walk. ``context`` is
    mutated in place by ``assignVariable`` and is visible to every node
    evaluated afterwards.
    """

    for condition in spec.pre_conditions:
        if not evaluate(condition, block, context):
            logger.debug("Precondition %s not met for %s, skipping", condition.action.value, block.address)
            return True

    handler = _HANDLERS[spec.action]
    return handler(spec, block, context)


# ----------------------------------------------------------------------
# Boolean combinators
# ----------------------------------------------------------------------
def _evaluate_all(spec: MatchSpec, block: Block, context: EvaluationContext) -> List[bool]:
    # every predicate runs so that variable bindings do not depend on earlier verdicts
    return [evaluate(predicate, block, context) for predicate in spec.predicates]


def _and(spec: MatchSpec, block: Block, context: EvaluationContext) -> bool:
    return all(_evaluate_all(spec, block, context))


def _or(spec: MatchSpec, block: Block, context: EvaluationContext) -> bool:
    return any(_evaluate_all(spec, block, context))


def _not(spec: MatchSpec, block: Block, context: EvaluationContext) -> bool:
    if not spec.predicates:
        return False
    return not evaluate(spec.predicates[0], block, context)


# ----------------------------------------------------------------------
# Presence
# ----------------------------------------------------------------------
def _presence(check: Callable[[Block, str], bool]) -> Callable[[MatchSpec, Block, EvaluationContext], bool]:
    def handler(spec: MatchSpec, block: Block, context: EvaluationContext) -> bool:
        if not check(block, spec.name):
            return False
        _assign(spec, block, context)
        if spec.sub_match is None:
            return True
        targets = block.child_blocks(spec.name) or [block]
        verdicts = [evaluate(spec.sub_match, target, context) for target in targets]
        return all(verdicts)

    return handler


def _is_present(block: Block, name: str) -> bool:
    return block.has_child(name)


def _not_present(block: Block, name: str) -> bool:
    return not block.has_child(name)


def _is_empty(block: Block, name: str) -> bool:
    value = block.attribute(name)
    if value is None:
        return True
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    return False


# ----------------------------------------------------------------------
# Comparisons
# ----------------------------------------------------------------------
def _comparison(compare: Callable[[Any, Any], bool]) -> Callable[[MatchSpec, Block, EvaluationContext], bool]:
    def handler(spec: MatchSpec, block: Block, context: EvaluationContext) -> bool:
        actual = block.attribute(spec.name)
        if actual is None:
            return False
        expected = _resolve(spec.match_value, context)
        if not compare(actual, expected):
            return False
        _assign(spec, block, context)
        return True

    return handler


def _resolve(value: Any, context: EvaluationContext) -> Any:
    if isinstance(value, list):
        return [context.resolve(item) for item in value]
    return context.resolve(value)


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    actual_text, expected_text = _as_text(actual), _as_text(expected)
    return actual_text is not None and actual_text == expected_text


def _not_equals(actual: Any, expected: Any) -> bool:
    return not _equals(actual, expected)


def _starts_with(actual: Any, expected: Any) -> bool:
    actual_text, expected_text = _as_text(actual), _as_text(expected)
    return actual_text is not None and expected_text is not None and actual_text.startswith(expected_text)


def _ends_with(actual: Any, expected: Any) -> bool:
    actual_text, expected_text = _as_text(actual), _as_text(expected)
    return actual_text is not None and expected_text is not None and actual_text.endswith(expected_text)


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, list):
        return any(_equals(item, expected) for item in actual)
    if isinstance(actual, dict):
        return isinstance(expected, str) and expected in actual
    actual_text, expected_text = _as_text(actual), _as_text(expected)
    return actual_text is not None and expected_text is not None and expected_text in actual_text


def _not_contains(actual: Any, expected: Any) -> bool:
    return not _contains(actual, expected)


@functools.lru_cache(maxsize=256)
def _compile(pattern: str) -> "re.Pattern[str]":
    return re.compile(pattern)


def _regex_matches(actual: Any, expected: Any) -> bool:
    actual_text = _as_text(actual)
    if actual_text is None or not isinstance(expected, str):
        return False
    try:
        pattern = _compile(expected)
    except re.error as exc:
        logger.warning("Invalid regexMatches pattern %r: %s", expected, exc)
        return False
    return pattern.search(actual_text) is not None


def _is_any(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, list):
        return False
    return any(_equals(actual, candidate) for candidate in expected)


def _is_none(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, list):
        return False
    return not _is_any(actual, expected)


def _numeric(compare: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def inner(actual: Any, expected: Any) -> bool:
        left, right = _as_number(actual), _as_number(expected)
        if left is None or right is None:
            return False
        return compare(left, right)

    return inner


# ----------------------------------------------------------------------
# Cross-block and block-level actions
# ----------------------------------------------------------------------
def _requires_presence(spec: MatchSpec, block: Block, context: EvaluationContext) -> bool:
    candidates = context.modules.blocks_by_type(spec.name)
    if not candidates:
        logger.debug("No %s block found for %s", spec.name, block.address)
        return False
    if spec.sub_match is None:
        return True
    return evaluate(spec.sub_match, candidates[0], context)


def _in_module(spec: MatchSpec, block: Block, context: EvaluationContext) -> bool:
    return block.in_module


def _has_tag(spec: MatchSpec, block: Block, context: EvaluationContext) -> bool:
    if not block.has_tag(spec.name):
        return False
    if spec.match_value is None:
        return True
    return _equals(block.tag(spec.name), context.resolve(spec.match_value))


def _assign(spec: MatchSpec, block: Block, context: EvaluationContext) -> None:
    if not spec.assign_variable:
        return
    value = block.attribute(spec.name)
    if value is not None:
        context.bind(spec.assign_variable, value)


_HANDLERS: Dict[Action, Callable[[MatchSpec, Block, EvaluationContext], bool]] = {
    Action.AND: _and,
    Action.OR: _or,
    Action.NOT: _not,
    Action.IS_PRESENT: _presence(_is_present),
    Action.NOT_PRESENT: _presence(_not_present),
    Action.IS_EMPTY: _presence(_is_empty),
    Action.EQUALS: _comparison(_equals),
    Action.NOT_EQUALS: _comparison(_not_equals),
    Action.STARTS_WITH: _comparison(_starts_with),
    Action.ENDS_WITH: _comparison(_ends_with),
    Action.CONTAINS: _comparison(_contains),
    Action.NOT_CONTAINS: _comparison(_not_contains),
    Action.REGEX_MATCHES: _comparison(_regex_matches),
    Action.IS_ANY: _comparison(_is_any),
    Action.IS_NONE: _comparison(_is_none),
    Action.LESS_THAN: _comparison(_numeric(lambda left, right: left < right)),
    Action.LESS_THAN_OR_EQUAL: _comparison(_numeric(lambda left, right: left <= right)),
    Action.GREATER_THAN: _comparison(_numeric(lambda left, right: left > right)),
    Action.GREATER_THAN_OR_EQUAL: _comparison(_numeric(lambda left, right: left >= right)),
    Action.REQUIRES_PRESENCE: _requires_presence,
    Action.IN_MODULE: _in_module,
    Action.HAS_TAG: _has_tag,
}
