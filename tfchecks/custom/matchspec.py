"""Match spec tree: the declarative pass/fail logic of one custom check."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from tfchecks.errors import MalformedRuleDefinition, UnsupportedAction


class Action(str, Enum):
    """Closed vocabulary of match spec actions."""

    IS_PRESENT = "isPresent"
    NOT_PRESENT = "notPresent"
    IS_EMPTY = "isEmpty"
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    REGEX_MATCHES = "regexMatches"
    IS_ANY = "isAny"
    IS_NONE = "isNone"
    LESS_THAN = "lessThan"
    LESS_THAN_OR_EQUAL = "lessThanOrEqualTo"
    GREATER_THAN = "greaterThan"
    GREATER_THAN_OR_EQUAL = "greaterThanOrEqualTo"
    IN_MODULE = "inModule"
    HAS_TAG = "hasTag"
    AND = "and"
    OR = "or"
    NOT = "not"
    REQUIRES_PRESENCE = "requiresPresence"

    @classmethod
    def parse(cls, value: object) -> "Action":
        text = str(value) if value is not None else ""
        text = ACTION_ALIASES.get(text, text)
        try:
            return cls(text)
        except ValueError:
            raise UnsupportedAction(f"unsupported action {value!r}") from None

    @property
    def is_combinator(self) -> bool:
        return self in COMBINATORS

    @property
    def is_presence(self) -> bool:
        return self in PRESENCE_ACTIONS

    @property
    def is_comparison(self) -> bool:
        return self in COMPARISON_ACTIONS


ACTION_ALIASES = {"notEqual": "notEquals"}

COMBINATORS = frozenset({Action.AND, Action.OR, Action.NOT})
PRESENCE_ACTIONS = frozenset({Action.IS_PRESENT, Action.NOT_PRESENT, Action.IS_EMPTY})
COMPARISON_ACTIONS = frozenset(
    {
        Action.EQUALS,
        Action.NOT_EQUALS,
        Action.STARTS_WITH,
        Action.ENDS_WITH,
        Action.CONTAINS,
        Action.NOT_CONTAINS,
        Action.REGEX_MATCHES,
        Action.IS_ANY,
        Action.IS_NONE,
        Action.LESS_THAN,
        Action.LESS_THAN_OR_EQUAL,
        Action.GREATER_THAN,
        Action.GREATER_THAN_OR_EQUAL,
    }
)
LIST_VALUE_ACTIONS = frozenset({Action.IS_ANY, Action.IS_NONE})
# actions evaluated without an attribute name
UNNAMED_ACTIONS = COMBINATORS | {Action.IN_MODULE}

MATCH_VALUE_KEYS = ("matchValue", "value")


@dataclass(frozen=True)
class MatchSpec:
    """One node of the match spec tree; each node owns its children."""

    action: Action
    name: str = ""
    match_value: Any = None
    predicates: Tuple["MatchSpec", ...] = ()
    sub_match: Optional["MatchSpec"] = None
    pre_conditions: Tuple["MatchSpec", ...] = ()
    assign_variable: str = ""

    @classmethod
    def from_dict(cls, raw: Any, path: str = "matchSpec") -> "MatchSpec":
        """Decode a wire record, raising on unknown actions or wrong shapes."""

        if not isinstance(raw, dict):
            raise MalformedRuleDefinition(f"{path} must be an object")
        action = Action.parse(raw.get("action"))

        match_value = None
        for key in MATCH_VALUE_KEYS:
            if key in raw:
                match_value = raw[key]
                break

        sub_match = raw.get("subMatch")
        return cls(
            action=action,
            name=_optional_str(raw.get("name"), f"{path}.name"),
            match_value=match_value,
            predicates=_decode_list(raw.get("predicateMatchSpec"), f"{path}.predicateMatchSpec"),
            sub_match=cls.from_dict(sub_match, f"{path}.subMatch") if sub_match is not None else None,
            pre_conditions=_decode_list(raw.get("preConditions"), f"{path}.preConditions"),
            assign_variable=_optional_str(raw.get("assignVariable"), f"{path}.assignVariable"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"action": self.action.value}
        if self.name:
            data["name"] = self.name
        if self.match_value is not None:
            data["matchValue"] = self.match_value
        if self.predicates:
            data["predicateMatchSpec"] = [predicate.to_dict() for predicate in self.predicates]
        if self.sub_match is not None:
            data["subMatch"] = self.sub_match.to_dict()
        if self.pre_conditions:
            data["preConditions"] = [condition.to_dict() for condition in self.pre_conditions]
        if self.assign_variable:
            data["assignVariable"] = self.assign_variable
        return data

    def validate(self, path: str = "matchSpec") -> Iterator[str]:
        """Yield a message for every structural problem in this subtree."""

        action = self.action
        if action.is_combinator:
            if not self.predicates:
                yield f"{path}: '{action.value}' requires at least one predicateMatchSpec entry"
            elif action is Action.NOT and len(self.predicates) != 1:
                yield f"{path}: 'not' requires exactly one predicateMatchSpec entry, got {len(self.predicates)}"
        elif self.predicates:
            yield f"{path}: '{action.value}' does not take predicateMatchSpec entries"

        if action not in UNNAMED_ACTIONS and not self.name:
            yield f"{path}: '{action.value}' requires a name"
        if action is Action.REQUIRES_PRESENCE and self.sub_match is None:
            yield f"{path}: 'requiresPresence' requires a subMatch"
        if self.sub_match is not None and not (action is Action.REQUIRES_PRESENCE or action.is_presence):
            yield f"{path}: subMatch is not supported with '{action.value}'"
        if action is Action.REGEX_MATCHES and not isinstance(self.match_value, str):
            yield f"{path}: 'regexMatches' requires a string matchValue"
        if action in LIST_VALUE_ACTIONS and not isinstance(self.match_value, list):
            yield f"{path}: '{action.value}' requires a list matchValue"
        if action.is_comparison and action not in LIST_VALUE_ACTIONS and self.match_value is None:
            yield f"{path}: '{action.value}' requires a matchValue"

        for index, predicate in enumerate(self.predicates):
            yield from predicate.validate(f"{path}.predicateMatchSpec[{index}]")
        for index, condition in enumerate(self.pre_conditions):
            yield from condition.validate(f"{path}.preConditions[{index}]")
        if self.sub_match is not None:
            yield from self.sub_match.validate(f"{path}.subMatch")


def _decode_list(raw: Any, path: str) -> Tuple[MatchSpec, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise MalformedRuleDefinition(f"{path} must be a list")
    return tuple(MatchSpec.from_dict(item, f"{path}[{index}]") for index, item in enumerate(raw))


def _optional_str(value: Any, path: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedRuleDefinition(f"{path} must be a string")
    return value.strip()
