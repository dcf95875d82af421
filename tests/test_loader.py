import json

import pytest

from tfchecks.custom import Action, build_registry, find_checks_files, load_checks
from tfchecks.custom.checks import CheckRegistry
from tfchecks.errors import MalformedRuleDefinition, UnsupportedAction
from tfchecks.severity import Severity

FLOW_LOG_CHECKS = """{
  "checks": [
    {
      "code": "DP006",
      "description": "VPC flow logs must be enabled",
      "requiredTypes": [
        "resource"
      ],
      "requiredLabels": [
        "aws_vpc"
      ],
      "severity": "HIGH",
      "matchSpec": {
        "action": "requiresPresence",
\t\t"name": "aws_flow_log",
\t\t"subMatch": {
\t\t  "action": "isPresent",
\t\t  "name": "log_destination"
\t\t}
      },
      "errorMessage": "VPCs should have an aws_flow_log associated with them",
      "relatedLinks": []
    }
  ]
}
"""

YAML_CHECKS = """
checks:
  - code: CUS001
    description: Custom check to ensure the CostCentre tag is applied to EC2 instances
    requiredTypes:
      - resource
    requiredLabels:
      - aws_instance
    severity: error-free
    matchSpec:
      name: tags
      action: contains
      value: CostCentre
    errorMessage: The required CostCentre tag was missing
    relatedLinks:
      - http://internal.acmecorp.com/standards/aws/tagging.html
"""


def checks_document(**overrides):
    check = {
        "code": "CUS001",
        "description": "Instances must be tagged",
        "requiredTypes": ["resource"],
        "requiredLabels": ["aws_instance"],
        "severity": "MEDIUM",
        "matchSpec": {"action": "isPresent", "name": "tags"},
        "errorMessage": "{address} is missing tags",
        "relatedLinks": [],
    }
    check.update(overrides)
    return json.dumps({"checks": [check]})


def test_load_tab_indented_json_checks():
    checks = load_checks(FLOW_LOG_CHECKS, source="flow_tfchecks.json")

    assert len(checks) == 1
    check = checks[0]
    assert check.code == "DP006"
    assert check.severity is Severity.HIGH
    assert check.required_types == ("resource",)
    assert check.required_labels == ("aws_vpc",)
    assert check.match_spec.action is Action.REQUIRES_PRESENCE
    assert check.match_spec.sub_match.name == "log_destination"
    assert check.source == "flow_tfchecks.json"


def test_load_yaml_checks_with_value_alias():
    content = YAML_CHECKS.replace("error-free", "low")
    check = load_checks(content)[0]

    assert check.severity is Severity.LOW
    assert check.match_spec.match_value == "CostCentre"
    assert check.related_links == ("http://internal.acmecorp.com/standards/aws/tagging.html",)


def test_not_equal_is_accepted_as_alias():
    content = checks_document(matchSpec={"action": "notEqual", "name": "acl", "matchValue": "public-read"})
    assert load_checks(content)[0].match_spec.action is Action.NOT_EQUALS


def test_unknown_severity_is_rejected():
    with pytest.raises(MalformedRuleDefinition) as excinfo:
        load_checks(YAML_CHECKS, source="tags_tfchecks.yaml")
    assert "tags_tfchecks.yaml" in str(excinfo.value)
    assert "CUS001" in str(excinfo.value)


def test_unsupported_action_names_the_check():
    content = checks_document(matchSpec={"action": "isAwesome", "name": "tags"})
    with pytest.raises(UnsupportedAction) as excinfo:
        load_checks(content, source="bad_tfchecks.json")
    assert excinfo.value.code == "CUS001"
    assert excinfo.value.source == "bad_tfchecks.json"


def test_structural_validation_failures():
    empty_and = checks_document(matchSpec={"action": "and", "predicateMatchSpec": []})
    with pytest.raises(MalformedRuleDefinition, match="at least one predicateMatchSpec"):
        load_checks(empty_and)

    double_not = checks_document(
        matchSpec={
            "action": "not",
            "predicateMatchSpec": [
                {"action": "isPresent", "name": "a"},
                {"action": "isPresent", "name": "b"},
            ],
        }
    )
    with pytest.raises(MalformedRuleDefinition, match="exactly one"):
        load_checks(double_not)

    presence_without_submatch = checks_document(matchSpec={"action": "requiresPresence", "name": "aws_flow_log"})
    with pytest.raises(MalformedRuleDefinition, match="requires a subMatch"):
        load_checks(presence_without_submatch)

    nested_problem = checks_document(
        matchSpec={
            "action": "or",
            "predicateMatchSpec": [{"action": "equals", "name": "acl"}],
        }
    )
    with pytest.raises(MalformedRuleDefinition, match=r"predicateMatchSpec\[0\]"):
        load_checks(nested_problem)


def test_required_fields():
    with pytest.raises(MalformedRuleDefinition, match="code"):
        load_checks(checks_document(code=""))
    with pytest.raises(MalformedRuleDefinition, match="'code' must be a string"):
        load_checks(checks_document(code=123))
    with pytest.raises(MalformedRuleDefinition, match="at least one block type"):
        load_checks(checks_document(requiredTypes=[]))
    with pytest.raises(MalformedRuleDefinition, match="missing keys: matchSpec"):
        load_checks(json.dumps({"checks": [{"code": "X", "requiredTypes": ["resource"], "severity": "LOW"}]}))


def test_undecodable_content():
    with pytest.raises(MalformedRuleDefinition, match="failed to decode"):
        load_checks("checks: [unterminated", source="broken_tfchecks.yaml")
    with pytest.raises(MalformedRuleDefinition, match="'checks' list"):
        load_checks("{}")


def test_duplicate_codes_are_rejected(tmp_path):
    (tmp_path / "a_tfchecks.json").write_text(checks_document(), encoding="utf-8")
    (tmp_path / "b_tfchecks.json").write_text(checks_document(), encoding="utf-8")

    with pytest.raises(MalformedRuleDefinition, match="duplicate check code"):
        build_registry([tmp_path])


def test_build_registry_from_directory(tmp_path):
    (tmp_path / "flow_tfchecks.json").write_text(FLOW_LOG_CHECKS, encoding="utf-8")
    (tmp_path / "tags_tfchecks.yaml").write_text(YAML_CHECKS.replace("error-free", "LOW"), encoding="utf-8")
    (tmp_path / "notes.json").write_text("not a checks file", encoding="utf-8")

    assert [path.name for path in find_checks_files(tmp_path)] == ["flow_tfchecks.json", "tags_tfchecks.yaml"]

    registry = build_registry([tmp_path])
    assert list(registry) == ["DP006", "CUS001"]
    assert registry["CUS001"].severity is Severity.LOW
    assert registry.find("MISSING") is None


def test_build_registry_fails_fast(tmp_path):
    (tmp_path / "a_tfchecks.json").write_text(FLOW_LOG_CHECKS, encoding="utf-8")
    (tmp_path / "b_tfchecks.json").write_text(checks_document(severity="SEVERE"), encoding="utf-8")

    with pytest.raises(MalformedRuleDefinition, match="b_tfchecks.json"):
        build_registry([tmp_path])


def test_missing_checks_file(tmp_path):
    with pytest.raises(MalformedRuleDefinition, match="not found"):
        build_registry([tmp_path / "missing_tfchecks.json"])


def test_empty_registry():
    registry = CheckRegistry()
    assert len(registry) == 0
    assert registry.checks() == ()


def test_match_spec_round_trips_to_wire_names():
    check = load_checks(FLOW_LOG_CHECKS)[0]
    assert check.match_spec.to_dict() == {
        "action": "requiresPresence",
        "name": "aws_flow_log",
        "subMatch": {"action": "isPresent", "name": "log_destination"},
    }
