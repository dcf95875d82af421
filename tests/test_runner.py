from tfchecks.blocks import Modules
from tfchecks.config import ScanConfig
from tfchecks.custom import CustomCheckRunner, load_checks
from tfchecks.custom.checks import CheckRegistry
from tfchecks.result import ScanResult
from tfchecks.rules import ScanContext
from tfchecks.severity import Severity
from tfchecks.utils.iac import blocks_from_template

FLOW_LOG_CHECKS = """
checks:
  - code: DP006
    description: VPC flow logs must be enabled
    requiredTypes: [resource]
    requiredLabels: [aws_vpc]
    severity: HIGH
    matchSpec:
      action: requiresPresence
      name: aws_flow_log
      subMatch:
        action: isPresent
        name: log_destination
    errorMessage: "{address} should have an aws_flow_log associated with it"
    relatedLinks:
      - https://docs.aws.amazon.com/vpc/latest/userguide/flow-logs.html
  - code: CUS002
    description: Buckets must not be public
    requiredTypes: [resource]
    requiredLabels: [aws_s3_bucket]
    severity: MEDIUM
    matchSpec:
      action: notEquals
      name: acl
      value: public-read
    errorMessage: Bucket {name} is publicly readable
"""

VPC = {"cidr_block": "10.0.0.0/16", "instance_tenancy": "default", "tags": {"Name": "main"}}


def registry():
    return CheckRegistry(load_checks(FLOW_LOG_CHECKS, source="custom_tfchecks.yaml"))


def scan(template, config=None):
    modules = Modules.of(*blocks_from_template(template, "main.tf.json"))
    result = ScanResult()
    CustomCheckRunner(registry(), config).scan(ScanContext(modules=modules), result)
    return result


def test_companion_block_with_destination_passes():
    template = {
        "resource": {
            "aws_vpc": {"main": VPC},
            "aws_flow_log": {
                "example": {
                    "iam_role_arn": "${aws_iam_role.example.arn}",
                    "log_destination": "${aws_cloudwatch_log_group.example.arn}",
                    "traffic_type": "ALL",
                    "vpc_id": "${aws_vpc.example.id}",
                }
            },
        }
    }

    assert scan(template).findings == []


def test_missing_companion_block_fails():
    result = scan({"resource": {"aws_vpc": {"main": VPC}}})

    assert len(result.findings) == 1
    finding = result.findings[0]
    assert finding.code == "DP006"
    assert finding.severity is Severity.HIGH
    assert finding.resource == "aws_vpc.main"
    assert finding.message == "aws_vpc.main should have an aws_flow_log associated with it"
    assert finding.related_links == ("https://docs.aws.amazon.com/vpc/latest/userguide/flow-logs.html",)
    assert result.summary.high == 1
    assert result.exit_code() == 2


def test_companion_block_without_destination_fails():
    template = {
        "resource": {
            "aws_vpc": {"main": VPC},
            "aws_flow_log": {"example": {"traffic_type": "ALL", "vpc_id": "${aws_vpc.example.id}"}},
        }
    }

    result = scan(template)
    assert [finding.code for finding in result.findings] == ["DP006"]


def test_labels_are_matched_by_position():
    template = {
        "resource": {"aws_flow_log": {"aws_vpc": {"log_destination": "x"}}},
        "data": {"aws_vpc": {"main": {}}},
    }

    result = scan(template)
    assert result.findings == []


def test_finding_per_failing_block():
    template = {
        "resource": {
            "aws_s3_bucket": {
                "public": {"acl": "public-read"},
                "private": {"acl": "private"},
                "unset": {},
            }
        }
    }

    result = scan(template)
    assert [finding.resource for finding in result.findings] == ["aws_s3_bucket.public", "aws_s3_bucket.unset"]
    assert result.findings[0].message == "Bucket public is publicly readable"
    assert result.summary.medium == 2
    assert result.exit_code() == 1


def test_config_exclude_and_overrides():
    template = {"resource": {"aws_vpc": {"main": VPC}, "aws_s3_bucket": {"b": {"acl": "public-read"}}}}

    excluded = scan(template, ScanConfig(exclude=("DP006",)))
    assert [finding.code for finding in excluded.findings] == ["CUS002"]

    overridden = scan(template, ScanConfig(severity_overrides={"CUS002": Severity.CRITICAL}))
    severities = {finding.code: finding.severity for finding in overridden.findings}
    assert severities == {"DP006": Severity.HIGH, "CUS002": Severity.CRITICAL}

    filtered = scan(template, ScanConfig(minimum_severity=Severity.HIGH))
    assert [finding.code for finding in filtered.findings] == ["DP006"]


def test_parallel_run_matches_serial_order():
    buckets = {f"bucket{index:02d}": {"acl": "public-read" if index % 2 else "private"} for index in range(20)}
    template = {"resource": {"aws_vpc": {"main": VPC}, "aws_s3_bucket": buckets}}

    serial = scan(template)
    parallel = scan(template, ScanConfig(workers=4))

    assert parallel.findings == serial.findings
    assert len(serial.findings) == 11
