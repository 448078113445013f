"""End-to-end lint scenarios over the fixture templates."""

import json

import pytest

from cfnscan.lint import LintOptions, lint_bytes, lint_template
from cfnscan.rules import Match, Rule, RuleMetadata
from cfnscan.runner import RunFilters, run
from cfnscan.sam import transform
from cfnscan.template import parse
from tests import canonicalize_findings, findings_for

FIXTURES = [
    "clean.yaml",
    "equals_arity.yaml",
    "missing_output_value.yaml",
    "noecho_output.yaml",
    "undefined_condition.yaml",
    "unused_parameter.yaml",
]


class _ExpandedFunction:
    """Stands in for the SAM translator with a fixed expansion."""

    def expand(self, document, context):
        expanded = {
            "AWSTemplateFormatVersion": "2010-09-09",
            "Resources": {
                "MyFunction": {
                    "Type": "AWS::Lambda::Function",
                    "Properties": {"Role": {"Fn::GetAtt": ["MyFunctionRole", "Arn"]}},
                },
                "MyFunctionRole": {"Type": "AWS::IAM::Role", "Properties": {}},
            },
        }
        return json.dumps(expanded, indent=2).encode("utf-8")


class _EveryResource(Rule):
    metadata = RuleMetadata("W9100", "Reports every resource")

    def match(self, template):
        for name in template.resources:
            yield Match(f"Resource {name}", ("Resources", name))


def test_missing_output_value(fixture_bytes):
    (finding,) = findings_for(lint_bytes(fixture_bytes("missing_output_value.yaml")), "E6002")
    assert finding.severity == "error"
    assert finding.path == ("Outputs", "BucketName")
    assert (finding.line, finding.column) == (5, 3)


def test_equals_with_three_elements(fixture_bytes):
    (finding,) = findings_for(lint_bytes(fixture_bytes("equals_arity.yaml")), "E8003")
    assert "exactly 2 elements, got 3" in finding.message
    assert finding.path[:2] == ("Conditions", "Bad")


def test_undefined_condition(fixture_bytes):
    (finding,) = findings_for(lint_bytes(fixture_bytes("undefined_condition.yaml")), "E8002")
    assert finding.path == ("Resources", "MyBucket", "Condition")


def test_unused_parameter(fixture_bytes):
    findings = findings_for(lint_bytes(fixture_bytes("unused_parameter.yaml")), "W2001")
    assert [f.path for f in findings] == [("Parameters", "Unused")]


def test_noecho_output(fixture_bytes):
    (finding,) = findings_for(lint_bytes(fixture_bytes("noecho_output.yaml")), "W2010")
    assert finding.path[:2] == ("Outputs", "Leak")


def test_sam_findings_point_at_the_serverless_resource(fixture_bytes):
    template = parse(fixture_bytes("sam_function.yaml"), "sam_function.yaml")
    result = transform(template, expander=_ExpandedFunction())
    findings = run(result.template, rules=[_EveryResource()], source_map=result.source_map)
    by_resource = {f.path[1]: f for f in findings}
    role = by_resource["MyFunctionRole"]
    assert (role.line, role.column) == (4, 3)
    assert role.original_resource == "MyFunction"
    assert by_resource["MyFunction"].original_resource == "MyFunction"


def test_clean_template_has_no_findings(fixture_bytes):
    assert lint_bytes(fixture_bytes("clean.yaml")) == []


@pytest.mark.parametrize("name", FIXTURES)
def test_lint_is_deterministic(fixture_bytes, name):
    data = fixture_bytes(name)
    first = canonicalize_findings(lint_bytes(data, name))
    second = canonicalize_findings(lint_bytes(data, name))
    assert first == second


@pytest.mark.parametrize("name", FIXTURES)
def test_lint_does_not_modify_the_template(fixture_bytes, name):
    template = parse(fixture_bytes(name), name)
    before = template.to_dict()
    lint_template(template)
    assert template.to_dict() == before


@pytest.mark.parametrize("name", FIXTURES)
def test_findings_point_at_their_path(fixture_bytes, name):
    template = parse(fixture_bytes(name), name)
    for finding in lint_template(template):
        assert finding.line >= 1
        assert finding.column >= 1
        assert (finding.line, finding.column) == template.locate(finding.path)


@pytest.mark.parametrize("name", FIXTURES)
def test_excluding_rules_only_removes_their_findings(fixture_bytes, name):
    data = fixture_bytes(name)
    everything = lint_bytes(data, name)
    for rule_id in {f.rule_id for f in everything}:
        options = LintOptions(filters=RunFilters.build(exclude_ids=[rule_id]))
        remaining = lint_bytes(data, name, options)
        assert remaining == [f for f in everything if f.rule_id != rule_id]
