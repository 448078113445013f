import pytest

from cfnscan.constants import RUNNER_ERROR_ID
from cfnscan.rules import Match, Rule, RuleMetadata
from cfnscan.runner import RunFilters, run
from cfnscan.sam.sourcemap import SourceMap
from tests import findings_for, rule_ids

TEMPLATE = """
Resources:
  Synth:
    Type: AWS::S3::Bucket
  Other:
    Type: AWS::SNS::Topic
"""


class EveryResource(Rule):
    metadata = RuleMetadata("W9001", "Reports every resource", tags=("probe",))

    def match(self, template):
        for name in template.resources:
            yield Match(f"Resource {name}", ("Resources", name))


class Twice(Rule):
    metadata = RuleMetadata("E9002", "Reports the same thing twice", tags=("probe", "dup"))

    def match(self, template):
        yield Match("same", ("Resources", "Other"))
        yield Match("same", ("Resources", "Other"))


class Explodes(Rule):
    metadata = RuleMetadata("E9003", "Always raises")

    def match(self, template):
        raise RuntimeError("kaboom")


class Informational(Rule):
    metadata = RuleMetadata("I9004", "Informational note")

    def match(self, template):
        yield Match("note", ())


PROBES = [EveryResource(), Twice(), Explodes(), Informational()]


def test_failing_rule_becomes_runner_error(load_template):
    findings = run(load_template(TEMPLATE), rules=PROBES)
    (error,) = findings_for(findings, RUNNER_ERROR_ID)
    assert error.severity == "error"
    assert "E9003" in error.message
    assert "kaboom" in error.message
    assert (error.line, error.column) == (1, 1)
    assert len(findings_for(findings, "W9001")) == 2


def test_findings_are_sorted_and_deduplicated(load_template):
    findings = run(load_template(TEMPLATE), rules=PROBES)
    assert len(findings_for(findings, "E9002")) == 1
    assert findings == sorted(findings, key=lambda f: (f.sort_key(), f.message))


def test_include_and_exclude_ids(load_template):
    template = load_template(TEMPLATE)
    only = run(template, RunFilters.build(include_ids=["W9001"]), rules=PROBES)
    assert set(rule_ids(only)) == {"W9001"}
    without = run(template, RunFilters.build(exclude_ids=["W9001", "E9003"]), rules=PROBES)
    assert set(rule_ids(without)) == {"E9002", "I9004"}


def test_tag_filters(load_template):
    template = load_template(TEMPLATE)
    tagged = run(template, RunFilters.build(include_tags=["probe"]), rules=PROBES)
    assert set(rule_ids(tagged)) == {"W9001", "E9002"}
    untagged = run(template, RunFilters.build(exclude_tags=["dup"]), rules=PROBES)
    assert "E9002" not in rule_ids(untagged)


def test_min_severity(load_template):
    template = load_template(TEMPLATE)
    errors_only = run(template, RunFilters.build(min_severity="error"), rules=PROBES)
    assert {f.severity for f in errors_only} == {"error"}
    warnings_up = run(template, RunFilters.build(min_severity="warning"), rules=PROBES)
    assert "I9004" not in rule_ids(warnings_up)
    assert "W9001" in rule_ids(warnings_up)


def test_unknown_min_severity_is_rejected():
    with pytest.raises(ValueError):
        RunFilters(min_severity="fatal")


def test_source_map_rewrites_positions(load_template):
    template = load_template(TEMPLATE)
    source_map = SourceMap()
    source_map.add("Synth", 12, 3, "Origin")
    findings = run(template, RunFilters.build(include_ids=["W9001"]), rules=PROBES, source_map=source_map)
    by_path = {f.path: f for f in findings}
    synth = by_path[("Resources", "Synth")]
    assert (synth.line, synth.column, synth.original_resource) == (12, 3, "Origin")
    other = by_path[("Resources", "Other")]
    assert (other.line, other.column, other.original_resource) == (4, 3, None)


def test_run_does_not_mutate_template(load_template):
    template = load_template(TEMPLATE)
    before = template.to_dict()
    run(template)
    assert template.to_dict() == before


def test_default_catalog_runs(load_template):
    findings = run(load_template(TEMPLATE))
    assert RUNNER_ERROR_ID not in rule_ids(findings)
