import pytest

from cfnscan.errors import RuleRegistrationError
from cfnscan.rules import (
    RULE_ID_PATTERN,
    Match,
    Rule,
    RuleMetadata,
    RuleRegistry,
    get_rule,
    get_rule_metadata,
    get_rules,
    register_rule,
)

BUILTIN_IDS = {
    "E1001", "E1005", "E1010", "E1011", "E1017", "E1019", "E1022", "E1028", "E1700", "E1701",
    "E2001", "E2002", "E2010", "E2015", "E3001", "E3002", "E3004", "E3005", "E3006", "E3008",
    "E3010", "E3011", "E3035", "E3036", "E6001", "E6002", "E6003", "E6010", "E6101", "E7001",
    "E7010", "E8001", "E8002", "E8003", "E8004", "E8005", "E8006", "E8007", "I2010", "I3010",
    "I6010", "I7010", "W1001", "W1020", "W2001", "W2010", "W2031", "W3005", "W3011", "W6001",
    "W7001", "W8001", "W8003",
}


class _Probe(Rule):
    metadata = RuleMetadata("W9999", "Probe rule", tags=("probe",))

    def match(self, template):
        return [Match("probe", ("Resources",))]


def test_builtin_catalog_is_registered() -> None:
    assert {rule.id for rule in get_rules()} == BUILTIN_IDS


def test_builtin_ids_are_well_formed_and_unique() -> None:
    ids = [rule.id for rule in get_rules()]
    assert len(ids) == len(set(ids))
    assert all(RULE_ID_PATTERN.match(rule_id) for rule_id in ids)


def test_builtin_rules_carry_descriptions() -> None:
    for rule in get_rules():
        assert rule.short_description
        assert rule.description
        assert rule.severity in {"error", "warning", "informational"}


def test_get_rule_and_metadata() -> None:
    rule = get_rule("E6002")
    assert rule.id == "E6002"
    assert get_rule_metadata()["E6002"] is rule.metadata
    assert repr(rule).endswith("E6002>")


def test_registry_rejects_duplicate_ids() -> None:
    registry = RuleRegistry()
    registry.register(_Probe())
    with pytest.raises(RuleRegistrationError):
        registry.register(_Probe())
    assert len(registry) == 1
    assert "W9999" in registry


@pytest.mark.parametrize("rule_id", ["X1000", "E100", "e1000", "E10000", ""])
def test_registry_rejects_malformed_ids(rule_id: str) -> None:
    class Bad(_Probe):
        metadata = RuleMetadata(rule_id, "bad")

    with pytest.raises(RuleRegistrationError):
        RuleRegistry().register(Bad())


def test_register_rule_refuses_builtin_id_collision() -> None:
    before = len(get_rules())
    with pytest.raises(RuleRegistrationError):

        @register_rule
        class Clash(_Probe):
            metadata = RuleMetadata("E6002", "Collides with a built-in")

    assert len(get_rules()) == before
    assert type(get_rule("E6002")).__name__ != "Clash"


def test_register_rule_requires_metadata() -> None:
    with pytest.raises(RuleRegistrationError):

        @register_rule
        class NoMetadata(Rule):
            def match(self, template):
                return []


def test_rule_evaluate_resolves_positions(load_template) -> None:
    template = load_template(
        """
        Resources:
          X: {Type: AWS::S3::Bucket}
        """
    )
    (finding,) = _Probe().evaluate(template)
    assert finding.rule_id == "W9999"
    assert finding.severity == "warning"
    assert (finding.line, finding.column) == (1, 1)
