import pytest

from cfnscan.rules import get_rule
from cfnscan.rules.parameters import VALID_PARAMETER_TYPES


def _evaluate(rule_id, template):
    return get_rule(rule_id).evaluate(template)


def test_parameter_configuration(load_template):
    template = load_template(
        """
        Parameters:
          Good: {Type: String, Description: fine}
          NoType: {Default: x}
          Extra: {Type: String, Colour: blue}
          Scalar: just-text
        """
    )
    findings = _evaluate("E2001", template)
    assert {f.path for f in findings} == {
        ("Parameters", "NoType"),
        ("Parameters", "Extra", "Colour"),
        ("Parameters", "Scalar"),
    }


@pytest.mark.parametrize(
    "parameter_type",
    [
        "String",
        "Number",
        "CommaDelimitedList",
        "List<AWS::EC2::Subnet::Id>",
        "AWS::EC2::KeyPair::KeyName",
        "AWS::SSM::Parameter::Value<String>",
        "AWS::SSM::Parameter::Name",
    ],
)
def test_known_parameter_types(parameter_type):
    assert parameter_type in VALID_PARAMETER_TYPES


def test_invalid_parameter_type(load_template):
    template = load_template(
        """
        Parameters:
          Bad: {Type: Strng}
          Good: {Type: 'List<Number>'}
        """
    )
    (finding,) = _evaluate("E2002", template)
    assert finding.path == ("Parameters", "Bad", "Type")
    assert (finding.line, finding.column) == (2, 9)


def test_default_within_constraints(load_template):
    template = load_template(
        """
        Parameters:
          Env: {Type: String, AllowedValues: [dev, prod], Default: test}
          Envs: {Type: CommaDelimitedList, AllowedValues: [dev, prod], Default: 'dev, qa'}
          Size: {Type: Number, MinValue: 1, MaxValue: 5, Default: 9}
          NotNumber: {Type: Number, Default: lots}
          Name: {Type: String, MaxLength: 3, MinLength: 2, Default: toolong}
          Short: {Type: String, MinLength: 2, Default: a}
          Pattern: {Type: String, AllowedPattern: '[a-z]+', Default: ABC}
          Fine: {Type: String, AllowedValues: [a], Default: a}
        """
    )
    findings = _evaluate("E2015", template)
    flagged = {f.path[1] for f in findings}
    assert flagged == {"Env", "Envs", "Size", "NotNumber", "Name", "Short", "Pattern"}
    envs = next(f for f in findings if f.path[1] == "Envs")
    assert "'qa'" in envs.message
    assert all(f.path[2] == "Default" for f in findings)


def test_unused_parameter_fixture(fixture_bytes):
    from cfnscan.template import parse

    findings = _evaluate("W2001", parse(fixture_bytes("unused_parameter.yaml")))
    assert [f.path for f in findings] == [("Parameters", "Unused")]
    assert findings[0].severity == "warning"


def test_parameters_used_through_sub_and_conditions(load_template):
    template = load_template(
        """
        Parameters:
          InSub: {Type: String}
          InCondition: {Type: String}
          InOutput: {Type: String}
          InMappedSub: {Type: String}
        Conditions:
          C: !Equals [!Ref InCondition, x]
        Resources:
          Bucket:
            Type: AWS::S3::Bucket
            Properties:
              BucketName: !Sub '${InSub}-data'
              Other: !Sub ['${Local}', {Local: !Ref InMappedSub}]
        Outputs:
          O: {Value: !Ref InOutput}
        """
    )
    assert _evaluate("W2001", template) == []


def test_noecho_parameter_in_output(fixture_bytes):
    from cfnscan.template import parse

    (finding,) = _evaluate("W2010", parse(fixture_bytes("noecho_output.yaml")))
    assert finding.path[:2] == ("Outputs", "Leak")
    assert finding.path == ("Outputs", "Leak", "Value", "Ref")
    assert "Secret" in finding.message


def test_noecho_parameter_in_sub(load_template):
    template = load_template(
        """
        Parameters:
          Secret: {Type: String, NoEcho: 'true'}
          Plain: {Type: String}
        Outputs:
          Uri: {Value: !Sub 'db://${Secret}@host'}
          Safe: {Value: !Ref Plain}
        """
    )
    (finding,) = _evaluate("W2010", template)
    assert finding.path == ("Outputs", "Uri", "Value", "Fn::Sub")


def test_allowed_pattern(load_template):
    template = load_template(
        """
        Parameters:
          Broken: {Type: String, AllowedPattern: '[a-'}
          Loose: {Type: String, AllowedPattern: '.*'}
          Strict: {Type: String, AllowedPattern: '^[a-z]{3}$'}
        """
    )
    findings = _evaluate("W2031", template)
    assert {f.path[1] for f in findings} == {"Broken", "Loose"}
