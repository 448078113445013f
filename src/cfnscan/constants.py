"""Shared constants for cfnscan."""

CFNSCAN_VERSION = "0.1.0"

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"
SEVERITY_INFORMATIONAL = "informational"

# Ordered from least to most severe.
SEVERITY_LEVELS = (SEVERITY_INFORMATIONAL, SEVERITY_WARNING, SEVERITY_ERROR)

SEVERITY_BY_PREFIX = {
    "E": SEVERITY_ERROR,
    "W": SEVERITY_WARNING,
    "I": SEVERITY_INFORMATIONAL,
}

RUNNER_ERROR_ID = "RUNNER_ERROR"
PARSE_ERROR_ID = "E0000"
TRANSFORM_ERROR_ID = "E0010"

SECTION_PARAMETERS = "Parameters"
SECTION_MAPPINGS = "Mappings"
SECTION_CONDITIONS = "Conditions"
SECTION_RESOURCES = "Resources"
SECTION_OUTPUTS = "Outputs"
SECTION_RULES = "Rules"
SECTION_METADATA = "Metadata"

ENTITY_SECTIONS = (
    SECTION_PARAMETERS,
    SECTION_MAPPINGS,
    SECTION_CONDITIONS,
    SECTION_RESOURCES,
    SECTION_OUTPUTS,
)

PSEUDO_PARAMETERS = frozenset(
    {
        "AWS::AccountId",
        "AWS::NotificationARNs",
        "AWS::NoValue",
        "AWS::Partition",
        "AWS::Region",
        "AWS::StackId",
        "AWS::StackName",
        "AWS::URLSuffix",
    }
)

CONDITION_FUNCTIONS = ("Fn::And", "Fn::Equals", "Fn::If", "Fn::Not", "Fn::Or", "Condition")

SAM_TRANSFORM = "AWS::Serverless-2016-10-31"
SAM_RESOURCE_PREFIX = "AWS::Serverless::"
SAM_RESOURCE_TYPES = frozenset(
    SAM_RESOURCE_PREFIX + name
    for name in (
        "Function",
        "Api",
        "HttpApi",
        "SimpleTable",
        "LayerVersion",
        "Application",
        "StateMachine",
        "Connector",
        "GraphQLApi",
    )
)

KNOWN_TRANSFORMS = frozenset(
    {
        SAM_TRANSFORM,
        "AWS::Include",
        "AWS::CodeDeployBlueGreen",
        "AWS::SecretsManager-2020-07-23",
        "AWS::LanguageExtensions",
    }
)

DEFAULT_REGION = "us-east-1"
DEFAULT_ACCOUNT_ID = "123456789012"
DEFAULT_STACK_NAME = "sam-app"
DEFAULT_PARTITION = "aws"

MAX_PARAMETERS = 200
MAX_RESOURCES = 500
MAX_OUTPUTS = 200
MAX_MAPPINGS = 200
MAX_NAME_LENGTH = 255
APPROACHING_LIMIT_RATIO = 0.8
