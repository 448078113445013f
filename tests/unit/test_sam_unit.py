import json

import pytest

from cfnscan.errors import TransformError
from cfnscan.findings import make_finding
from cfnscan.rules import Match, Rule, RuleMetadata
from cfnscan.runner import run
from cfnscan.sam import (
    SourceMap,
    TransformContext,
    build_source_map,
    has_serverless_transform,
    is_sam_resource_type,
    is_sam_template,
    map_finding,
    sam_resources,
    transform,
)
from cfnscan.sam.expander import PLACEHOLDER_S3_URI, replace_local_uris
from cfnscan.template import parse

SAM_TEMPLATE = """
AWSTemplateFormatVersion: '2010-09-09'
Transform: AWS::Serverless-2016-10-31
Resources:
  MyFunction:
    Type: AWS::Serverless::Function
    Properties: {Runtime: python3.9, Handler: i.h, CodeUri: ./s}
  MyFunctionApi:
    Type: AWS::Serverless::Api
    Properties: {StageName: prod}
  Table:
    Type: AWS::DynamoDB::Table
"""

EXPANDED = {
    "AWSTemplateFormatVersion": "2010-09-09",
    "Resources": {
        "MyFunction": {"Type": "AWS::Lambda::Function", "Properties": {"Role": {"Fn::GetAtt": ["MyFunctionRole", "Arn"]}}},
        "MyFunctionRole": {"Type": "AWS::IAM::Role", "Properties": {}},
        "MyFunctionApiProdStage": {"Type": "AWS::ApiGateway::Stage", "Properties": {}},
        "ServerlessDeploymentBucket": {"Type": "AWS::S3::Bucket"},
        "Table": {"Type": "AWS::DynamoDB::Table"},
    },
}


class CannedExpander:
    def __init__(self, payload=None, raw=None, error=None):
        self.payload = payload
        self.raw = raw
        self.error = error
        self.calls = []

    def expand(self, document, context):
        self.calls.append((json.loads(document), context))
        if self.error is not None:
            raise self.error
        if self.raw is not None:
            return self.raw
        return json.dumps(self.payload, indent=2).encode("utf-8")


def test_sam_resource_types():
    assert is_sam_resource_type("AWS::Serverless::Function")
    assert not is_sam_resource_type("AWS::Lambda::Function")


def test_detects_transform_in_string_and_list_forms():
    assert has_serverless_transform(parse("Transform: AWS::Serverless-2016-10-31\nResources: {}\n"))
    assert has_serverless_transform(parse("Transform: [Other, AWS::Serverless-2016-10-31]\nResources: {}\n"))
    assert not has_serverless_transform(parse("Transform: AWS::Include\nResources: {}\n"))


def test_detects_serverless_resources_without_transform():
    template = parse("Resources:\n  F: {Type: AWS::Serverless::Function}\n  B: {Type: AWS::S3::Bucket}\n")
    assert is_sam_template(template)
    assert list(sam_resources(template)) == ["F"]
    assert not is_sam_template(parse("Resources:\n  B: {Type: AWS::S3::Bucket}\n"))


def test_source_map_lookup():
    source_map = SourceMap()
    source_map.add("FnRole", 4, 3, "Fn")
    assert "FnRole" in source_map
    assert ("Resources", "FnRole") in source_map
    assert len(source_map) == 1
    assert str(source_map.lookup("FnRole")) == "Fn (line 4, column 3)"
    assert source_map.lookup("Unknown") is None


def test_source_map_sections_do_not_collide():
    source_map = SourceMap()
    source_map.add("Fn", 3, 3, "Fn")
    source_map.add("Fn", 7, 3, "Fn", section="Outputs")
    assert len(source_map) == 2
    assert source_map.lookup("Fn").line == 3
    assert source_map.lookup("Fn", section="Outputs").line == 7
    assert source_map.lookup("Fn", section="Parameters") is None
    assert ("Outputs", "Fn") in source_map


def test_map_finding_only_touches_entity_paths():
    source_map = SourceMap()
    source_map.add("FnRole", 4, 3, "Fn")
    on_resource = make_finding("E3001", "x", ("Resources", "FnRole", "Properties"), 40, 9)
    assert map_finding(on_resource, source_map).original_resource == "Fn"
    on_root = make_finding("E1005", "x", ("Transform",), 2, 1)
    assert map_finding(on_root, source_map) is on_root
    assert map_finding(on_resource, None) is on_resource


SHARED_NAME_TEMPLATE = """
Transform: AWS::Serverless-2016-10-31
Resources:
  HelloWorldFunction:
    Type: AWS::Serverless::Function
    Properties: {Runtime: python3.9, Handler: app.handler, CodeUri: hello/}
Outputs:
  HelloWorldFunction:
    Value: !GetAtt HelloWorldFunction.Arn
"""

SHARED_NAME_EXPANDED = {
    "Resources": {
        "HelloWorldFunction": {"Type": "AWS::Lambda::Function", "Properties": {}},
        "HelloWorldFunctionRole": {"Type": "AWS::IAM::Role", "Properties": {}},
    },
    "Outputs": {"HelloWorldFunction": {"Value": {"Fn::GetAtt": ["HelloWorldFunction", "Arn"]}}},
}


class _EveryEntity(Rule):
    metadata = RuleMetadata("W9300", "Reports every resource and output")

    def match(self, template):
        for name in template.resources:
            yield Match(f"Resource {name}", ("Resources", name))
        for name in template.outputs:
            yield Match(f"Output {name}", ("Outputs", name))


def test_resource_and_output_sharing_a_name_keep_their_positions(load_template):
    result = transform(load_template(SHARED_NAME_TEMPLATE), expander=CannedExpander(SHARED_NAME_EXPANDED))
    findings = run(result.template, rules=[_EveryEntity()], source_map=result.source_map)
    positions = {f.path: (f.line, f.column, f.original_resource) for f in findings}
    assert positions == {
        ("Resources", "HelloWorldFunction"): (3, 3, "HelloWorldFunction"),
        ("Resources", "HelloWorldFunctionRole"): (3, 3, "HelloWorldFunction"),
        ("Outputs", "HelloWorldFunction"): (7, 3, "HelloWorldFunction"),
    }


def test_non_sam_template_is_returned_unchanged():
    template = parse("Resources:\n  B: {Type: AWS::S3::Bucket}\n")
    expander = CannedExpander(EXPANDED)
    result = transform(template, expander=expander)
    assert result.template is template
    assert len(result.source_map) == 0
    assert expander.calls == []


def test_expander_receives_long_form_json(load_template):
    expander = CannedExpander(EXPANDED)
    context = TransformContext(region="eu-west-1")
    transform(load_template(SAM_TEMPLATE), context, expander=expander)
    ((document, received),) = expander.calls
    assert document["Resources"]["MyFunction"]["Properties"]["CodeUri"] == "./s"
    assert received is context


def test_synthesised_resources_map_to_longest_serverless_prefix(load_template):
    result = transform(load_template(SAM_TEMPLATE), expander=CannedExpander(EXPANDED))
    source_map = result.source_map
    role = source_map.lookup("MyFunctionRole")
    assert (role.line, role.column, role.original_resource) == (4, 3, "MyFunction")
    stage = source_map.lookup("MyFunctionApiProdStage")
    assert (stage.line, stage.original_resource) == (7, "MyFunctionApi")
    assert source_map.lookup("ServerlessDeploymentBucket") is None
    table = source_map.lookup("Table")
    assert (table.line, table.original_resource) == (10, "Table")
    assert result.template.resources["MyFunctionRole"].type == "AWS::IAM::Role"


def test_build_source_map_seeds_every_section(load_template):
    original = load_template(
        """
        Parameters:
          Name: {Type: String}
        Resources:
          F: {Type: AWS::Serverless::Function}
        Outputs:
          Out: {Value: x}
        """
    )
    expanded = parse(json.dumps({"Resources": {"F": {"Type": "AWS::Lambda::Function"}}}))
    source_map = build_source_map(original, expanded)
    assert len(source_map) == 3
    assert source_map.lookup("Name", section="Parameters").line == 2
    assert source_map.lookup("F").line == 4
    assert source_map.lookup("Out", section="Outputs").line == 6


def test_expander_failure_is_wrapped(load_template):
    with pytest.raises(TransformError) as excinfo:
        transform(load_template(SAM_TEMPLATE), expander=CannedExpander(error=ValueError("no")))
    assert excinfo.value.kind == TransformError.EXPANSION_ERROR
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_transform_errors_pass_through(load_template):
    error = TransformError("bad function", kind=TransformError.EXPANSION_ERROR)
    with pytest.raises(TransformError) as excinfo:
        transform(load_template(SAM_TEMPLATE), expander=CannedExpander(error=error))
    assert excinfo.value is error


def test_unparseable_expansion_is_a_reparse_error(load_template):
    with pytest.raises(TransformError) as excinfo:
        transform(load_template(SAM_TEMPLATE), expander=CannedExpander(raw=b"[1, 2]"))
    assert excinfo.value.kind == TransformError.REPARSE_ERROR


def test_context_parameter_values():
    values = TransformContext(region="cn-north-1", partition="aws-cn").parameter_values()
    assert values["AWS::Region"] == "cn-north-1"
    assert values["AWS::URLSuffix"] == "amazonaws.com.cn"
    assert values["AWS::StackId"].startswith("arn:aws-cn:cloudformation:cn-north-1:")
    assert TransformContext().parameter_values()["AWS::Region"] == "us-east-1"


def test_replace_local_uris():
    sam_template = {
        "Globals": {"Function": {"CodeUri": "src/"}},
        "Resources": {
            "Local": {"Type": "AWS::Serverless::Function", "Properties": {"CodeUri": "./s"}},
            "Remote": {"Type": "AWS::Serverless::Function", "Properties": {"CodeUri": "s3://b/k.zip"}},
            "Image": {"Type": "AWS::Serverless::Function", "Properties": {"PackageType": "Image", "CodeUri": "."}},
            "Layer": {"Type": "AWS::Serverless::LayerVersion", "Properties": {"ContentUri": "layer/"}},
            "Bucket": {"Type": "AWS::S3::Bucket", "Properties": {"CodeUri": "./untouched"}},
        },
    }
    replace_local_uris(sam_template)
    resources = sam_template["Resources"]
    assert sam_template["Globals"]["Function"]["CodeUri"] == PLACEHOLDER_S3_URI
    assert resources["Local"]["Properties"]["CodeUri"] == PLACEHOLDER_S3_URI
    assert resources["Remote"]["Properties"]["CodeUri"] == "s3://b/k.zip"
    assert resources["Image"]["Properties"]["CodeUri"] == "."
    assert resources["Layer"]["Properties"]["ContentUri"] == PLACEHOLDER_S3_URI
    assert resources["Bucket"]["Properties"]["CodeUri"] == "./untouched"
