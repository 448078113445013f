"""Default SAM expander backed by aws-sam-translator."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict

import boto3
from samtranslator.parser import parser as sam_parser
from samtranslator.public.exceptions import InvalidDocumentException
from samtranslator.translator.translator import Translator

from ..errors import TransformError
from .transform import TransformContext

logger = logging.getLogger(__name__)

PLACEHOLDER_S3_URI = "s3://bucket/value"

# Resource type -> properties the translator insists are S3 locations.
_LOCAL_URI_PROPERTIES = {
    "AWS::Serverless::Function": ("CodeUri",),
    "AWS::Serverless::LayerVersion": ("ContentUri",),
    "AWS::Serverless::Application": ("Location",),
    "AWS::Serverless::StateMachine": ("DefinitionUri",),
    "AWS::Serverless::Api": ("DefinitionUri",),
    "AWS::Serverless::HttpApi": ("DefinitionUri",),
}


def _is_s3_uri(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("s3://")


def _replace_local_uri(properties: Dict[str, Any], key: str) -> None:
    if key not in properties:
        return
    current = properties[key]
    if isinstance(current, dict) or _is_s3_uri(current):
        return
    properties[key] = PLACEHOLDER_S3_URI


def replace_local_uris(sam_template: Dict[str, Any]) -> None:
    """Point local artifact paths at a placeholder S3 URI, in place.

    The translator rejects local paths such as ``CodeUri: ./src``; linting
    does not need the artifact itself.
    """

    template_globals = sam_template.get("Globals")
    function_globals = template_globals.get("Function") if isinstance(template_globals, dict) else None
    if isinstance(function_globals, dict):
        _replace_local_uri(function_globals, "CodeUri")

    resources = sam_template.get("Resources", {})
    if not isinstance(resources, dict):
        return
    for resource in resources.values():
        if not isinstance(resource, dict):
            continue
        properties = resource.get("Properties")
        if not isinstance(properties, dict):
            continue
        resource_type = resource.get("Type")
        if resource_type == "AWS::Serverless::Function" and properties.get("PackageType") == "Image":
            continue
        for key in _LOCAL_URI_PROPERTIES.get(resource_type, ()):
            _replace_local_uri(properties, key)


class SamTranslatorExpander:
    """Runs the SAM translator in-process; no network access is required."""

    def expand(self, document: bytes, context: TransformContext) -> bytes:
        try:
            sam_template = json.loads(document)
        except ValueError as exc:
            raise TransformError(
                f"SAM input is not valid JSON: {exc}", kind=TransformError.SERIALISATION_ERROR
            ) from exc
        replace_local_uris(sam_template)

        translator = Translator(
            managed_policy_map={},
            sam_parser=sam_parser.Parser(),
            boto_session=boto3.session.Session(region_name=context.region),
        )
        try:
            expanded = translator.translate(
                sam_template=sam_template,
                parameter_values=context.parameter_values(),
            )
        except InvalidDocumentException as exc:
            causes = "; ".join(getattr(cause, "message", str(cause)) for cause in exc.causes)
            raise TransformError(
                f"SAM transform failed: {causes or exc}", kind=TransformError.EXPANSION_ERROR
            ) from exc
        logger.debug("SAM translator returned %d resources", len(expanded.get("Resources", {})))
        return json.dumps(expanded, indent=2).encode("utf-8")
