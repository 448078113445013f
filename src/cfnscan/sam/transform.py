"""SAM macro expansion and source-map construction."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from ..constants import (
    DEFAULT_ACCOUNT_ID,
    DEFAULT_PARTITION,
    DEFAULT_REGION,
    DEFAULT_STACK_NAME,
    ENTITY_SECTIONS,
    SAM_RESOURCE_PREFIX,
)
from ..errors import TemplateParseError, TransformError
from ..template import Template, parse
from .detect import is_sam_template
from .sourcemap import SourceMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformContext:
    """Values substituted for pseudo parameters during expansion."""

    region: str = DEFAULT_REGION
    account_id: str = DEFAULT_ACCOUNT_ID
    stack_name: str = DEFAULT_STACK_NAME
    partition: str = DEFAULT_PARTITION

    def parameter_values(self) -> Dict[str, str]:
        return {
            "AWS::AccountId": self.account_id,
            "AWS::Partition": self.partition,
            "AWS::Region": self.region,
            "AWS::StackName": self.stack_name,
            "AWS::StackId": (
                f"arn:{self.partition}:cloudformation:{self.region}:{self.account_id}:"
                f"stack/{self.stack_name}/00000000-0000-0000-0000-000000000000"
            ),
            "AWS::URLSuffix": "amazonaws.com.cn" if self.partition == "aws-cn" else "amazonaws.com",
        }


class MacroExpander(Protocol):
    def expand(self, document: bytes, context: TransformContext) -> bytes:
        """Expand a SAM template given as JSON bytes into CloudFormation bytes."""


@dataclass(frozen=True)
class TransformResult:
    template: Template
    source_map: SourceMap = field(default_factory=SourceMap)


def serialise(template: Template) -> bytes:
    try:
        return json.dumps(template.to_dict(), indent=2, sort_keys=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise TransformError(
            f"Cannot serialise template: {exc}", kind=TransformError.SERIALISATION_ERROR
        ) from exc


def build_source_map(original: Template, expanded: Template) -> SourceMap:
    """Seed every original logical ID per section, then attach synthesised resources.

    A synthesised resource maps to the longest original ``AWS::Serverless::*``
    resource name that prefixes its logical ID.
    """

    source_map = SourceMap()
    for section in ENTITY_SECTIONS:
        entities = getattr(original, section.lower())
        for name, entity in entities.items():
            source_map.add(name, entity.line, entity.column, name, section=section)

    serverless = sorted(
        (name for name, res in original.resources.items() if res.type.startswith(SAM_RESOURCE_PREFIX)),
        key=len,
        reverse=True,
    )
    for logical_id in expanded.resources:
        if logical_id in original.resources:
            continue
        for candidate in serverless:
            if logical_id.startswith(candidate):
                origin = original.resources[candidate]
                source_map.add(logical_id, origin.line, origin.column, candidate)
                break
    return source_map


def transform(
    template: Template,
    context: Optional[TransformContext] = None,
    *,
    expander: Optional[MacroExpander] = None,
) -> TransformResult:
    """Expand a SAM template into plain CloudFormation.

    Templates that are not SAM templates come back unchanged with an empty
    source map.
    """

    if not is_sam_template(template):
        return TransformResult(template=template)
    context = context or TransformContext()
    if expander is None:
        from .expander import SamTranslatorExpander

        expander = SamTranslatorExpander()

    document = serialise(template)
    logger.debug("Expanding SAM template %s for region %s", template.source_filename or "<memory>", context.region)
    try:
        expanded_bytes = expander.expand(document, context)
    except TransformError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise TransformError(
            f"SAM expansion failed: {exc}", kind=TransformError.EXPANSION_ERROR
        ) from exc

    try:
        expanded = parse(expanded_bytes, template.source_filename)
    except TemplateParseError as exc:
        raise TransformError(
            f"Expanded template could not be parsed: {exc.message}",
            kind=TransformError.REPARSE_ERROR,
            line=exc.line,
            column=exc.column,
        ) from exc

    source_map = build_source_map(template, expanded)
    logger.debug(
        "SAM expansion produced %d resources from %d", len(expanded.resources), len(template.resources)
    )
    return TransformResult(template=expanded, source_map=source_map)
