"""End-to-end lint pipeline: parse, optionally expand SAM, run rules."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .constants import PARSE_ERROR_ID, TRANSFORM_ERROR_ID
from .errors import CfnScanError, TemplateParseError, TransformError
from .findings import Finding, make_finding
from .runner import RunFilters, run
from .sam.detect import is_sam_template
from .sam.transform import MacroExpander, TransformContext, transform
from .template import Template, parse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LintOptions:
    """Normalized configuration for one lint invocation."""

    filters: RunFilters = field(default_factory=RunFilters)
    transform_sam: bool = True
    context: TransformContext = field(default_factory=TransformContext)


def lint_template(
    template: Template,
    options: Optional[LintOptions] = None,
    *,
    expander: Optional[MacroExpander] = None,
) -> List[Finding]:
    """Lint an already parsed template.

    Raises :class:`TransformError` when SAM expansion fails.
    """

    options = options or LintOptions()
    if options.transform_sam and is_sam_template(template):
        logger.debug("%s is a SAM template; expanding", template.source_filename or "<memory>")
        result = transform(template, options.context, expander=expander)
        return run(result.template, options.filters, source_map=result.source_map)
    return run(template, options.filters)


def _error_finding(rule_id: str, error: CfnScanError) -> Finding:
    return make_finding(rule_id, error.message, (), error.line or 1, error.column or 1)


def lint_bytes(
    data: Union[bytes, str],
    filename: str = "",
    options: Optional[LintOptions] = None,
    *,
    expander: Optional[MacroExpander] = None,
) -> List[Finding]:
    """Lint template text; parse and transform failures become a single finding."""

    try:
        template = parse(data, filename)
    except TemplateParseError as exc:
        logger.debug("Parse of %s failed: %s", filename or "<memory>", exc)
        return [_error_finding(PARSE_ERROR_ID, exc)]
    try:
        return lint_template(template, options, expander=expander)
    except TransformError as exc:
        logger.debug("SAM transform of %s failed: %s", filename or "<memory>", exc)
        return [_error_finding(TRANSFORM_ERROR_ID, exc)]


def lint_file(path: Union[str, Path], options: Optional[LintOptions] = None) -> List[Finding]:
    path = Path(path)
    return lint_bytes(path.read_bytes(), str(path), options)
