"""Static analysis for AWS CloudFormation and SAM templates."""
from .constants import CFNSCAN_VERSION as __version__
from .errors import CfnScanError, RuleRegistrationError, TemplateParseError, TransformError
from .findings import Finding
from .lint import LintOptions, lint_bytes, lint_file, lint_template
from .runner import RunFilters, run
from .sam import TransformContext, is_sam_template, transform
from .template import Template, parse

__all__ = [
    "CfnScanError",
    "Finding",
    "LintOptions",
    "RuleRegistrationError",
    "RunFilters",
    "Template",
    "TemplateParseError",
    "TransformContext",
    "TransformError",
    "__version__",
    "is_sam_template",
    "lint_bytes",
    "lint_file",
    "lint_template",
    "parse",
    "run",
    "transform",
]
