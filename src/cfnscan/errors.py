"""Exception taxonomy for parse, transform and registration failures."""
from __future__ import annotations


class CfnScanError(RuntimeError):
    """Base class for errors that abort linting a template."""

    def __init__(self, message: str, *, kind: str = "", line: int = 0, column: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line:
            return f"{self.message} (line {self.line}, column {self.column})"
        return self.message


class TemplateParseError(CfnScanError):
    """Raised when bytes cannot be turned into a template."""

    DUPLICATE_KEY = "duplicate_key"
    MALFORMED_YAML = "malformed_yaml"
    UNKNOWN_INTRINSIC_TAG = "unknown_intrinsic_tag"
    ROOT_NOT_MAPPING = "root_not_mapping"


class TransformError(CfnScanError):
    """Raised when SAM expansion of a template fails."""

    SERIALISATION_ERROR = "serialisation_error"
    EXPANSION_ERROR = "expansion_error"
    REPARSE_ERROR = "reparse_error"


class RuleRegistrationError(ValueError):
    """Raised when a rule cannot be added to the registry."""
