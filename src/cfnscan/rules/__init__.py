"""Rule base classes, the registry, and the built-in rule catalog."""
from .base import Match, Rule, RuleMetadata, expression_scopes
from .registry import (
    RULE_ID_PATTERN,
    RuleRegistry,
    get_rule,
    get_rule_metadata,
    get_rules,
    register_rule,
)

# Import built-in rules so they self-register with the registry.
from . import conditions  # noqa: F401,E402
from . import functions  # noqa: F401,E402
from . import limits  # noqa: F401,E402
from . import mappings  # noqa: F401,E402
from . import outputs  # noqa: F401,E402
from . import parameters  # noqa: F401,E402
from . import resources  # noqa: F401,E402
from . import rulessection  # noqa: F401,E402

__all__ = [
    "Match",
    "RULE_ID_PATTERN",
    "Rule",
    "RuleMetadata",
    "RuleRegistry",
    "expression_scopes",
    "get_rule",
    "get_rule_metadata",
    "get_rules",
    "register_rule",
]
