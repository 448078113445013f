"""Template size limits and early warnings before they are reached."""
from __future__ import annotations

import math
from typing import Iterable

from ..constants import (
    APPROACHING_LIMIT_RATIO,
    ENTITY_SECTIONS,
    MAX_MAPPINGS,
    MAX_NAME_LENGTH,
    MAX_OUTPUTS,
    MAX_PARAMETERS,
    MAX_RESOURCES,
    SECTION_MAPPINGS,
    SECTION_OUTPUTS,
    SECTION_PARAMETERS,
    SECTION_RESOURCES,
)
from ..template import Template
from .base import Match, Rule, RuleMetadata
from .registry import register_rule


class _SectionCountLimit(Rule):
    section = ""
    ceiling = 0

    def match(self, template: Template) -> Iterable[Match]:
        count = len(template.section_names(self.section))
        if count > self.ceiling:
            yield Match(
                f"The template declares {count} {self.section.lower()}; the limit is {self.ceiling}",
                (self.section,),
            )


class _ApproachingSectionLimit(_SectionCountLimit):
    def match(self, template: Template) -> Iterable[Match]:
        count = len(template.section_names(self.section))
        threshold = math.ceil(self.ceiling * APPROACHING_LIMIT_RATIO)
        if threshold <= count <= self.ceiling:
            yield Match(
                f"The template declares {count} {self.section.lower()}, approaching the limit of {self.ceiling}",
                (self.section,),
            )


@register_rule
class ParameterLimit(_SectionCountLimit):
    metadata = RuleMetadata("E2010", "Parameter count within the limit", tags=("parameters", "limits"))
    section = SECTION_PARAMETERS
    ceiling = MAX_PARAMETERS


@register_rule
class ResourceLimit(_SectionCountLimit):
    metadata = RuleMetadata("E3010", "Resource count within the limit", tags=("resources", "limits"))
    section = SECTION_RESOURCES
    ceiling = MAX_RESOURCES


@register_rule
class OutputLimit(_SectionCountLimit):
    metadata = RuleMetadata("E6010", "Output count within the limit", tags=("outputs", "limits"))
    section = SECTION_OUTPUTS
    ceiling = MAX_OUTPUTS


@register_rule
class MappingLimit(_SectionCountLimit):
    metadata = RuleMetadata("E7010", "Mapping count within the limit", tags=("mappings", "limits"))
    section = SECTION_MAPPINGS
    ceiling = MAX_MAPPINGS


@register_rule
class ParameterLimitApproaching(_ApproachingSectionLimit):
    metadata = RuleMetadata("I2010", "Parameter count approaching the limit", tags=("parameters", "limits"))
    section = SECTION_PARAMETERS
    ceiling = MAX_PARAMETERS


@register_rule
class ResourceLimitApproaching(_ApproachingSectionLimit):
    metadata = RuleMetadata("I3010", "Resource count approaching the limit", tags=("resources", "limits"))
    section = SECTION_RESOURCES
    ceiling = MAX_RESOURCES


@register_rule
class OutputLimitApproaching(_ApproachingSectionLimit):
    metadata = RuleMetadata("I6010", "Output count approaching the limit", tags=("outputs", "limits"))
    section = SECTION_OUTPUTS
    ceiling = MAX_OUTPUTS


@register_rule
class MappingLimitApproaching(_ApproachingSectionLimit):
    metadata = RuleMetadata("I7010", "Mapping count approaching the limit", tags=("mappings", "limits"))
    section = SECTION_MAPPINGS
    ceiling = MAX_MAPPINGS


@register_rule
class NameLength(Rule):
    metadata = RuleMetadata(
        rule_id="E3011",
        short_description="Logical IDs are within the name length limit",
        tags=("limits",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for section in ENTITY_SECTIONS:
            for name in template.section_names(section):
                if len(name) > MAX_NAME_LENGTH:
                    yield Match(
                        f"{section[:-1]} name has {len(name)} characters; the limit is {MAX_NAME_LENGTH}",
                        (section, name),
                    )
