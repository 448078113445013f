"""SAM template detection."""
from __future__ import annotations

from typing import Dict

from ..constants import SAM_RESOURCE_PREFIX, SAM_RESOURCE_TYPES, SAM_TRANSFORM
from ..template import Resource, Template


def is_sam_resource_type(resource_type: str) -> bool:
    return resource_type in SAM_RESOURCE_TYPES


def has_serverless_transform(template: Template) -> bool:
    transform = template.transform
    if isinstance(transform, str):
        return transform == SAM_TRANSFORM
    if isinstance(transform, list):
        return SAM_TRANSFORM in transform
    return False


def sam_resources(template: Template) -> Dict[str, Resource]:
    return {
        name: resource
        for name, resource in template.resources.items()
        if resource.type.startswith(SAM_RESOURCE_PREFIX)
    }


def is_sam_template(template: Template) -> bool:
    """True when the template declares the SAM transform or any Serverless resource."""

    return has_serverless_transform(template) or bool(sam_resources(template))
