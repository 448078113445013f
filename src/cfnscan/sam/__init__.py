"""SAM detection, expansion and source mapping."""
from .detect import has_serverless_transform, is_sam_resource_type, is_sam_template, sam_resources
from .sourcemap import SourceLocation, SourceMap, map_finding
from .transform import MacroExpander, TransformContext, TransformResult, build_source_map, transform

__all__ = [
    "MacroExpander",
    "SourceLocation",
    "SourceMap",
    "TransformContext",
    "TransformResult",
    "build_source_map",
    "has_serverless_transform",
    "is_sam_resource_type",
    "is_sam_template",
    "map_finding",
    "sam_resources",
    "transform",
]
