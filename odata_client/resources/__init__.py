"""
odata_client.resources - Addressable resources
==============================================

- PathSegments: path segment chain
- QueryOptions / OptionHandler: query option set with shape normalization
- builder: path and query serialization
- ODataResource: clonable resource handle with async verbs

"""

from odata_client.resources.options import Alias, OptionHandler, QueryOptions
from odata_client.resources.segments import PathSegments, Segment, SegmentKind
from odata_client.resources.builder import build_filter, build_expand, escape_odata_literal
from odata_client.resources.responses import (
    ODataEntities,
    ODataEntitiesMeta,
    ODataEntity,
    ODataEntityMeta,
    ODataProperty,
)
from odata_client.resources.resource import ODataResource, ResourceKind

__all__ = [
    "Alias",
    "OptionHandler",
    "QueryOptions",
    "PathSegments",
    "Segment",
    "SegmentKind",
    "build_filter",
    "build_expand",
    "escape_odata_literal",
    "ODataEntities",
    "ODataEntitiesMeta",
    "ODataEntity",
    "ODataEntityMeta",
    "ODataProperty",
    "ODataResource",
    "ResourceKind",
]
