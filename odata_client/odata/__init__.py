"""
odata_client.odata - Service metadata and entity set helpers
============================================================

- ODataMetadata: $metadata parsing and field validation
- ODataEntityService: entity set reads, CRUD and fetch-or-create

"""

from odata_client.odata.metadata import ODataMetadata, EntitySetInfo
from odata_client.odata.service import ODataEntityService

__all__ = [
    "ODataMetadata",
    "EntitySetInfo",
    "ODataEntityService",
]
