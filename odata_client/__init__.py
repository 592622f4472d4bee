"""
odata_client - OData data-access layer
======================================

Builds OData resource URLs and query strings, executes requests and turns
payloads back into typed entities, relations and paged collections.

Usage
-----
>>> import asyncio
>>> from odata_client import ConnectionContext
>>>
>>> with ConnectionContext("https://services.odata.org/V4/TripPinServiceRW/") as conn:
...     client = conn.get_client()
...     people = client.entity_set("People").select(["UserName", "FirstName"]).top(5)
...     page = asyncio.run(people.fetch_collection())
...     for person in page:
...         print(person["UserName"])

Subpackages
-----------
- odata_client.core: Transport session, connection bootstrap, errors
- odata_client.config: Schema configuration, value parsers, settings
- odata_client.resources: Path segments, query options, serialization, resources
- odata_client.models: Entity models and paged collections
- odata_client.odata: $metadata parsing and entity set service helpers

"""

__version__ = "0.1.0"

# Core exports - available at package root
from odata_client.core.errors import (
    ODataError,
    ConfigurationError,
    EntityKeyError,
    TypeMismatchError,
    OperationNotSupportedError,
)
from odata_client.core.session import (
    ODataAuth,
    ODataConfig,
    ODataSession,
    ODataUpstreamError,
)
from odata_client.core.connection import ConnectionContext

from odata_client.config import ApiConfig, ODataSettings
from odata_client.client import ODataClient
from odata_client.resources import ODataResource, ResourceKind
from odata_client.models import Attribute, Relation, ODataModel, ODataCollection
from odata_client.odata import ODataEntityService, ODataMetadata

__all__ = [
    # Version
    "__version__",
    # Errors
    "ODataError",
    "ConfigurationError",
    "EntityKeyError",
    "TypeMismatchError",
    "OperationNotSupportedError",
    "ODataUpstreamError",
    # Core
    "ODataAuth",
    "ODataConfig",
    "ODataSession",
    "ConnectionContext",
    # Configuration
    "ApiConfig",
    "ODataSettings",
    # Client
    "ODataClient",
    "ODataResource",
    "ResourceKind",
    "ODataModel",
    "ODataCollection",
    "Attribute",
    "Relation",
    "ODataEntityService",
    "ODataMetadata",
]
