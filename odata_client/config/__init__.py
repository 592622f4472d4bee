"""
odata_client.config - Schema configuration
==========================================

- ApiConfig / SchemaConfig: pydantic models describing a service
- EdmParser / EnumParser / EntityParser: wire <-> Python value parsers
- ODataSettings: type resolution and model registry

"""

from odata_client.config.schema import (
    ApiConfig,
    CallableConfig,
    EntityConfig,
    EnumConfig,
    FieldConfig,
    SchemaConfig,
)
from odata_client.config.parsers import EdmParser, EntityParser, EnumParser, ODataField
from odata_client.config.settings import ODataSettings

__all__ = [
    "ApiConfig",
    "CallableConfig",
    "EntityConfig",
    "EnumConfig",
    "FieldConfig",
    "SchemaConfig",
    "EdmParser",
    "EntityParser",
    "EnumParser",
    "ODataField",
    "ODataSettings",
]
