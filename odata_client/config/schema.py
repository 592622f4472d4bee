"""
odata_client.config.schema - Pydantic models for schema configuration
======================================================================

Declarative description of the types an OData service exposes. These models
are either written by hand (e.g. loaded from JSON/YAML) or produced by
:mod:`odata_client.odata.metadata` from a ``$metadata`` document.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class FieldConfig(BaseModel):
    """One structural or navigation property of an entity/complex type."""

    name: str
    type: str = Field(
        description="Qualified type name, e.g. Edm.String or NS.Category",
        json_schema_extra={"example": "Edm.String"},
    )
    key: bool = False
    navigation: bool = False
    collection: bool = False
    nullable: bool = True


class EntityConfig(BaseModel):
    """Entity or complex type."""

    name: str
    fields: List[FieldConfig] = Field(default_factory=list)
    complex: bool = False
    base: Optional[str] = Field(
        default=None,
        description="Qualified name of the base type, if any",
    )
    open: bool = False


class EnumConfig(BaseModel):
    """Enumeration type; ``members`` maps member names to values."""

    name: str
    members: Dict[str, int]
    flags: bool = False


class CallableConfig(BaseModel):
    """Function or action."""

    name: str
    action: bool = False
    bound: bool = False
    composable: bool = False
    parameters: List[FieldConfig] = Field(default_factory=list)
    return_type: Optional[str] = None
    return_collection: bool = False


class SchemaConfig(BaseModel):
    """One schema (namespace) of the service."""

    namespace: str
    alias: Optional[str] = None
    entities: List[EntityConfig] = Field(default_factory=list)
    enums: List[EnumConfig] = Field(default_factory=list)
    callables: List[CallableConfig] = Field(default_factory=list)
    entity_sets: Dict[str, str] = Field(
        default_factory=dict,
        description="Entity set / singleton name -> qualified entity type",
    )


class ApiConfig(BaseModel):
    """Top-level configuration handed to :class:`ODataSettings`."""

    service_root_url: str = Field(
        description="Service root; must not carry a query string",
        json_schema_extra={"example": "https://services.odata.org/V4/TripPinServiceRW/"},
    )
    params: Dict[str, str] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    string_as_enum: bool = False
    schemas: List[SchemaConfig] = Field(default_factory=list)

    @field_validator("service_root_url")
    @classmethod
    def _check_root(cls, value: str) -> str:
        if "?" in value:
            raise ValueError(
                "service_root_url must not contain a query string; use 'params' instead"
            )
        return value if value.endswith("/") else value + "/"
