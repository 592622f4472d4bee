"""
odata_client.config.settings - Configuration collaborator
==========================================================

Resolves bound type names to field metadata, parsers, and the model /
collection classes used to wrap payloads of that type.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, Union

from pydantic import ValidationError

from odata_client.config.parsers import EdmParser, EntityParser, EnumParser, ODataField
from odata_client.config.schema import ApiConfig, CallableConfig, EntityConfig, SchemaConfig
from odata_client.core.errors import ConfigurationError

logger = logging.getLogger("odata_client.settings")

Parser = Union[EdmParser, EnumParser, EntityParser]


class ODataSettings:
    """
    Schema-driven configuration for one OData service.

    Parameters
    ----------
    config : ApiConfig or dict
        Service root, default params/headers and schemas. Plain dicts are
        validated through :class:`ApiConfig`.

    Examples
    --------
    >>> settings = ODataSettings({
    ...     "service_root_url": "https://host/odata/",
    ...     "schemas": [{
    ...         "namespace": "Shop",
    ...         "entities": [{"name": "Product", "fields": [
    ...             {"name": "ID", "type": "Edm.Int32", "key": True},
    ...             {"name": "Name", "type": "Edm.String"},
    ...         ]}],
    ...         "entity_sets": {"Products": "Shop.Product"},
    ...     }],
    ... })
    >>> [f.name for f in settings.fields_for_type("Shop.Product")]
    ['ID', 'Name']
    """

    def __init__(self, config: Union[ApiConfig, Dict[str, Any]]) -> None:
        if not isinstance(config, ApiConfig):
            try:
                config = ApiConfig.model_validate(config)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid OData configuration: {e}") from e
        self.config = config
        self.service_root_url = config.service_root_url
        self.params = dict(config.params)
        self.headers = dict(config.headers)
        self.string_as_enum = config.string_as_enum
        self.schemas: List[SchemaConfig] = list(config.schemas)

        self._parsers: Dict[str, Parser] = {}
        self._callables: Dict[str, Tuple[str, CallableConfig]] = {}
        self._models: Dict[str, type] = {}
        self._collections: Dict[str, type] = {}
        self._configure()

    def _configure(self) -> None:
        pending: List[Tuple[str, EntityConfig]] = []
        for schema in self.schemas:
            for enum in schema.enums:
                parser = EnumParser(enum, schema.namespace)
                self._register(schema, enum.name, parser)
            for entity in schema.entities:
                pending.append((schema.namespace, entity))
            for call in schema.callables:
                for name in self._names(schema, call.name):
                    self._callables[name] = (schema.namespace, call)
                self._callables.setdefault(call.name, (schema.namespace, call))

        # Base types first, so that derived parsers can inherit their fields
        by_type = {f"{ns}.{e.name}": (ns, e) for ns, e in pending}
        for ns, entity in pending:
            self._entity_parser(f"{ns}.{entity.name}", by_type)
        logger.debug("configured %d types, %d callables", len(self._parsers), len(self._callables))

    def _entity_parser(self, type: str, by_type: Dict[str, Tuple[str, EntityConfig]]) -> EntityParser:
        existing = self._parsers.get(type)
        if isinstance(existing, EntityParser):
            return existing
        ns, entity = by_type[type]
        base = None
        if entity.base:
            base_type = self._qualify(entity.base)
            if base_type not in by_type:
                raise ConfigurationError(f"Unknown base type '{entity.base}' for '{type}'")
            base = self._entity_parser(base_type, by_type)
        parser = EntityParser(entity, ns, self.parser_for_type, base=base)
        schema = self.schema_for_type(type)
        self._register(schema, entity.name, parser)
        return parser

    def _register(self, schema: Optional[SchemaConfig], name: str, parser: Parser) -> None:
        if schema is None:
            return
        for qualified in self._names(schema, name):
            self._parsers[qualified] = parser

    @staticmethod
    def _names(schema: SchemaConfig, name: str) -> List[str]:
        names = [f"{schema.namespace}.{name}"]
        if schema.alias:
            names.append(f"{schema.alias}.{name}")
        return names

    def _qualify(self, type: str) -> str:
        for schema in self.schemas:
            if schema.alias and type.startswith(schema.alias + "."):
                return schema.namespace + type[len(schema.alias):]
        return type

    # ---------------- lookups ----------------

    def schema_for_type(self, type: str) -> Optional[SchemaConfig]:
        """Schema whose namespace (or alias) prefixes ``type``."""
        for schema in sorted(self.schemas, key=lambda s: -len(s.namespace)):
            if type.startswith(schema.namespace + "."):
                return schema
            if schema.alias and type.startswith(schema.alias + "."):
                return schema
        return None

    def has_type(self, type: str) -> bool:
        return (
            type.startswith("Edm.")
            or type in self._parsers
            or type in self._callables
        )

    def require_type(self, type: str) -> str:
        """Return ``type`` if it resolves, raise :class:`ConfigurationError` otherwise."""
        if not self.has_type(type):
            raise ConfigurationError(f"The type '{type}' does not belong to any known configuration")
        return type

    def parser_for_type(self, type: str) -> Optional[Parser]:
        if type.startswith("Edm."):
            return EdmParser(type)
        return self._parsers.get(type)

    def entity_parser_for_type(self, type: str) -> EntityParser:
        parser = self._parsers.get(type)
        if not isinstance(parser, EntityParser):
            raise ConfigurationError(f"No entity configuration for type '{type}'")
        return parser

    def enum_parser_for_type(self, type: str) -> EnumParser:
        parser = self._parsers.get(type)
        if not isinstance(parser, EnumParser):
            raise ConfigurationError(f"No enum configuration for type '{type}'")
        return parser

    def fields_for_type(self, type: str) -> List[ODataField]:
        return self.entity_parser_for_type(type).fields()

    def callable_for_name(self, name: str) -> Optional[CallableConfig]:
        entry = self._callables.get(name)
        return entry[1] if entry else None

    def type_for_entity_set(self, name: str) -> Optional[str]:
        for schema in self.schemas:
            if name in schema.entity_sets:
                return self._qualify(schema.entity_sets[name])
        return None

    def entity_sets(self) -> Iterable[str]:
        for schema in self.schemas:
            yield from schema.entity_sets

    # ---------------- model registry ----------------

    def register_model(self, type: str, model: type, collection: Optional[type] = None) -> None:
        """Use ``model`` (and ``collection``) to wrap payloads of ``type``."""
        self.require_type(type)
        self._models[type] = model
        if collection is not None:
            self._collections[type] = collection

    def model_for_type(self, type: Optional[str]) -> Optional[Type]:
        return self._models.get(type) if type else None

    def collection_for_type(self, type: Optional[str]) -> Optional[Type]:
        return self._collections.get(type) if type else None

    # ---------------- constructors ----------------

    @classmethod
    def from_metadata(
        cls,
        xml_text: str,
        service_root_url: str,
        **options: Any,
    ) -> "ODataSettings":
        """
        Build settings from a ``$metadata`` document.

        Parameters
        ----------
        xml_text : str
            CSDL (EDMX) document
        service_root_url : str
            Service root URL
        **options
            Further :class:`ApiConfig` fields (params, headers, string_as_enum)
        """
        from odata_client.odata.metadata import ODataMetadata

        meta = ODataMetadata.parse(xml_text)
        return cls(ApiConfig(service_root_url=service_root_url, schemas=meta.schemas, **options))
