"""
odata_client.resources.resource - Addressable OData resource
=============================================================

An :class:`ODataResource` identifies one thing on the server: an entity
set, an entity, a singleton, a property, a function or action call, a
reference, a count, the metadata document or the batch endpoint. It owns a
segment chain and a query option set; derivations return clones so that an
in-flight request is never affected by later mutation.

Examples
--------
>>> products = client.entity_set("Products")
>>> products.select(["Name", "Price"]).top(10).skip(20).path_and_params()
('Products', {'$select': 'Name,Price', '$top': '10', '$skip': '20'})
>>> products.entity(5).navigation_property("Category").path_and_params()
('Products(5)/Category', {})
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from odata_client.core.errors import (
    ConfigurationError,
    EntityKeyError,
    OperationNotSupportedError,
)
from odata_client.resources.options import (
    COUNT,
    EXPAND,
    FILTER,
    FORMAT,
    ORDER_BY,
    SEARCH,
    SELECT,
    SKIP,
    SKIPTOKEN,
    TOP,
    TRANSFORM,
    CUSTOM,
    Alias,
    OptionHandler,
    QueryOptions,
)
from odata_client.resources.responses import (
    ODataEntities,
    ODataEntitiesMeta,
    ODataEntity,
    ODataProperty,
)
from odata_client.resources.segments import PathSegments, Segment, SegmentKind

if TYPE_CHECKING:
    from odata_client.client import ODataClient

logger = logging.getLogger("odata_client.client")


class ResourceKind(str, Enum):
    ENTITY = "entity"
    SINGLETON = "singleton"
    NAVIGATION = "navigation"
    PROPERTY = "property"
    CALLABLE = "callable"
    VALUE = "value"
    REFERENCE = "reference"
    COUNT = "count"
    METADATA = "metadata"
    BATCH = "batch"


KIND_BY_SEGMENT = {
    SegmentKind.ENTITY_SET: ResourceKind.ENTITY,
    SegmentKind.SINGLETON: ResourceKind.SINGLETON,
    SegmentKind.NAVIGATION_PROPERTY: ResourceKind.NAVIGATION,
    SegmentKind.PROPERTY: ResourceKind.PROPERTY,
    SegmentKind.FUNCTION: ResourceKind.CALLABLE,
    SegmentKind.ACTION: ResourceKind.CALLABLE,
    SegmentKind.VALUE: ResourceKind.VALUE,
    SegmentKind.REFERENCE: ResourceKind.REFERENCE,
    SegmentKind.COUNT: ResourceKind.COUNT,
    SegmentKind.METADATA: ResourceKind.METADATA,
    SegmentKind.BATCH: ResourceKind.BATCH,
}

# Options dropped once a key addresses a single entity
COLLECTION_OPTIONS = (FILTER, ORDER_BY, COUNT, SKIP, TOP)


class ODataResource:
    """
    Clonable handle on one addressable OData resource.

    Parameters
    ----------
    client : ODataClient
        Owning client; supplies settings and the transport
    segments : PathSegments
        Path segment chain (owned exclusively by this resource)
    options : QueryOptions, optional
        Query options (owned exclusively by this resource)

    Raises
    ------
    ConfigurationError
        If the bound type does not resolve through the client settings
    """

    def __init__(
        self,
        client: "ODataClient",
        segments: PathSegments,
        options: Optional[QueryOptions] = None,
    ) -> None:
        self.client = client
        self._segments = segments
        self._options = options if options is not None else QueryOptions()
        bound = self._segments.type()
        if bound is not None:
            client.settings.require_type(bound)

    # ---------------- identity ----------------

    @property
    def kind(self) -> ResourceKind:
        """Recomputed from the last non-cast segment on every access."""
        last = self._segments.last(skip_types=True)
        if last is None:
            raise ConfigurationError("Resource has no path segments")
        return KIND_BY_SEGMENT[last.kind]

    @property
    def segments(self) -> PathSegments:
        return self._segments

    @property
    def options(self) -> QueryOptions:
        return self._options

    def type(self) -> Optional[str]:
        """Bound type: the type of the last typed segment."""
        return self._segments.type()

    def types(self) -> List[str]:
        return self._segments.types()

    def is_collection(self) -> bool:
        return self._segments.is_collection()

    def clone(self) -> "ODataResource":
        return ODataResource(self.client, self._segments.clone(), self._options.clone())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ODataResource):
            return NotImplemented
        return self.path_and_params() == other.path_and_params()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        path, params = self.path_and_params()
        return f"<{type(self).__name__} {self.kind.value} {path!r} {params!r}>"

    # ---------------- serialization ----------------

    def path_and_params(self) -> Tuple[str, Dict[str, str]]:
        path, aliases = self._segments.path_and_aliases()
        return path, self._options.params(aliases)

    def endpoint_url(self) -> str:
        path, _ = self.path_and_params()
        return self.client.endpoint_url(path)

    # ---------------- key ----------------

    def _entity_parser(self):
        bound = self.type()
        if bound is None:
            raise ConfigurationError(f"{self.kind.value} resource has no bound type")
        return self.client.settings.entity_parser_for_type(bound)

    def resolve_key(self, value: Any) -> Any:
        """
        Turn a scalar, dict or model into a key value.

        Dicts and models go through the key fields of the bound entity type,
        yielding a scalar for single-field keys and a dict otherwise.
        """
        if hasattr(value, "attributes"):
            value = dict(value.attributes)
        if not isinstance(value, dict):
            return value
        parser = self._entity_parser()
        if not parser.keys():
            return dict(value)
        key = parser.resolve_key(value)
        if key is None:
            raise EntityKeyError(f"Cannot resolve a key for '{parser.type}' from {sorted(value)}")
        return key

    def key(self, value: Any = None) -> Any:
        """
        Get or set the key of the last addressable segment.

        Parameters
        ----------
        value : scalar, dict or model, optional
            Key to set. Setting a key drops filter, orderby, count, skip
            and top, which only apply to collections.

        Returns
        -------
        OptionHandler or ODataResource
            The key handle when reading, ``self`` when setting
        """
        segment = self._segments.last_addressable()
        if value is None:
            if segment is None:
                return OptionHandler({}, "key")
            return segment.key()
        if segment is None:
            raise OperationNotSupportedError(f"A {self.kind.value} resource cannot carry a key")
        segment.option("key", self.resolve_key(value))
        self._options.remove(*COLLECTION_OPTIONS)
        return self

    def has_key(self) -> bool:
        return not self.key().empty()

    def entity(self, key: Any = None) -> "ODataResource":
        """Clone addressing one entity (``Products(5)``)."""
        resource = self.clone()
        if key is not None:
            resource.key(key)
        return resource

    # ---------------- derivation ----------------

    def _derive(
        self,
        kind: SegmentKind,
        name: str,
        *,
        type: Optional[str] = None,
        collection: bool = False,
        keep: Tuple[str, ...] = (FORMAT,),
    ) -> "ODataResource":
        segments = self._segments.clone()
        segments.add(kind, name, type=type, collection=collection)
        options = self._options.clone()
        options.keep(*keep)
        return ODataResource(self.client, segments, options)

    def _field(self, name: str):
        bound = self.type()
        if bound is None:
            raise ConfigurationError(f"{self.kind.value} resource has no bound type")
        field = self.client.settings.entity_parser_for_type(bound).field(name)
        if field is None:
            raise ConfigurationError(f"'{bound}' has no field '{name}'")
        return field

    def property(self, name: str) -> "ODataResource":
        field = self._field(name)
        return self._derive(SegmentKind.PROPERTY, name, type=field.type, collection=field.collection)

    def navigation_property(self, name: str) -> "ODataResource":
        if self.is_collection():
            raise EntityKeyError(
                f"Cannot navigate '{name}' from a collection; set a key first"
            )
        field = self._field(name)
        return self._derive(
            SegmentKind.NAVIGATION_PROPERTY, name, type=field.type, collection=field.collection
        )

    def cast(self, type: str) -> "ODataResource":
        self.client.settings.require_type(type)
        return self._derive(SegmentKind.TYPE, type, type=type, collection=self.is_collection())

    def _callable(self, kind: SegmentKind, name: str, return_type: Optional[str]) -> "ODataResource":
        config = self.client.settings.callable_for_name(name)
        collection = False
        if config is not None:
            return_type = return_type or config.return_type
            collection = config.return_collection
        return self._derive(kind, name, type=return_type, collection=collection)

    def function(self, name: str, return_type: Optional[str] = None) -> "ODataResource":
        return self._callable(SegmentKind.FUNCTION, name, return_type)

    def action(self, name: str, return_type: Optional[str] = None) -> "ODataResource":
        return self._callable(SegmentKind.ACTION, name, return_type)

    def value(self) -> "ODataResource":
        return self._derive(SegmentKind.VALUE, "$value")

    def reference(self) -> "ODataResource":
        return self._derive(SegmentKind.REFERENCE, "$ref")

    def count(self) -> "ODataResource":
        # $count honors the filter and search of the collection
        return self._derive(SegmentKind.COUNT, "$count", keep=(FILTER, SEARCH, FORMAT))

    # ---------------- query options ----------------

    def _query(self, name: str, value: Any) -> Any:
        if value is None:
            return self._options.option(name)
        self._options.option(name, value)
        return self

    def select(self, value: Any = None) -> Any:
        return self._query(SELECT, value)

    def filter(self, value: Any = None) -> Any:
        return self._query(FILTER, value)

    def search(self, value: Any = None) -> Any:
        return self._query(SEARCH, value)

    def order_by(self, value: Any = None) -> Any:
        return self._query(ORDER_BY, value)

    def expand(self, value: Any = None) -> Any:
        return self._query(EXPAND, value)

    def transform(self, value: Any = None) -> Any:
        return self._query(TRANSFORM, value)

    def top(self, value: Optional[int] = None) -> Any:
        return self._query(TOP, value)

    def skip(self, value: Optional[int] = None) -> Any:
        return self._query(SKIP, value)

    def skiptoken(self, value: Optional[str] = None) -> Any:
        return self._query(SKIPTOKEN, value)

    def format(self, value: Optional[str] = None) -> Any:
        return self._query(FORMAT, value)

    def custom(self, value: Optional[Dict[str, Any]] = None) -> Any:
        return self._query(CUSTOM, value)

    def alias(self, name: str, value: Any = None) -> Alias:
        return self._options.alias(name, value)

    def has_option(self, name: str) -> bool:
        return self._options.has(name)

    def remove_option(self, *names: str) -> "ODataResource":
        self._options.remove(*names)
        return self

    def parameters(self, value: Optional[Dict[str, Any]] = None) -> Any:
        """Function parameters of the last callable segment."""
        segment = self._segments.last(skip_types=True)
        if segment is None or segment.kind not in (SegmentKind.FUNCTION, SegmentKind.ACTION):
            raise OperationNotSupportedError(f"A {self.kind.value} resource has no parameters")
        if value is None:
            return segment.parameters()
        segment.option("parameters", value)
        return self

    # ---------------- verbs ----------------

    async def get(self, **options: Any) -> Any:
        return await self.client.request("GET", self, **options)

    async def post(self, body: Any = None, **options: Any) -> Any:
        return await self.client.request("POST", self, body=body, **options)

    async def put(self, body: Any = None, **options: Any) -> Any:
        return await self.client.request("PUT", self, body=body, **options)

    async def patch(self, body: Any = None, **options: Any) -> Any:
        return await self.client.request("PATCH", self, body=body, **options)

    async def delete(self, **options: Any) -> Any:
        return await self.client.request("DELETE", self, **options)

    # ---------------- typed reads ----------------

    def _require_key(self, action: str) -> None:
        if self.kind == ResourceKind.ENTITY and not self.has_key():
            raise EntityKeyError(f"Cannot {action} an entity without a key")

    async def fetch_entity(self, **options: Any) -> ODataEntity:
        self._require_key("fetch")
        return await self.get(response_type="entity", **options)

    async def fetch_entities(self, *, with_count: bool = False, **options: Any) -> ODataEntities:
        return await self.get(response_type="entities", with_count=with_count, **options)

    async def fetch_property(self, **options: Any) -> ODataProperty:
        return await self.get(response_type="property", **options)

    async def fetch_value(self, **options: Any) -> Any:
        target = self if self.kind == ResourceKind.VALUE else self.value()
        result = await target.get(response_type="value", **options)
        return result.value

    async def fetch_count(self, **options: Any) -> int:
        target = self if self.kind == ResourceKind.COUNT else self.count()
        text = await target.get(response_type="text", **options)
        return int(str(text).strip())

    async def fetch_all(self, *, max_pages: Optional[int] = None, **options: Any) -> List[Dict[str, Any]]:
        """
        Read every page of a collection, following next links.

        Parameters
        ----------
        max_pages : int, optional
            Maximum number of pages to fetch

        Returns
        -------
        list of dict
            All entity payloads across pages
        """
        out: List[Dict[str, Any]] = []
        result = await self.fetch_entities(**options)
        out.extend(result.entities)
        pages = 1
        seen = set()
        next_link = result.meta.next_link
        while next_link and (max_pages is None or pages < max_pages):
            if next_link in seen:
                break
            seen.add(next_link)
            payload = await self.client.request_url("GET", next_link)
            page = ODataEntities.from_payload(payload)
            out.extend(page.entities)
            pages += 1
            next_link = page.meta.next_link
        logger.debug("fetch_all %s: %d records in %d pages", self._segments.path(), len(out), pages)
        return out

    async def fetch_model(self, **options: Any) -> Any:
        result = await self.fetch_entity(**options)
        return self.as_model(result.entity, result.meta)

    async def fetch_collection(self, *, with_count: bool = True, **options: Any) -> Any:
        result = await self.fetch_entities(with_count=with_count, **options)
        return self.as_collection(result.entities, result.meta)

    async def fetch_metadata(self, **options: Any):
        """Fetch and parse the ``$metadata`` document."""
        if self.kind != ResourceKind.METADATA:
            raise OperationNotSupportedError("fetch_metadata needs the metadata resource")
        from odata_client.odata.metadata import ODataMetadata

        headers = dict(options.pop("headers", None) or {})
        headers.setdefault("Accept", "application/xml")
        text = await self.get(response_type="text", headers=headers, **options)
        return ODataMetadata.parse(text)

    async def call(
        self,
        params: Optional[Dict[str, Any]] = None,
        *,
        response_type: str = "json",
        **options: Any,
    ) -> Any:
        """
        Invoke a function (GET, parameters in the path) or an action (POST,
        parameters in the body).
        """
        last = self._segments.last(skip_types=True)
        if last is None or last.kind not in (SegmentKind.FUNCTION, SegmentKind.ACTION):
            raise OperationNotSupportedError(f"Cannot call a {self.kind.value} resource")
        resource = self.clone()
        if last.kind == SegmentKind.FUNCTION:
            if params is not None:
                resource.parameters(params)
            return await resource.get(response_type=response_type, **options)
        return await resource.post(params or {}, response_type=response_type, **options)

    # ---------------- references ----------------

    def _require_reference(self) -> None:
        if self.kind != ResourceKind.REFERENCE:
            raise OperationNotSupportedError(f"{self.kind.value} resource is not a $ref")

    @staticmethod
    def _target_url(target: Any) -> str:
        if hasattr(target, "entity_resource"):
            target = target.entity_resource()
        if isinstance(target, ODataResource):
            return target.endpoint_url()
        return str(target)

    async def set_reference(self, target: Any, **options: Any) -> ODataEntity:
        """PUT a single-valued reference; ``target`` is a model, resource or URL."""
        self._require_reference()
        body = {"@odata.id": self._target_url(target)}
        return await self.put(body, response_type="entity", **options)

    async def unset_reference(self, **options: Any) -> ODataEntity:
        self._require_reference()
        return await self.delete(response_type="entity", **options)

    async def add_reference(self, target: Any, **options: Any) -> ODataEntity:
        """POST a member reference into a collection-valued navigation."""
        self._require_reference()
        body = {"@odata.id": self._target_url(target)}
        return await self.post(body, response_type="entity", **options)

    async def remove_reference(self, target: Any, **options: Any) -> ODataEntity:
        self._require_reference()
        params = dict(options.pop("params", None) or {})
        params["$id"] = self._target_url(target)
        return await self.delete(response_type="entity", params=params, **options)

    # ---------------- wrapping ----------------

    def as_model(self, entity: Any = None, meta: Any = None):
        """Wrap ``entity`` in the model class registered for the bound type."""
        cls = self.client.model_class(self.type())
        return cls(entity, resource=self.clone(), meta=meta)

    def as_collection(self, entities: Any = None, meta: Optional[ODataEntitiesMeta] = None):
        """Wrap ``entities`` in the collection class registered for the bound type."""
        cls = self.client.collection_class(self.type())
        return cls(entities, resource=self.clone(), meta=meta)

    def segment(self, kind: SegmentKind, name: Optional[str] = None) -> Optional[Segment]:
        return self._segments.segment(kind, name)
