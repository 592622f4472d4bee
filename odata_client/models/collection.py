"""
odata_client.models.collection - Entity collection and pager
=============================================================

An :class:`ODataCollection` wraps an entity-set (or collection-valued
navigation/property) resource, the models of the current page and the pager
state derived from server annotations.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Type

from odata_client.core.errors import OperationNotSupportedError
from odata_client.models.model import ODataModel
from odata_client.resources.resource import ODataResource, ResourceKind
from odata_client.resources.responses import ODataEntitiesMeta, ODataEntityMeta

logger = logging.getLogger("odata_client.models")


@dataclass
class PagerState:
    """
    Paging state.

    Attributes
    ----------
    records : int, optional
        Total record count reported by the server
    size : int, optional
        Page size
    page : int
        Current page, starting at 1
    pages : int, optional
        ``ceil(records / size)`` when both are known
    """

    records: Optional[int] = None
    size: Optional[int] = None
    page: int = 1
    pages: Optional[int] = None

    def recompute(self) -> None:
        if self.records is not None and self.size:
            self.pages = math.ceil(self.records / self.size)
        else:
            self.pages = None
        self.page = self.clamp(self.page)

    def clamp(self, page: int) -> int:
        page = int(page)
        if self.pages is not None:
            page = min(page, self.pages)
        return max(1, page)


class ODataCollection:
    """
    Collection of models plus pager.

    Parameters
    ----------
    entities : list of dict or dict, optional
        Item payloads, or a whole collection payload (``value``/``results``)
    resource : ODataResource, optional
        Collection resource the items were read from
    meta : ODataEntitiesMeta, optional
        Collection annotations (count, next link)
    model : type, optional
        Model class for the items; defaults to the class registered for the
        bound type

    Examples
    --------
    >>> products = client.entity_set("Products").as_collection()
    >>> products.set_page_size(10)
    >>> asyncio.run(products.get_page(2))     # $top=10&$skip=10&$count=true
    >>> products.state
    PagerState(records=25, size=10, page=2, pages=3)
    """

    def __init__(
        self,
        entities: Any = None,
        *,
        resource: Optional[ODataResource] = None,
        meta: Optional[ODataEntitiesMeta] = None,
        model: Optional[Type[ODataModel]] = None,
    ) -> None:
        self._resource = resource
        self._model = model
        self._items: List[ODataModel] = []
        self._explicit_size: Optional[int] = None
        self.state = PagerState()
        if entities is not None:
            self.assign(entities, meta)

    @property
    def resource(self) -> Optional[ODataResource]:
        return self._resource

    @property
    def items(self) -> List[ODataModel]:
        return list(self._items)

    def _model_class(self) -> Type[ODataModel]:
        if self._model is not None:
            return self._model
        if self._resource is not None:
            return self._resource.client.model_class(self._resource.type())
        return ODataModel

    def _wrap(self, entity: Any) -> ODataModel:
        cls = self._model_class()
        if self._resource is None:
            return cls(entity)
        resource = self._resource.clone()
        if resource.kind in (ResourceKind.ENTITY, ResourceKind.NAVIGATION):
            data, _ = ODataEntityMeta.split(entity)
            parser = resource.client.settings.entity_parser_for_type(resource.type())
            key = parser.resolve_key(data) if isinstance(data, dict) else None
            if key is not None:
                resource.key(key)
        else:
            resource.options.clear()
        return cls(entity, resource=resource)

    # ---------------- state ----------------

    def assign(
        self,
        entities: Any,
        meta: Optional[ODataEntitiesMeta] = None,
        resource: Optional[ODataResource] = None,
        *,
        offset: int = 0,
    ) -> "ODataCollection":
        """
        Replace the items and recompute the pager state.

        ``records`` comes from the server count. ``size`` is the explicit
        page size, else the server page size, else the size already in use,
        else the number of items received. The server page size is the
        ``$skip`` of the next link minus ``offset``, the ``$skip`` of the
        request that returned ``entities``.
        """
        if resource is not None:
            self._resource = resource
        if not isinstance(entities, list):
            entities, split_meta = ODataEntitiesMeta.split(entities)
            meta = meta or split_meta
        meta = meta or ODataEntitiesMeta()

        self._items = [self._wrap(e) for e in entities]
        self.state.records = meta.count
        if self._explicit_size:
            self.state.size = self._explicit_size
        elif meta.skip and meta.skip > offset:
            self.state.size = meta.skip - offset
        elif not self.state.size:
            self.state.size = len(self._items) or None
        self.state.recompute()
        return self

    def set_page_size(self, size: int) -> "ODataCollection":
        self._explicit_size = int(size)
        self.state.size = self._explicit_size
        self.state.recompute()
        return self

    # ---------------- fetching ----------------

    def _check_resource(self) -> ODataResource:
        if self._resource is None:
            raise OperationNotSupportedError("The collection is not attached to a resource")
        return self._resource

    async def fetch(self, **options: Any) -> "ODataCollection":
        """Fetch the current page (or everything, while no page size is known)."""
        resource = self._check_resource().clone()
        size = self.state.size
        offset = size * (self.state.page - 1) if size else 0
        if size:
            resource.top(size).skip(offset)
        result = await resource.fetch_entities(with_count=True, **options)
        return self.assign(result.entities, result.meta, offset=offset)

    async def get_page(self, page: int, **options: Any) -> "ODataCollection":
        if self.state.size:
            self.state.page = self.state.clamp(page)
        return await self.fetch(**options)

    async def get_first_page(self, **options: Any) -> "ODataCollection":
        return await self.get_page(1, **options)

    async def get_previous_page(self, **options: Any) -> "ODataCollection":
        return await self.get_page(self.state.page - 1, **options)

    async def get_next_page(self, **options: Any) -> "ODataCollection":
        return await self.get_page(self.state.page + 1, **options)

    async def get_last_page(self, **options: Any) -> "ODataCollection":
        return await self.get_page(self.state.pages or self.state.page, **options)

    # ---------------- membership ----------------

    def _reference(self) -> ODataResource:
        resource = self._check_resource()
        if resource.kind != ResourceKind.NAVIGATION:
            raise OperationNotSupportedError(
                f"Members of a {resource.kind.value} collection are not references"
            )
        return resource.reference()

    async def add(self, model: ODataModel, **options: Any) -> "ODataCollection":
        """Add ``model`` to a collection-valued navigation (``POST .../$ref``)."""
        await self._reference().add_reference(model, **options)
        self._items.append(model)
        return self

    async def remove(self, model: ODataModel, **options: Any) -> "ODataCollection":
        """Remove ``model`` from a collection-valued navigation (``DELETE .../$ref?$id=``)."""
        await self._reference().remove_reference(model, **options)
        self._items = [m for m in self._items if m is not model]
        return self

    # ---------------- query forwarders ----------------

    def _query(self, method: str, value: Any) -> Any:
        result = getattr(self._check_resource(), method)(value)
        return self if value is not None else result

    def select(self, value: Any = None) -> Any:
        return self._query("select", value)

    def filter(self, value: Any = None) -> Any:
        return self._query("filter", value)

    def search(self, value: Any = None) -> Any:
        return self._query("search", value)

    def order_by(self, value: Any = None) -> Any:
        return self._query("order_by", value)

    def expand(self, value: Any = None) -> Any:
        return self._query("expand", value)

    def transform(self, value: Any = None) -> Any:
        return self._query("transform", value)

    # ---------------- sequence ----------------

    def __iter__(self) -> Iterator[ODataModel]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> ODataModel:
        return self._items[index]

    def to_entities(self) -> List[Dict[str, Any]]:
        return [m.to_entity() for m in self._items]

    def __repr__(self) -> str:
        bound = self._resource.type() if self._resource is not None else None
        return f"<{type(self).__name__} {bound} {len(self._items)} items {self.state}>"
