"""
odata_client.odata.service - Entity set service
================================================

Entity-set scoped helpers on top of :class:`ODataResource` and
:class:`ODataModel`: paged reads, CRUD by key and the not-found fallback
used by ``fetch_or_create``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from odata_client.core.session import ODataUpstreamError
from odata_client.models.collection import ODataCollection
from odata_client.models.model import ODataModel
from odata_client.resources.builder import _join_csv
from odata_client.resources.resource import ODataResource

logger = logging.getLogger("odata_client.client")


class ODataEntityService:
    """
    Service-scoped access to one entity set.

    Parameters
    ----------
    client : ODataClient
        Client owning the transport and settings
    entity_set : str
        Entity set name
    type : str, optional
        Entity type; defaults to the configured type of the entity set

    Examples
    --------
    >>> products = ODataEntityService(client, "Products")
    >>> page = asyncio.run(products.fetch_collection(select=["ID", "Name"], top=50))
    >>> milk = asyncio.run(products.fetch_one(5))
    >>> milk["Price"] = 1.25
    >>> asyncio.run(products.update(milk))
    """

    def __init__(self, client: Any, entity_set: str, *, type: Optional[str] = None) -> None:
        self.client = client
        self.name = entity_set
        self.type = type or client.settings.type_for_entity_set(entity_set)

    def entities(self) -> ODataResource:
        """Fresh resource for the whole entity set."""
        return self.client.entity_set(self.name, self.type)

    def entity(self, key: Any = None) -> ODataResource:
        return self.entities().entity(key)

    def _query(
        self,
        resource: ODataResource,
        *,
        select: Optional[Sequence[str]] = None,
        filter: Any = None,
        order_by: Any = None,
        expand: Any = None,
        top: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> ODataResource:
        if select:
            resource.select(_join_csv(list(select)))
        if filter is not None:
            resource.filter(filter)
        if order_by is not None:
            resource.order_by(order_by)
        if expand is not None:
            resource.expand(expand)
        if top is not None:
            resource.top(int(top))
        if skip is not None:
            resource.skip(int(skip))
        return resource

    # ---------------- reads ----------------

    async def fetch_collection(self, **query: Any) -> ODataCollection:
        """
        Read one page of the entity set.

        Parameters
        ----------
        **query
            select, filter, order_by, expand, top, skip

        Returns
        -------
        ODataCollection
            Page of models with pager state (``$count`` requested)
        """
        return await self._query(self.entities(), **query).fetch_collection()

    async def fetch_all(self, *, max_pages: Optional[int] = None, **query: Any) -> List[Dict[str, Any]]:
        """
        Read all pages of results into a single list, following next links.

        Parameters
        ----------
        max_pages : int, optional
            Maximum number of pages to fetch
        **query
            select, filter, order_by, expand, top, skip

        Returns
        -------
        list of dict
            All entity records across pages
        """
        return await self._query(self.entities(), **query).fetch_all(max_pages=max_pages)

    async def fetch_one(self, key: Any, **query: Any) -> ODataModel:
        """Read one entity by key (select/expand are honored)."""
        return await self._query(self.entity(key), **query).fetch_model()

    # ---------------- writes ----------------

    def new(self, attributes: Optional[Dict[str, Any]] = None) -> ODataModel:
        """Unsaved model attached to the entity set."""
        return self.entities().as_model(attributes or {})

    async def create(self, attributes: Dict[str, Any]) -> ODataModel:
        return await self.new(attributes).create()

    async def update(self, model: ODataModel, **options: Any) -> ODataModel:
        return await model.update(**options)

    async def save(self, model: ODataModel, **options: Any) -> ODataModel:
        return await model.save(**options)

    async def assign(self, key: Any, attributes: Dict[str, Any], *, etag: Optional[str] = None) -> Any:
        """Partial update (``PATCH``) of the entity with ``key``."""
        resource = self.entity(key)
        body = self.client.settings.entity_parser_for_type(self.type).serialize(attributes)
        return await resource.patch(body, etag=etag, response_type="entity")

    async def destroy(self, model: ODataModel, **options: Any) -> None:
        await model.destroy(**options)

    async def fetch_or_create(self, key: Any, attributes: Dict[str, Any]) -> ODataModel:
        """
        Read the entity with ``key``; create it from ``attributes`` on 404.

        Other upstream errors propagate unchanged.
        """
        try:
            return await self.fetch_one(key)
        except ODataUpstreamError as e:
            if e.status != 404:
                raise
            logger.debug("%s(%r) not found; creating it", self.name, key)
        return await self.create(attributes)
