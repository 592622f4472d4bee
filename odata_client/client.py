"""
odata_client.client - OData client
===================================

Resource factories plus the single generic request entry point used by
every resource verb.

Examples
--------
>>> session = ODataSession(ODataConfig("https://host/odata/"))
>>> client = ODataClient(session, settings)
>>> products = client.entity_set("Products")
>>> page = asyncio.run(products.top(5).fetch_collection())
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Type

from odata_client.config.settings import ODataSettings
from odata_client.core.errors import ConfigurationError
from odata_client.core.session import ODataSession
from odata_client.models.collection import ODataCollection
from odata_client.models.model import ODataModel
from odata_client.resources.resource import ODataResource
from odata_client.resources.responses import ODataEntities, ODataEntity, ODataProperty
from odata_client.resources.segments import PathSegments, SegmentKind

logger = logging.getLogger("odata_client.client")

# Response types decoded from JSON into typed results
TYPED_RESPONSES = ("entity", "entities", "property", "value")


class ODataClient:
    """
    Entry point: creates root resources and executes their requests.

    Parameters
    ----------
    session : ODataSession
        Transport collaborator
    settings : ODataSettings
        Configuration collaborator (types, parsers, default headers/params)
    """

    def __init__(self, session: ODataSession, settings: ODataSettings) -> None:
        self.session = session
        self.settings = settings

    @property
    def service_root_url(self) -> str:
        return self.settings.service_root_url

    def endpoint_url(self, path: str) -> str:
        return f"{self.service_root_url}{path.lstrip('/')}"

    # ---------------- factories ----------------

    def _root(self, kind: SegmentKind, name: str, *, type: Optional[str] = None, collection: bool = False) -> ODataResource:
        segments = PathSegments()
        segments.add(kind, name, type=type, collection=collection)
        return ODataResource(self, segments)

    def entity_set(self, name: str, type: Optional[str] = None) -> ODataResource:
        """Resource for an entity set; ``type`` defaults to the configured one."""
        type = type or self.settings.type_for_entity_set(name)
        if type is None:
            raise ConfigurationError(f"No entity type configured for entity set '{name}'")
        return self._root(SegmentKind.ENTITY_SET, name, type=type, collection=True)

    def singleton(self, name: str, type: Optional[str] = None) -> ODataResource:
        type = type or self.settings.type_for_entity_set(name)
        if type is None:
            raise ConfigurationError(f"No entity type configured for singleton '{name}'")
        return self._root(SegmentKind.SINGLETON, name, type=type)

    def _callable(self, kind: SegmentKind, name: str, return_type: Optional[str]) -> ODataResource:
        config = self.settings.callable_for_name(name)
        collection = False
        if config is not None:
            return_type = return_type or config.return_type
            collection = config.return_collection
        return self._root(kind, name, type=return_type, collection=collection)

    def function(self, name: str, return_type: Optional[str] = None) -> ODataResource:
        """Unbound function (function import)."""
        return self._callable(SegmentKind.FUNCTION, name, return_type)

    def action(self, name: str, return_type: Optional[str] = None) -> ODataResource:
        """Unbound action (action import)."""
        return self._callable(SegmentKind.ACTION, name, return_type)

    def metadata(self) -> ODataResource:
        return self._root(SegmentKind.METADATA, "$metadata")

    def batch(self) -> ODataResource:
        return self._root(SegmentKind.BATCH, "$batch")

    # ---------------- model registry ----------------

    def model_class(self, type: Optional[str]) -> Type[ODataModel]:
        return self.settings.model_for_type(type) or ODataModel

    def collection_class(self, type: Optional[str]) -> Type[ODataCollection]:
        return self.settings.collection_for_type(type) or ODataCollection

    # ---------------- requests ----------------

    async def request(
        self,
        method: str,
        resource: ODataResource,
        *,
        body: Any = None,
        etag: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        observe: str = "body",
        response_type: str = "json",
        with_count: bool = False,
    ) -> Any:
        """
        Execute a request against ``resource``.

        Parameters
        ----------
        method : str
            HTTP verb
        resource : ODataResource
            Target; path and params are taken before the first await
        body : any, optional
            Request payload
        etag : str, optional
            Sent as an ``If-Match`` precondition
        headers, params : dict, optional
            Merged over the configured defaults
        observe : str
            "body" or "response" (the full :class:`requests.Response`)
        response_type : str
            "json", "text" or "bytes" for raw bodies; "entity", "entities",
            "property" or "value" for typed results
        with_count : bool
            Ask the server for ``$count=true``

        Returns
        -------
        any
            Raw body, response, or ODataEntity / ODataEntities / ODataProperty
        """
        path, query = resource.path_and_params()
        merged_params: Dict[str, str] = dict(self.settings.params)
        merged_params.update(query)
        if with_count:
            merged_params["$count"] = "true"
        if params:
            merged_params.update(params)

        merged_headers: Dict[str, str] = dict(self.settings.headers)
        if etag:
            merged_headers["If-Match"] = etag
        if headers:
            merged_headers.update(headers)

        url = self.endpoint_url(path)
        if response_type not in TYPED_RESPONSES:
            return await asyncio.to_thread(
                self.session.request,
                method,
                url,
                body=body,
                headers=merged_headers,
                params=merged_params,
                observe=observe,
                response_type=response_type,
            )

        wire = "text" if response_type == "value" else "json"
        response = await asyncio.to_thread(
            self.session.request,
            method,
            url,
            body=body,
            headers=merged_headers,
            params=merged_params,
            observe="response",
            response_type=wire,
        )
        logger.debug("%s %s -> %s", method, path, response_type)
        return self._typed(response, response_type)

    def _typed(self, response: Any, response_type: str) -> Any:
        headers = response.headers
        if response_type == "value":
            ctype = (headers.get("Content-Type") or "").lower()
            value = response.text if ctype.startswith("text/") or not ctype else response.content
            return ODataProperty(value, ODataEntity.from_payload(None, headers).meta)
        payload = response.json() if response.content else None
        if response_type == "entity":
            return ODataEntity.from_payload(payload, headers)
        if response_type == "entities":
            return ODataEntities.from_payload(payload)
        return ODataProperty.from_payload(payload, headers)

    async def request_url(self, method: str, url: str, **options: Any) -> Any:
        """Request an absolute URL, e.g. a server-provided next link."""
        return await asyncio.to_thread(self.session.request, method, url, **options)
