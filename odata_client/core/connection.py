"""
odata_client.core.connection - High-level connection management
================================================================

Provides a ConnectionContext that wires a transport session, settings and an
:class:`ODataClient` together, reading credentials from the environment.
"""

from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from odata_client.config.schema import ApiConfig
from odata_client.config.settings import ODataSettings
from odata_client.core.session import ODataAuth, ODataConfig, ODataSession

if TYPE_CHECKING:
    from odata_client.client import ODataClient
    from odata_client.odata.service import ODataEntityService


class ConnectionContext:
    """
    High-level connection manager for one OData service.

    Supports environment variable configuration and context manager usage.

    Parameters
    ----------
    service_root_url : str, optional
        Service root. Falls back to ODATA_SERVICE_ROOT env var.
    user : str, optional
        Username for basic auth. Falls back to ODATA_USER env var.
    password : str, optional
        Password for basic auth. Falls back to ODATA_PASS env var.
    bearer_token : str, optional
        Bearer token for OAuth. Falls back to ODATA_BEARER_TOKEN env var.
    verify : bool, optional
        SSL verification. Falls back to ODATA_VERIFY_TLS env var.
    timeout : float
        Request timeout in seconds.
    config : ApiConfig or dict, optional
        Schemas and defaults; ``$metadata`` is loaded when omitted.

    Examples
    --------
    >>> # Using environment variables, schemas from $metadata
    >>> with ConnectionContext() as conn:
    ...     client = conn.get_client()
    ...     products = asyncio.run(client.entity_set("Products").top(10).fetch_collection())
    """

    def __init__(
        self,
        service_root_url: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        bearer_token: Optional[str] = None,
        verify: Optional[bool] = None,
        timeout: float = 60.0,
        config: Optional[Union[ApiConfig, Dict[str, Any]]] = None,
    ) -> None:
        # Resolve from environment if not provided
        root = service_root_url or os.environ.get("ODATA_SERVICE_ROOT", "")
        self._service_root_url = root.rstrip("/") + "/"
        self._user = user or os.environ.get("ODATA_USER", "")
        self._password = password or os.environ.get("ODATA_PASS", "")
        self._bearer_token = bearer_token or os.environ.get("ODATA_BEARER_TOKEN", "")

        if verify is not None:
            self._verify = verify
        else:
            self._verify = os.environ.get("ODATA_VERIFY_TLS", "true").lower() != "false"

        self._timeout = timeout
        self._config = config

        if not root:
            raise ValueError(
                "Missing service_root_url. Set ODATA_SERVICE_ROOT environment variable "
                "or pass service_root_url parameter."
            )

        self._session: Optional[ODataSession] = None
        self._client: Optional["ODataClient"] = None

    @property
    def session(self) -> ODataSession:
        """Get or create the underlying OData session."""
        if self._session is None:
            self._session = self._build_session()
        return self._session

    def _build_session(self) -> ODataSession:
        auth = None
        if self._bearer_token:
            auth = ODataAuth("bearer", self._bearer_token)
        elif self._user and self._password:
            auth = ODataAuth("basic", (self._user, self._password))

        cfg = ODataConfig(
            service_root_url=self._service_root_url,
            auth=auth,
            verify=self._verify,
            timeout=self._timeout,
        )
        return ODataSession(cfg)

    def close(self) -> None:
        """Close the connection."""
        if self._session is not None:
            self._session.close()
            self._session = None
        self._client = None

    def __enter__(self) -> "ConnectionContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def load_settings(self) -> ODataSettings:
        """
        Settings from the given config, or from the service ``$metadata``.

        Returns
        -------
        ODataSettings
            Configuration collaborator for the client
        """
        config = self._config
        if isinstance(config, dict):
            config = ApiConfig.model_validate({"service_root_url": self._service_root_url, **config})
        if config is not None and config.schemas:
            return ODataSettings(config)

        xml_text = self.session.request(
            "GET",
            self.session.url("$metadata"),
            headers={"Accept": "application/xml"},
            response_type="text",
        )
        options = {}
        if config is not None:
            options = {"params": config.params, "headers": config.headers, "string_as_enum": config.string_as_enum}
        return ODataSettings.from_metadata(xml_text, self._service_root_url, **options)

    def get_client(self, settings: Optional[ODataSettings] = None) -> "ODataClient":
        """
        Get the :class:`ODataClient` for this connection.

        Parameters
        ----------
        settings : ODataSettings, optional
            Explicit settings; loaded via :meth:`load_settings` when omitted
        """
        # Import here to avoid circular imports
        from odata_client.client import ODataClient

        if settings is not None:
            return ODataClient(self.session, settings)
        if self._client is None:
            self._client = ODataClient(self.session, self.load_settings())
        return self._client

    async def aget_client(self) -> "ODataClient":
        """:meth:`get_client` without blocking the event loop on ``$metadata``."""
        return await asyncio.to_thread(self.get_client)

    def get_service(self, entity_set: str) -> "ODataEntityService":
        """
        Get an ODataEntityService for the given entity set.

        Parameters
        ----------
        entity_set : str
            Entity set name, e.g. "Products"

        Returns
        -------
        ODataEntityService
            Service helpers for the entity set
        """
        from odata_client.odata.service import ODataEntityService

        return ODataEntityService(self.get_client(), entity_set)

    @property
    def service_root_url(self) -> str:
        """The configured service root URL."""
        return self._service_root_url
