"""
odata_client.core.session - OData HTTP Transport
=================================================

Blocking HTTP transport used by :class:`odata_client.client.ODataClient`:
- Basic and Bearer token authentication
- Automatic retry with exponential backoff
- Optional CSRF token handling for write operations
- Error extraction from OData v2/v4 error payloads
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union
import json
import logging
import threading
import time

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class ODataUpstreamError(RuntimeError):
    """
    Exception raised when the OData service returns an error.

    Attributes
    ----------
    status : int
        HTTP status code
    body : str
        Extracted error description (or raw response body)
    url : str
        The URL that was called
    headers : dict
        Response headers
    """

    def __init__(
        self,
        status: int,
        body: str,
        url: str,
        headers: Optional[Dict[str, str]] = None
    ):
        snippet = (body or "")[:1200]
        super().__init__(f"OData upstream error {status} for {url}: {snippet}")
        self.status = status
        self.body = body or ""
        self.url = url
        self.headers = headers or {}


@dataclass
class ODataAuth:
    """
    Authentication configuration.

    Parameters
    ----------
    kind : str
        Either "basic" or "bearer"
    value : tuple or str
        For basic: (username, password) tuple
        For bearer: access token string

    Examples
    --------
    >>> auth = ODataAuth("basic", ("USER", "PASSWORD"))
    >>> auth = ODataAuth("bearer", "eyJ...")
    """
    kind: str  # "basic" | "bearer"
    value: Union[Tuple[str, str], str]


@dataclass
class ODataConfig:
    """
    Transport configuration for one OData service.

    Parameters
    ----------
    service_root_url : str
        Service root, e.g. "https://host/odata/v4/catalog/"
    auth : ODataAuth, optional
        Authentication configuration (anonymous when omitted)
    headers : dict
        Headers sent with every request
    params : dict
        Query parameters sent with every request
    timeout : float
        Request timeout in seconds (default: 60.0)
    retries : int
        Number of retry attempts (default: 3)
    backoff : float
        Backoff factor for retries (default: 0.5)
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    user_agent : str
        User-Agent header value
    fetch_csrf : bool
        Fetch an X-CSRF-Token before the first write request
    accept_metadata : str, optional
        odata.metadata level requested in the Accept header
        ("minimal", "full" or "none")
    """
    service_root_url: str
    auth: Optional[ODataAuth] = None
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)
    timeout: float = 60.0
    retries: int = 3
    backoff: float = 0.5
    verify: Union[bool, str] = True
    user_agent: str = "odata-client/0.1"
    fetch_csrf: bool = False
    accept_metadata: Optional[str] = None


class ODataSession:
    """
    Low-level HTTP session for OData v4 (and v2 JSON) services.

    Handles authentication, retries and CSRF tokens. Use as a context
    manager for automatic cleanup.

    Parameters
    ----------
    cfg : ODataConfig
        Connection configuration

    Examples
    --------
    >>> cfg = ODataConfig("https://services.odata.org/V4/Northwind/Northwind.svc/")
    >>> with ODataSession(cfg) as sess:
    ...     data = sess.request("GET", sess.url("Products"), params={"$top": "5"})
    """

    def __init__(self, cfg: ODataConfig) -> None:
        self.cfg = cfg
        self.base = cfg.service_root_url.rstrip("/") + "/"
        self.timeout = float(cfg.timeout)
        self.verify = cfg.verify
        self.logger = logging.getLogger("odata_client.session")

        self.session = self._build_session()

        self._csrf_token: Optional[str] = None
        self._csrf_lock = threading.Lock()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "ODataSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- auth/session ----------------

    def _build_session(self) -> Session:
        sess = requests.Session()

        auth = self.cfg.auth
        if auth is not None:
            if auth.kind == "basic":
                sess.auth = auth.value  # type: ignore[assignment]
            elif auth.kind == "bearer":
                sess.headers.update({"Authorization": f"Bearer {auth.value}"})
            else:
                raise ValueError("auth.kind must be 'basic' or 'bearer'")

        accept = "application/json"
        if self.cfg.accept_metadata:
            accept = f"application/json;odata.metadata={self.cfg.accept_metadata}"
        sess.headers.update({
            "Accept": accept,
            "OData-Version": "4.0",
            "OData-MaxVersion": "4.0",
            "User-Agent": self.cfg.user_agent,
        })
        sess.headers.update(self.cfg.headers)

        retry = Retry(
            total=self.cfg.retries,
            backoff_factor=self.cfg.backoff,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=20, pool_maxsize=50)
        sess.mount("https://", adapter)
        sess.mount("http://", adapter)
        return sess

    # ---------------- helpers ----------------

    def url(self, path: str) -> str:
        """Join a resource path onto the service root."""
        return f"{self.base}{path.lstrip('/')}"

    def _params(self, params: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        p: Dict[str, str] = dict(self.cfg.params)
        if params:
            p.update(params)
        return p

    def _decode(self, r: Response, response_type: str) -> Any:
        if response_type == "bytes":
            return r.content
        if response_type == "text":
            return r.text
        if not r.content:
            return None
        ctype = (r.headers.get("Content-Type") or "").lower()
        if "json" in ctype:
            return r.json()
        return r.text

    def _extract_error(self, r: Response) -> str:
        try:
            data = r.json()
        except ValueError:
            return r.text
        if not isinstance(data, dict):
            return r.text
        err = data.get("error")
        if not isinstance(err, dict):
            return r.text

        code = err.get("code")
        message = None
        if isinstance(err.get("message"), dict):
            message = err["message"].get("value")
        elif isinstance(err.get("message"), str):
            message = err.get("message")

        target = err.get("target")

        parts = []
        if code:
            parts.append(f"code={code}")
        if message:
            parts.append(f"message={message}")
        if target:
            parts.append(f"target={target}")
        return " | ".join(parts) or r.text

    def _raise_for_error(self, r: Response, url: str) -> None:
        if r.status_code >= 400:
            body = self._extract_error(r)
            raise ODataUpstreamError(r.status_code, body, url, dict(r.headers))

    def _ensure_csrf(self) -> str:
        if self._csrf_token:
            return self._csrf_token

        with self._csrf_lock:
            if self._csrf_token:
                return self._csrf_token

            url = self.url("$metadata")
            headers = {"X-CSRF-Token": "Fetch", "Accept": "application/xml"}
            r = self.session.request(
                "GET", url,
                params=self._params(),
                headers=headers,
                timeout=self.timeout,
                verify=self.verify,
            )
            self._raise_for_error(r, url)
            token = r.headers.get("x-csrf-token")
            if not token:
                raise ODataUpstreamError(400, "Failed to obtain CSRF token", url, dict(r.headers))
            self._csrf_token = token
            return token

    # ---------------- public ops ----------------

    def request(
        self,
        method: str,
        url: str,
        *,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        observe: str = "body",
        response_type: str = "json",
    ) -> Any:
        """
        Execute one HTTP request.

        Parameters
        ----------
        method : str
            HTTP verb
        url : str
            Absolute URL (see :meth:`url`)
        body : any, optional
            JSON-serializable payload, or str/bytes sent verbatim
        headers : dict, optional
            Extra headers, merged over the session defaults
        params : dict, optional
            Query parameters, merged over ``cfg.params``
        observe : str
            "body" returns the decoded body, "response" the full
            :class:`requests.Response`
        response_type : str
            "json", "text" or "bytes"; how the body is decoded

        Returns
        -------
        any
            Decoded body or response object, depending on ``observe``
        """
        method = method.upper()
        hdrs: Dict[str, str] = {}
        data: Optional[Union[str, bytes]] = None
        if body is not None:
            if isinstance(body, (str, bytes)):
                data = body
            else:
                hdrs["Content-Type"] = "application/json"
                data = json.dumps(body, separators=(",", ":"), default=str)
        if method in WRITE_METHODS and self.cfg.fetch_csrf:
            hdrs["X-CSRF-Token"] = self._ensure_csrf()
        if headers:
            hdrs.update(headers)

        t0 = time.perf_counter()
        r = self.session.request(
            method=method,
            url=url,
            params=self._params(params),
            headers=hdrs,
            data=data,
            timeout=self.timeout,
            verify=self.verify,
        )
        self._raise_for_error(r, url)
        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug("%s %s %sms", method, url, round(dt, 1))

        if observe == "response":
            return r
        return self._decode(r, response_type)
