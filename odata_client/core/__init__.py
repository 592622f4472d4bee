"""
odata_client.core - Core connectivity and errors
================================================

- ODataAuth: Authentication configuration (basic or bearer token)
- ODataConfig: Transport configuration
- ODataSession: Low-level HTTP session with retry, CSRF handling
- ConnectionContext: High-level connection manager
- errors: Local error taxonomy

"""

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

__all__ = [
    "ODataError",
    "ConfigurationError",
    "EntityKeyError",
    "TypeMismatchError",
    "OperationNotSupportedError",
    "ODataAuth",
    "ODataConfig",
    "ODataSession",
    "ODataUpstreamError",
    "ConnectionContext",
]
