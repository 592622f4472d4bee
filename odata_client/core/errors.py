"""
odata_client.core.errors - Local error taxonomy
================================================

Errors raised by the resource and model layers before any request is sent.
Transport failures are reported separately as
:class:`odata_client.core.session.ODataUpstreamError`.
"""

from __future__ import annotations


class ODataError(Exception):
    """Base class for all local (non-transport) failures."""


class ConfigurationError(ODataError):
    """
    No configuration resolves for a bound type.

    Raised when a type name cannot be matched to an entity, complex, enum,
    callable or primitive parser, or when configuration data is malformed.
    """


class EntityKeyError(ODataError):
    """An operation that needs an entity key was attempted with an empty key."""


class TypeMismatchError(ODataError):
    """
    A model or resource was combined with an incompatible type.

    Examples: reattaching a model to a resource of another type, assigning a
    related model of the wrong type, or assigning a collection-valued
    navigation property through the single-value setter.
    """


class OperationNotSupportedError(ODataError):
    """The resource kind behind a model does not support the requested verb."""
