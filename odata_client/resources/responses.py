"""
odata_client.resources.responses - Response payloads and annotations
=====================================================================

Splits OData v4 (``@odata.*``) and v2 (``d``, ``__metadata``, ``__count``,
``__next``) JSON payloads into data and meta.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qs, urlsplit


def _unwrap_v2(payload: Any) -> Any:
    if isinstance(payload, dict) and set(payload) == {"d"}:
        return payload["d"]
    return payload


def _annotation_name(key: str) -> str:
    name = key.lstrip("@")
    return name[len("odata."):] if name.startswith("odata.") else name


@dataclass
class ODataEntityMeta:
    """
    Annotations of one entity.

    Attributes
    ----------
    etag : str, optional
        Version token (``@odata.etag``, ``__metadata.etag`` or ETag header)
    context : str, optional
        ``@odata.context`` URL
    annotations : dict
        Every instance annotation, keyed without the ``@odata.`` prefix
    properties : dict
        Property annotations, e.g. ``{"Photo": {"mediaReadLink": "..."}}``
    """

    etag: Optional[str] = None
    context: Optional[str] = None
    annotations: Dict[str, Any] = field(default_factory=dict)
    properties: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def type(self) -> Optional[str]:
        value = self.annotations.get("type")
        return value.lstrip("#") if isinstance(value, str) else None

    @property
    def id(self) -> Optional[str]:
        return self.annotations.get("id")

    def property_annotations(self, name: str) -> Dict[str, Any]:
        return self.properties.get(name, {})

    @classmethod
    def split(
        cls,
        payload: Any,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Tuple[Any, "ODataEntityMeta"]:
        """
        Separate an entity payload from its annotations.

        Returns
        -------
        tuple of (dict, ODataEntityMeta)
            Payload without annotation keys, and the collected meta
        """
        payload = _unwrap_v2(payload)
        meta = cls()
        if not isinstance(payload, dict):
            meta.etag = (headers or {}).get("ETag")
            return payload, meta

        data: Dict[str, Any] = {}
        for key, value in payload.items():
            if key == "__metadata" and isinstance(value, dict):
                meta.annotations.update(value)
            elif key.startswith("@"):
                meta.annotations[_annotation_name(key)] = value
            elif "@" in key:
                prop, annotation = key.split("@", 1)
                meta.properties.setdefault(prop, {})[_annotation_name(annotation)] = value
            else:
                data[key] = value

        meta.etag = meta.annotations.get("etag") or (headers or {}).get("ETag")
        meta.context = meta.annotations.get("context")
        return data, meta


@dataclass
class ODataEntitiesMeta:
    """Annotations of an entity collection."""

    count: Optional[int] = None
    next_link: Optional[str] = None
    delta_link: Optional[str] = None
    context: Optional[str] = None
    annotations: Dict[str, Any] = field(default_factory=dict)

    def _next_param(self, name: str) -> Optional[str]:
        if not self.next_link:
            return None
        values = parse_qs(urlsplit(self.next_link).query).get(name)
        return values[0] if values else None

    @property
    def skiptoken(self) -> Optional[str]:
        return self._next_param("$skiptoken")

    @property
    def skip(self) -> Optional[int]:
        """Server page size, read from ``$skip`` in the next link."""
        value = self._next_param("$skip")
        return int(value) if value and value.isdigit() else None

    @classmethod
    def split(cls, payload: Any) -> Tuple[List[Any], "ODataEntitiesMeta"]:
        payload = _unwrap_v2(payload)
        meta = cls()
        if isinstance(payload, list):
            return payload, meta
        if not isinstance(payload, dict):
            return [], meta

        items = payload.get("value")
        if items is None:
            items = payload.get("results")
        for key, value in payload.items():
            if key.startswith("@"):
                meta.annotations[_annotation_name(key)] = value
            elif key.startswith("__"):
                meta.annotations[key[2:]] = value

        count = meta.annotations.get("count")
        meta.count = int(count) if count is not None else None
        meta.next_link = meta.annotations.get("nextLink") or meta.annotations.get("next")
        meta.delta_link = meta.annotations.get("deltaLink")
        meta.context = meta.annotations.get("context")
        return list(items or []), meta


@dataclass
class ODataEntity:
    entity: Optional[Dict[str, Any]]
    meta: ODataEntityMeta = field(default_factory=ODataEntityMeta)

    @classmethod
    def from_payload(cls, payload: Any, headers: Optional[Mapping[str, str]] = None) -> "ODataEntity":
        if payload is None:
            return cls(None, ODataEntityMeta(etag=(headers or {}).get("ETag")))
        # Keep the annotations on the entity; models strip them on populate
        _, meta = ODataEntityMeta.split(payload, headers)
        return cls(_unwrap_v2(payload), meta)


@dataclass
class ODataEntities:
    entities: List[Dict[str, Any]]
    meta: ODataEntitiesMeta = field(default_factory=ODataEntitiesMeta)

    @classmethod
    def from_payload(cls, payload: Any) -> "ODataEntities":
        items, meta = ODataEntitiesMeta.split(payload)
        return cls(items, meta)


@dataclass
class ODataProperty:
    value: Any
    meta: ODataEntityMeta = field(default_factory=ODataEntityMeta)

    @classmethod
    def from_payload(cls, payload: Any, headers: Optional[Mapping[str, str]] = None) -> "ODataProperty":
        v2 = isinstance(payload, dict) and set(payload) == {"d"}
        data, meta = ODataEntityMeta.split(payload, headers)
        if isinstance(data, dict):
            if "value" in data:
                data = data["value"]
            elif v2 and "results" in data:
                data = data["results"]
            elif v2 and len(data) == 1:
                # v2 wraps a property as {"d": {"Name": value}}
                data = next(iter(data.values()))
        return cls(data, meta)
