"""
odata_client.resources.segments - Path segment chain
=====================================================

Ordered list of the URL segments that address one thing on the server,
e.g. ``Products(5)/Category/$ref`` is an entity set segment (keyed), a
navigation property segment and a reference segment.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from odata_client.resources.options import Alias, OptionHandler, OptionValue, wrap


class SegmentKind(str, Enum):
    ENTITY_SET = "entitySet"
    SINGLETON = "singleton"
    NAVIGATION_PROPERTY = "navigationProperty"
    PROPERTY = "property"
    TYPE = "type"
    FUNCTION = "function"
    ACTION = "action"
    VALUE = "value"
    REFERENCE = "ref"
    COUNT = "count"
    METADATA = "metadata"
    BATCH = "batch"


# Segments that can carry an entity key
ADDRESSABLE_KINDS = (
    SegmentKind.ENTITY_SET,
    SegmentKind.NAVIGATION_PROPERTY,
)

KEY_OPTION = "key"
PARAMETERS_OPTION = "parameters"


@dataclass
class Segment:
    """
    One path segment.

    Attributes
    ----------
    kind : SegmentKind
        What the segment addresses
    name : str
        Entity set, property, type or callable name
    type : str, optional
        Qualified type the segment yields (None for $value, $ref, ...)
    collection : bool
        True if the segment yields a collection while it has no key
    options : dict
        Segment options such as ``key`` and ``parameters``
    """

    kind: SegmentKind
    name: str
    type: Optional[str] = None
    collection: bool = False
    options: Dict[str, OptionValue] = field(default_factory=dict)

    def option(self, name: str, value: Any = None) -> OptionHandler:
        if value is not None:
            self.options[name] = wrap(value)
        return OptionHandler(self.options, name)

    def key(self) -> OptionHandler:
        return OptionHandler(self.options, KEY_OPTION)

    def parameters(self) -> OptionHandler:
        return OptionHandler(self.options, PARAMETERS_OPTION)

    def clone(self) -> "Segment":
        return Segment(
            kind=self.kind,
            name=self.name,
            type=self.type,
            collection=self.collection,
            options=copy.deepcopy(self.options),
        )


class PathSegments:
    """
    Ordered, clonable chain of :class:`Segment` objects.

    Examples
    --------
    >>> chain = PathSegments()
    >>> chain.segment(SegmentKind.ENTITY_SET, "Products").option("key", 5)
    OptionHandler('key', 5)
    >>> nav = chain.add(SegmentKind.NAVIGATION_PROPERTY, "Category")
    >>> chain.path()
    'Products(5)/Category'
    """

    def __init__(self, segments: Optional[List[Segment]] = None) -> None:
        self._segments: List[Segment] = list(segments or [])

    def __iter__(self) -> Iterator[Segment]:
        return iter(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathSegments):
            return NotImplemented
        return self._segments == other._segments

    __hash__ = None  # type: ignore[assignment]

    def add(
        self,
        kind: SegmentKind,
        name: str,
        *,
        type: Optional[str] = None,
        collection: bool = False,
    ) -> Segment:
        """Append a new segment unconditionally."""
        segment = Segment(kind=kind, name=name, type=type, collection=collection)
        self._segments.append(segment)
        return segment

    def segment(self, kind: SegmentKind, name: Optional[str] = None) -> Optional[Segment]:
        """
        Find the latest segment of ``kind`` (matching ``name`` when given).

        When nothing matches and ``name`` is given, a new segment is appended
        and returned. When nothing matches and no name is given, returns None.
        """
        for seg in reversed(self._segments):
            if seg.kind == kind and (name is None or seg.name == name):
                return seg
        if name is None:
            return None
        return self.add(kind, name)

    def has(self, kind: SegmentKind) -> bool:
        return any(seg.kind == kind for seg in self._segments)

    def first(self) -> Optional[Segment]:
        return self._segments[0] if self._segments else None

    def last(self, *, skip_types: bool = False) -> Optional[Segment]:
        for seg in reversed(self._segments):
            if skip_types and seg.kind == SegmentKind.TYPE:
                continue
            return seg
        return None

    def last_addressable(self) -> Optional[Segment]:
        for seg in reversed(self._segments):
            if seg.kind in ADDRESSABLE_KINDS:
                return seg
        return None

    def remove(self, kind: SegmentKind, name: Optional[str] = None) -> None:
        self._segments = [
            seg for seg in self._segments
            if not (seg.kind == kind and (name is None or seg.name == name))
        ]

    def clone(self) -> "PathSegments":
        return PathSegments([seg.clone() for seg in self._segments])

    def types(self) -> List[str]:
        return [seg.type for seg in self._segments if seg.type]

    def type(self) -> Optional[str]:
        types = self.types()
        return types[-1] if types else None

    def is_collection(self) -> bool:
        """True if the chain addresses a collection (keyless set, collection navigation, ...)."""
        seg = self.last(skip_types=True)
        if seg is None or not seg.collection:
            return False
        return seg.key().empty()

    def path(self) -> str:
        from odata_client.resources.builder import build_path

        return build_path(self._segments)[0]

    def aliases(self) -> List[Alias]:
        from odata_client.resources.builder import build_path

        return build_path(self._segments)[1]

    def path_and_aliases(self) -> Tuple[str, List[Alias]]:
        from odata_client.resources.builder import build_path

        return build_path(self._segments)

    def __repr__(self) -> str:
        return f"PathSegments({self.path()!r})"
