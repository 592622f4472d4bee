"""
odata_client.config.parsers - Value parsers
============================================

Parsers convert between wire (JSON) values and Python values:

- EdmParser: Edm primitive types (dates, durations, numbers, ...)
- EnumParser: enumeration types, with flag support
- EntityParser: entity/complex types; field metadata and key resolution
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Union

from odata_client.config.schema import EntityConfig, EnumConfig


DATE_TYPES = ("Edm.DateTimeOffset", "Edm.Date", "Edm.TimeOfDay")


def parse_datetime(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    spec = "milliseconds" if value.microsecond % 1000 == 0 and value.microsecond else "auto"
    text = value.isoformat(timespec=spec)
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


class EdmParser:
    """
    Parser for one Edm primitive type.

    Values that do not parse are returned unchanged; the server stays the
    authority on what it sent.
    """

    def __init__(self, type: str) -> None:
        self.type = type

    def deserialize(self, value: Any) -> Any:
        if not isinstance(value, str) or self.type not in DATE_TYPES:
            return value
        try:
            if self.type == "Edm.DateTimeOffset":
                return parse_datetime(value)
            if self.type == "Edm.Date":
                return date.fromisoformat(value)
            return time.fromisoformat(value)
        except ValueError:
            return value

    def serialize(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return format_datetime(value)
        if isinstance(value, (date, time)):
            return value.isoformat()
        if isinstance(value, Decimal):
            # Edm.Decimal travels as a JSON number unless IEEE754Compatible
            return float(value)
        return value


class EnumParser:
    """
    Parser for an enumeration type.

    Members travel as names on the wire and as integers in Python. Flag
    enums combine several comma-separated names into one bit mask.
    """

    def __init__(self, config: EnumConfig, namespace: str) -> None:
        self.name = config.name
        self.type = f"{namespace}.{config.name}"
        self.flags = config.flags
        self.members: Dict[str, int] = dict(config.members)

    def deserialize(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        if self.flags:
            result = 0
            for name in value.split(","):
                result |= self.members.get(name.strip(), 0)
            return result
        return self.members.get(value.strip(), value)

    def names(self, value: Any) -> List[str]:
        if isinstance(value, str):
            return [n.strip() for n in value.split(",")]
        if self.flags:
            return [n for n, v in self.members.items() if v and (value & v) == v]
        return [n for n, v in self.members.items() if v == value]

    def serialize(self, value: Any) -> Any:
        if value is None:
            return None
        return ",".join(self.names(value))

    def to_literal(self, value: Any, *, string_as_enum: bool = False) -> str:
        """URL literal, ``NS.Color'Red'`` or ``'Red'`` when ``string_as_enum``."""
        text = ",".join(self.names(value))
        return f"'{text}'" if string_as_enum else f"{self.type}'{text}'"


@dataclass
class ODataField:
    """Resolved field metadata; ``complex`` is derived from the configured types."""

    name: str
    type: str
    key: bool = False
    navigation: bool = False
    collection: bool = False
    complex: bool = False
    nullable: bool = True
    parser: Optional[Union[EdmParser, EnumParser, "EntityParser"]] = None

    def deserialize(self, value: Any) -> Any:
        if self.parser is None or value is None:
            return value
        if self.collection and isinstance(value, list):
            return [self.parser.deserialize(v) for v in value]
        return self.parser.deserialize(value)

    def serialize(self, value: Any) -> Any:
        if self.parser is None or value is None:
            return value
        if self.collection and isinstance(value, list):
            return [self.parser.serialize(v) for v in value]
        return self.parser.serialize(value)


class EntityParser:
    """
    Parser for an entity or complex type.

    Fields are resolved lazily through ``parser_for_type`` so that types may
    reference each other (and themselves) in any order.

    Parameters
    ----------
    config : EntityConfig
        Type description
    namespace : str
        Schema namespace, used to build the qualified type name
    parser_for_type : callable
        Resolver for the parsers of field types
    """

    def __init__(
        self,
        config: EntityConfig,
        namespace: str,
        parser_for_type: Callable[[str], Any],
        base: Optional["EntityParser"] = None,
    ) -> None:
        self.config = config
        self.name = config.name
        self.type = f"{namespace}.{config.name}"
        self.complex = config.complex
        self._parser_for_type = parser_for_type
        self._base = base
        self._fields: Optional[List[ODataField]] = None

    def fields(self) -> List[ODataField]:
        if self._fields is None:
            own: List[ODataField] = []
            for f in self.config.fields:
                parser = self._parser_for_type(f.type)
                own.append(ODataField(
                    name=f.name,
                    type=f.type,
                    key=f.key,
                    navigation=f.navigation,
                    collection=f.collection,
                    complex=isinstance(parser, EntityParser) and parser.complex,
                    nullable=f.nullable,
                    parser=parser,
                ))
            inherited = self._base.fields() if self._base is not None else []
            self._fields = inherited + own
        return self._fields

    def field(self, name: str) -> Optional[ODataField]:
        for f in self.fields():
            if f.name == name:
                return f
        return None

    def keys(self) -> List[ODataField]:
        return [f for f in self.fields() if f.key]

    def resolve_key(self, attrs: Dict[str, Any]) -> Any:
        """
        Extract the entity key from an attribute mapping.

        Returns a scalar for single-field keys, a dict for composite keys,
        and None when any key field is missing.
        """
        keys = self.keys()
        if not keys:
            return None
        values = {}
        for f in keys:
            value = attrs.get(f.name)
            if value is None:
                return None
            values[f.name] = value
        if len(values) == 1:
            return next(iter(values.values()))
        return values

    def deserialize(self, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        out = dict(value)
        for f in self.fields():
            if f.name in out and not f.navigation:
                out[f.name] = f.deserialize(out[f.name])
        return out

    def serialize(self, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        out = dict(value)
        for f in self.fields():
            if f.name in out and not f.navigation:
                out[f.name] = f.serialize(out[f.name])
        return out
