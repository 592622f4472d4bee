"""
odata_client.resources.options - Query option set
==================================================

Option values come in three shapes:

- Scalar: one value, e.g. ``top=10``
- ListOf: an ordered list, e.g. ``select=["Name", "Price"]``
- Keyed: named sub-entries, e.g. ``filter={"Name": "Milk"}``

Shape changes are pure functions returning a new value. Pushing onto a
scalar promotes it to a list, and removing down to one element demotes the
list back to a scalar. :class:`OptionHandler` applies these functions to
one entry of an option store. The store can belong to a
:class:`QueryOptions` or to a path segment.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union


SELECT = "select"
FILTER = "filter"
SEARCH = "search"
TRANSFORM = "transform"
ORDER_BY = "orderby"
TOP = "top"
SKIP = "skip"
SKIPTOKEN = "skiptoken"
EXPAND = "expand"
FORMAT = "format"
COUNT = "count"
CUSTOM = "custom"
ALIASES = "aliases"

QUERY_OPTION_NAMES = (
    SELECT, FILTER, SEARCH, TRANSFORM, ORDER_BY, TOP, SKIP, SKIPTOKEN,
    EXPAND, FORMAT, COUNT, CUSTOM, ALIASES,
)


@dataclass(frozen=True)
class Scalar:
    value: Any


@dataclass(frozen=True)
class ListOf:
    items: Tuple[Any, ...]


@dataclass(frozen=True)
class Keyed:
    entries: Mapping[str, Any]


OptionValue = Union[Scalar, ListOf, Keyed]


@dataclass(frozen=True)
class Alias:
    """
    Named parameter alias, rendered as ``@name`` inside expressions.

    Examples
    --------
    >>> str(Alias("p1", 10))
    '@p1'
    """

    name: str
    value: Any

    def __str__(self) -> str:
        return f"@{self.name}"


# ---------------- pure shape functions ----------------

def wrap(raw: Any) -> Optional[OptionValue]:
    """Tag a plain Python value with its shape."""
    if raw is None:
        return None
    if isinstance(raw, (Scalar, ListOf, Keyed)):
        return raw
    if isinstance(raw, (list, tuple)):
        return ListOf(tuple(copy.deepcopy(list(raw))))
    if isinstance(raw, dict):
        return Keyed(copy.deepcopy(raw))
    return Scalar(raw)


def unwrap(value: Optional[OptionValue]) -> Any:
    """Plain Python value of a tagged option (copies containers)."""
    if value is None:
        return None
    if isinstance(value, Scalar):
        return value.value
    if isinstance(value, ListOf):
        return copy.deepcopy(list(value.items))
    return copy.deepcopy(dict(value.entries))


def push(value: Optional[OptionValue], item: Any) -> OptionValue:
    """Append ``item``; a scalar or absent value becomes a list first."""
    if value is None:
        return ListOf((item,))
    if isinstance(value, ListOf):
        return ListOf(value.items + (item,))
    if isinstance(value, Scalar):
        return ListOf((value.value, item))
    return ListOf((dict(value.entries), item))


def _demote(items: Tuple[Any, ...]) -> Optional[OptionValue]:
    if not items:
        return None
    if len(items) == 1:
        return wrap(items[0])
    return ListOf(items)


def remove(value: Optional[OptionValue], item: Any) -> Optional[OptionValue]:
    """Drop every occurrence of ``item``; one remaining element demotes to a scalar."""
    if value is None:
        return None
    if isinstance(value, ListOf):
        return _demote(tuple(i for i in value.items if i != item))
    if isinstance(value, Scalar):
        return None if value.value == item else value
    return value


def _keyed_index(items: Tuple[Any, ...]) -> Optional[int]:
    for i, item in enumerate(items):
        if isinstance(item, dict):
            return i
    return None


def set_key(value: Optional[OptionValue], key: str, item: Any) -> OptionValue:
    """
    Set ``key`` on the keyed-object shape.

    A scalar or list keeps its elements and gets a keyed element appended
    (or updated, when the list already holds one).
    """
    if value is None:
        return Keyed({key: item})
    if isinstance(value, Keyed):
        entries = dict(value.entries)
        entries[key] = item
        return Keyed(entries)
    items = (value.value,) if isinstance(value, Scalar) else value.items
    index = _keyed_index(items)
    if index is None:
        return ListOf(items + ({key: item},))
    updated = dict(items[index])
    updated[key] = item
    return ListOf(items[:index] + (updated,) + items[index + 1:])


def unset_key(value: Optional[OptionValue], key: str) -> Optional[OptionValue]:
    """Remove ``key``; a keyed object left empty is discarded."""
    if value is None or isinstance(value, Scalar):
        return value
    if isinstance(value, Keyed):
        entries = {k: v for k, v in value.entries.items() if k != key}
        return Keyed(entries) if entries else None
    index = _keyed_index(value.items)
    if index is None:
        return value
    updated = {k: v for k, v in value.items[index].items() if k != key}
    head, tail = value.items[:index], value.items[index + 1:]
    return _demote(head + ((updated,) if updated else ()) + tail)


def get_key(value: Optional[OptionValue], key: str, default: Any = None) -> Any:
    if isinstance(value, Keyed):
        return value.entries.get(key, default)
    if isinstance(value, ListOf):
        index = _keyed_index(value.items)
        if index is not None:
            return value.items[index].get(key, default)
    return default


def has_key(value: Optional[OptionValue], key: str) -> bool:
    marker = object()
    return get_key(value, key, marker) is not marker


def is_empty(value: Optional[OptionValue]) -> bool:
    if value is None:
        return True
    if isinstance(value, Scalar):
        return value.value is None or value.value == ""
    if isinstance(value, ListOf):
        return not value.items
    return not value.entries


# ---------------- handle ----------------

class OptionHandler:
    """
    Handle bound to one entry of an option store.

    The handle compares equal to its plain value, so ``r.key() == 5`` and
    ``r.select() == ["Name", "Price"]`` read naturally.
    """

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, store: Dict[str, OptionValue], name: str) -> None:
        self._store = store
        self.name = name

    def _get(self) -> Optional[OptionValue]:
        return self._store.get(self.name)

    def _put(self, value: Optional[OptionValue]) -> None:
        if value is None:
            self._store.pop(self.name, None)
        else:
            self._store[self.name] = value

    def value(self) -> Any:
        return unwrap(self._get())

    def empty(self) -> bool:
        return is_empty(self._get())

    def push(self, *items: Any) -> "OptionHandler":
        value = self._get()
        for item in items:
            value = push(value, item)
        self._put(value)
        return self

    add = push

    def remove(self, *items: Any) -> "OptionHandler":
        value = self._get()
        for item in items:
            value = remove(value, item)
        self._put(value)
        return self

    def at(self, index: int) -> Any:
        value = self._get()
        if isinstance(value, ListOf):
            return value.items[index]
        if index in (0, -1) and value is not None:
            return unwrap(value)
        raise IndexError(f"option '{self.name}' has no element {index}")

    def get(self, key: str, default: Any = None) -> Any:
        return get_key(self._get(), key, default)

    def has(self, key: str) -> bool:
        return has_key(self._get(), key)

    def set(self, key: str, value: Any) -> "OptionHandler":
        self._put(set_key(self._get(), key, value))
        return self

    def unset(self, key: str) -> "OptionHandler":
        self._put(unset_key(self._get(), key))
        return self

    def assign(self, mapping: Mapping[str, Any]) -> "OptionHandler":
        value = self._get()
        for key, item in mapping.items():
            value = set_key(value, key, item)
        self._put(value)
        return self

    def clear(self) -> None:
        self._store.pop(self.name, None)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OptionHandler):
            return self.value() == other.value()
        return self.value() == other

    def __bool__(self) -> bool:
        return not self.empty()

    def __repr__(self) -> str:
        return f"OptionHandler({self.name!r}, {self.value()!r})"


# ---------------- option set ----------------

class QueryOptions:
    """
    Mutable set of query options owned by one resource.

    Examples
    --------
    >>> opts = QueryOptions()
    >>> opts.option("select", "Name").push("Price")
    OptionHandler('select', ['Name', 'Price'])
    >>> opts.params()
    {'$select': 'Name,Price'}
    """

    def __init__(self, values: Optional[Dict[str, OptionValue]] = None) -> None:
        self._values: Dict[str, OptionValue] = dict(values or {})

    def option(self, name: str, value: Any = None) -> OptionHandler:
        if value is not None:
            self._values[name] = wrap(value)
        return OptionHandler(self._values, name)

    def has(self, name: str) -> bool:
        return not is_empty(self._values.get(name))

    def remove(self, *names: str) -> None:
        for name in names:
            self._values.pop(name, None)

    def keep(self, *names: str) -> None:
        for name in list(self._values):
            if name not in names:
                del self._values[name]

    def clear(self) -> None:
        self._values.clear()

    def clone(self) -> "QueryOptions":
        return QueryOptions(copy.deepcopy(self._values))

    def alias(self, name: str, value: Any = None) -> Alias:
        """Create or update the alias ``name``; reading returns the stored one."""
        aliases = OptionHandler(self._values, ALIASES)
        if value is None:
            if not aliases.has(name):
                raise KeyError(f"Unknown alias '{name}'")
            return Alias(name, aliases.get(name))
        aliases.set(name, value)
        return Alias(name, value)

    def aliases(self) -> Iterable[Alias]:
        entries = OptionHandler(self._values, ALIASES).value() or {}
        return [Alias(k, v) for k, v in entries.items()]

    def values(self) -> Dict[str, Any]:
        """Plain snapshot of every option."""
        return {name: unwrap(value) for name, value in self._values.items()}

    def params(self, aliases: Iterable[Alias] = ()) -> Dict[str, str]:
        from odata_client.resources.builder import build_query_params

        return build_query_params(self.values(), aliases)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryOptions):
            return NotImplemented
        return self.values() == other.values()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"QueryOptions({self.values()!r})"
