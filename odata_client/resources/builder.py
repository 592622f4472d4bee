"""
odata_client.resources.builder - Path and query serialization
==============================================================

Turns a segment chain and a query option set into the canonical OData path
and parameter map.

Filters can be given as plain strings or as dicts:

>>> build_filter({"Name": "Milk", "Price": {"gt": 2.5}})
"(Name eq 'Milk') and (Price gt 2.5)"
>>> build_filter({"or": [{"Rating": 5}, {"Name": {"startswith": "A"}}]})
"(Rating eq 5) or (startswith(Name,'A'))"
>>> build_expand({"Category": {"select": ["Name"], "expand": "Supplier"}})
'Category($select=Name;$expand=Supplier)'
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from odata_client.config.parsers import format_datetime
from odata_client.resources.options import (
    ALIASES,
    COUNT,
    CUSTOM,
    EXPAND,
    FILTER,
    FORMAT,
    ORDER_BY,
    SEARCH,
    SELECT,
    SKIP,
    SKIPTOKEN,
    TOP,
    TRANSFORM,
    Alias,
)
from odata_client.resources.segments import KEY_OPTION, Segment, SegmentKind


COMPARISON_OPERATORS = ("eq", "ne", "gt", "ge", "lt", "le", "has", "in")
STRING_FUNCTIONS = ("contains", "startswith", "endswith")
LAMBDA_OPERATORS = ("any", "all")
OPERATORS = COMPARISON_OPERATORS + STRING_FUNCTIONS

SPECIAL_SEGMENTS = {
    SegmentKind.VALUE: "$value",
    SegmentKind.REFERENCE: "$ref",
    SegmentKind.COUNT: "$count",
    SegmentKind.METADATA: "$metadata",
    SegmentKind.BATCH: "$batch",
}


def escape_odata_literal(value: str) -> str:
    """
    Escape a string value for use inside a quoted OData literal.

    Examples
    --------
    >>> escape_odata_literal("O'Brien")
    "O''Brien"
    """
    return value.replace("'", "''")


def _join_csv(items: Sequence[str]) -> str:
    """Join items as comma-separated values, stripping whitespace."""
    return ",".join([s.strip() for s in items if s and s.strip()])


def format_literal(value: Any) -> str:
    """
    Render a Python value as an OData URL literal.

    Parameters
    ----------
    value : any
        None, bool, number, str, datetime/date/time, UUID, Enum member,
        :class:`Alias` or a list of those

    Returns
    -------
    str
        Literal text, e.g. ``'O''Brien'``, ``2024-01-31``, ``(1,2)``
    """
    if value is None:
        return "null"
    if isinstance(value, Alias):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return f"'{escape_odata_literal(str(value.name))}'"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, str):
        return f"'{escape_odata_literal(value)}'"
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return "(" + ",".join(format_literal(v) for v in value) + ")"
    raise TypeError(f"Cannot render {type(value).__name__} as an OData literal")


# ---------------- path ----------------

def build_key(key: Any) -> str:
    """
    Render an entity key.

    >>> build_key(5), build_key("x"), build_key({"OrderID": 1, "Line": "A"})
    ('(5)', "('x')", "(OrderID=1,Line='A')")
    """
    if key is None:
        return ""
    if isinstance(key, dict):
        if not key:
            return ""
        return "(" + ",".join(f"{k}={format_literal(v)}" for k, v in key.items()) + ")"
    return f"({format_literal(key)})"


def build_call(name: str, parameters: Optional[Dict[str, Any]]) -> Tuple[str, List[Alias]]:
    """
    Render a function call; alias-valued parameters become ``name=@name``.

    Returns
    -------
    tuple of (str, list of Alias)
        Segment text and the aliases it references
    """
    aliases: List[Alias] = []
    parts: List[str] = []
    for pname, value in (parameters or {}).items():
        if isinstance(value, Alias):
            aliases.append(value)
        parts.append(f"{pname}={format_literal(value)}")
    return f"{name}({','.join(parts)})", aliases


def build_path(segments: Iterable[Segment]) -> Tuple[str, List[Alias]]:
    """Join segments into a path; also returns the aliases used by function calls."""
    parts: List[str] = []
    aliases: List[Alias] = []
    for seg in segments:
        if seg.kind in SPECIAL_SEGMENTS:
            parts.append(SPECIAL_SEGMENTS[seg.kind])
        elif seg.kind == SegmentKind.FUNCTION:
            text, used = build_call(seg.name, seg.parameters().value())
            parts.append(text)
            aliases.extend(used)
        elif seg.kind in (SegmentKind.ACTION, SegmentKind.TYPE):
            parts.append(seg.name)
        else:
            parts.append(seg.name + build_key(seg.option(KEY_OPTION).value()))
    return "/".join(parts), aliases


# ---------------- $select / $orderby / $search ----------------

def build_select(value: Any) -> str:
    if isinstance(value, str):
        return value
    return _join_csv(list(value))


def build_orderby(value: Any) -> str:
    """
    >>> build_orderby(["Name", ("Price", "desc")])
    'Name,Price desc'
    """
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        value = list(value.items())
    parts = []
    for item in value:
        if isinstance(item, (list, tuple)):
            parts.append(" ".join(str(p) for p in item if p))
        else:
            parts.append(str(item))
    return _join_csv(parts)


def build_search(value: Any) -> str:
    if isinstance(value, str):
        return value
    return " AND ".join(str(v) for v in value)


# ---------------- $filter ----------------

def _join(op: str, parts: List[str]) -> str:
    parts = [p for p in parts if p]
    if len(parts) == 1:
        return parts[0]
    return f" {op} ".join(f"({p})" for p in parts)


def _compare(path: str, op: str, value: Any) -> str:
    if op == "in":
        return f"{path} in {format_literal(list(value))}"
    if op == "has" and isinstance(value, str):
        # enum literal such as Shop.Color'Red'
        return f"{path} has {value}"
    return f"{path} {op} {format_literal(value)}"


def _lambda(path: str, op: str, value: Any, depth: int) -> str:
    var = "x" if depth == 0 else f"x{depth}"
    if not value:
        return f"{path}/{op}()"
    if isinstance(value, dict) and all(k.lower() in OPERATORS for k in value):
        # primitive collection: {"any": {"eq": "fresh"}}
        body = _join("and", _field(var, value, depth + 1))
    elif isinstance(value, dict):
        body = _join("and", _filter_dict(value, var, depth + 1))
    else:
        body = _filter_expr(value, var, depth + 1)
    return f"{path}/{op}({var}:{body})"


def _field(path: str, value: Any, depth: int) -> List[str]:
    if not isinstance(value, dict):
        return [_compare(path, "eq", value)]
    parts: List[str] = []
    for op, operand in value.items():
        lower = op.lower()
        if lower in COMPARISON_OPERATORS:
            parts.append(_compare(path, lower, operand))
        elif lower in STRING_FUNCTIONS:
            parts.append(f"{lower}({path},{format_literal(operand)})")
        elif lower in LAMBDA_OPERATORS:
            parts.append(_lambda(path, lower, operand, depth))
        else:
            # nested property path, e.g. {"Address": {"City": "Paris"}}
            parts.extend(_field(f"{path}/{op}", operand, depth))
    return parts


def _filter_dict(value: Dict[str, Any], prefix: Optional[str], depth: int) -> List[str]:
    parts: List[str] = []
    for key, operand in value.items():
        lower = key.lower()
        if lower in ("and", "or"):
            items = operand if isinstance(operand, (list, tuple)) else [{k: v} for k, v in operand.items()]
            parts.append(_join(lower, [_filter_expr(item, prefix, depth) for item in items]))
        elif lower == "not":
            parts.append(f"not ({_filter_expr(operand, prefix, depth)})")
        else:
            path = f"{prefix}/{key}" if prefix else key
            parts.extend(_field(path, operand, depth))
    return parts


def _filter_expr(value: Any, prefix: Optional[str], depth: int) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return _join("and", [_filter_expr(v, prefix, depth) for v in value])
    if isinstance(value, dict):
        return _join("and", _filter_dict(value, prefix, depth))
    raise TypeError(f"Unsupported filter expression: {value!r}")


def build_filter(value: Any) -> str:
    """
    Render a ``$filter`` expression.

    Parameters
    ----------
    value : str, list or dict
        Strings pass through. Lists are AND-joined. Dicts map property
        names to a value (implicit ``eq``) or to an operator dict. The
        operators are ``eq ne gt ge lt le has in``,
        ``contains startswith endswith`` and the lambdas ``any all``.
        The keys ``and``/``or``/``not`` combine sub-expressions.
    """
    return _filter_expr(value, None, 0)


# ---------------- $expand ----------------

EXPAND_SUB_OPTIONS = ("select", "filter", "search", "orderby", "top", "skip", "count", "levels", "expand")


def _expand_option(name: str, value: Any) -> str:
    if name == "select":
        return build_select(value)
    if name == "filter":
        return build_filter(value)
    if name == "search":
        return build_search(value)
    if name == "orderby":
        return build_orderby(value)
    if name == "expand":
        return build_expand(value)
    if name == "count":
        return "true" if value else "false"
    return str(value)


def build_expand(value: Any) -> str:
    """
    Render ``$expand``; nested dicts carry ``;``-separated sub-options.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ",".join(p for p in (build_expand(v) for v in value) if p)
    parts = []
    for nav, options in value.items():
        options = {k.lstrip("$").lower(): v for k, v in (options or {}).items()}
        inner = [
            f"${name}={_expand_option(name, options[name])}"
            for name in EXPAND_SUB_OPTIONS
            if options.get(name) is not None
        ]
        parts.append(f"{nav}({';'.join(inner)})" if inner else nav)
    return ",".join(parts)


# ---------------- $apply ----------------

def _aggregate(value: Any) -> str:
    if isinstance(value, str):
        return f"aggregate({value})"
    parts = []
    for prop, spec in value.items():
        if isinstance(spec, dict):
            parts.append(f"{prop} with {spec['with']} as {spec['as']}")
        else:
            parts.append(f"{prop} with {spec} as {prop}")
    return f"aggregate({','.join(parts)})"


def _groupby(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return f"groupby(({','.join(value)}))"
    props = value.get("properties", [])
    text = f"groupby(({','.join(props)})"
    transform = value.get("transform")
    if transform:
        text += "," + build_apply(transform)
    return text + ")"


def build_apply(value: Any) -> str:
    """
    Render ``$apply`` transformations, joined with ``/``.

    >>> build_apply({"filter": {"Discontinued": False},
    ...              "groupby": {"properties": ["CategoryID"],
    ...                          "transform": {"aggregate": {"Price": {"with": "sum", "as": "Total"}}}}})
    'filter(Discontinued eq false)/groupby((CategoryID),aggregate(Price with sum as Total))'
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return "/".join(build_apply(v) for v in value)
    steps = []
    if value.get("filter") is not None:
        steps.append(f"filter({build_filter(value['filter'])})")
    if value.get("groupby") is not None:
        steps.append(_groupby(value["groupby"]))
    if value.get("aggregate") is not None:
        steps.append(_aggregate(value["aggregate"]))
    return "/".join(steps)


# ---------------- query params ----------------

def build_query_params(options: Dict[str, Any], aliases: Iterable[Alias] = ()) -> Dict[str, str]:
    """
    Flatten an option snapshot into ``{"$name": "text"}`` in canonical order.

    Order is select, filter, search, apply, orderby, top, skip, skiptoken,
    expand, format, count, then ``@alias`` entries, then custom entries.
    A custom entry replaces a reserved one of the same name.
    """
    params: Dict[str, str] = {}

    def put(name: str, text: str) -> None:
        if text:
            params[name] = text

    if options.get(SELECT) is not None:
        put("$select", build_select(options[SELECT]))
    if options.get(FILTER) is not None:
        put("$filter", build_filter(options[FILTER]))
    if options.get(SEARCH) is not None:
        put("$search", build_search(options[SEARCH]))
    if options.get(TRANSFORM) is not None:
        put("$apply", build_apply(options[TRANSFORM]))
    if options.get(ORDER_BY) is not None:
        put("$orderby", build_orderby(options[ORDER_BY]))
    if options.get(TOP) is not None:
        put("$top", str(int(options[TOP])))
    if options.get(SKIP) is not None:
        put("$skip", str(int(options[SKIP])))
    if options.get(SKIPTOKEN) is not None:
        put("$skiptoken", str(options[SKIPTOKEN]))
    if options.get(EXPAND) is not None:
        put("$expand", build_expand(options[EXPAND]))
    if options.get(FORMAT) is not None:
        put("$format", str(options[FORMAT]))
    if options.get(COUNT):
        put("$count", "true")

    for name, value in (options.get(ALIASES) or {}).items():
        params[f"@{name}"] = format_literal(value)
    for alias in aliases:
        params[f"@{alias.name}"] = format_literal(alias.value)

    for name, value in (options.get(CUSTOM) or {}).items():
        params[name] = value if isinstance(value, str) else format_literal(value)
    return params
