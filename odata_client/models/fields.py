"""
odata_client.models.fields - Static field descriptors
======================================================

Typed access to model attributes and relations, declared on the class:

>>> class Product(ODataModel):
...     entity_type = "Shop.Product"
...     id = Attribute("ID")
...     name = Attribute("Name")
...     category = Relation("Category")
"""

from __future__ import annotations

from typing import Any, Optional


class Attribute:
    """Read/write access to one attribute (``model["Name"]``)."""

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name

    def __set_name__(self, owner: type, attr: str) -> None:
        if self.name is None:
            self.name = attr

    def __get__(self, obj: Any, objtype: Optional[type] = None) -> Any:
        if obj is None:
            return self
        return obj.attributes.get(self.name)

    def __set__(self, obj: Any, value: Any) -> None:
        obj[self.name] = value


class Relation:
    """Lazy navigation property, resolved through ``get_relation``/``set_relation``."""

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name

    def __set_name__(self, owner: type, attr: str) -> None:
        if self.name is None:
            self.name = attr

    def __get__(self, obj: Any, objtype: Optional[type] = None) -> Any:
        if obj is None:
            return self
        return obj.get_relation(self.name)

    def __set__(self, obj: Any, value: Any) -> None:
        obj.set_relation(self.name, value)
