"""
odata_client.odata.metadata - OData $metadata parsing
======================================================

Lightweight CSDL parser for OData v2/v4 ``$metadata`` documents. Produces
the :class:`SchemaConfig` models that :class:`ODataSettings` is built from,
plus entity set discovery helpers for field validation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import xml.etree.ElementTree as ET

from odata_client.config.schema import (
    CallableConfig,
    EntityConfig,
    EnumConfig,
    FieldConfig,
    SchemaConfig,
)


@dataclass
class EntitySetInfo:
    """
    Information about an OData entity set.

    Attributes
    ----------
    name : str
        Entity set name (e.g., "Products")
    entity_type : str
        Full entity type name including namespace
    properties : list of str
        List of structural property names available on this entity set
    """
    name: str
    entity_type: str
    properties: List[str]


def _strip_ns(tag: str) -> str:
    """Strip XML namespace from a tag name."""
    return tag.split("}", 1)[-1] if "}" in tag else tag


def _attr(node: ET.Element, name: str) -> Optional[str]:
    """Attribute lookup ignoring namespaces (e.g. m:HttpMethod)."""
    if name in node.attrib:
        return node.attrib[name]
    for key, value in node.attrib.items():
        if _strip_ns(key) == name:
            return value
    return None


def _children(node: ET.Element, tag: str) -> List[ET.Element]:
    return [c for c in node if _strip_ns(c.tag) == tag]


def _collection_type(type_name: str) -> Tuple[str, bool]:
    """``Collection(NS.T)`` -> ("NS.T", True)."""
    if type_name.startswith("Collection(") and type_name.endswith(")"):
        return type_name[len("Collection("):-1], True
    return type_name, False


def _is_true(value: Optional[str]) -> bool:
    return (value or "").lower() == "true"


class ODataMetadata:
    """
    Parsed ``$metadata`` document.

    Parameters
    ----------
    schemas : list of SchemaConfig
        Parsed schemas

    Examples
    --------
    >>> meta = ODataMetadata.parse(xml_text)
    >>> meta.entity_sets()
    ['Categories', 'Products']
    >>> meta.properties("Products")
    ['ID', 'Name', 'Price', ...]
    """

    def __init__(self, schemas: List[SchemaConfig]) -> None:
        self.schemas = schemas
        self._entity_sets: Dict[str, EntitySetInfo] = {}
        types = {
            f"{s.namespace}.{e.name}": e
            for s in schemas for e in s.entities
        }
        for schema in schemas:
            for set_name, type_name in schema.entity_sets.items():
                entity = types.get(type_name)
                props = [f.name for f in entity.fields if not f.navigation] if entity else []
                self._entity_sets[set_name] = EntitySetInfo(
                    name=set_name,
                    entity_type=type_name,
                    properties=props,
                )

    @classmethod
    def parse(cls, xml_text: str) -> "ODataMetadata":
        """Parse a CSDL (EDMX) document."""
        root = ET.fromstring(xml_text)
        return cls([cls._parse_schema(node) for node in root.iter() if _strip_ns(node.tag) == "Schema"])

    # ---------------- schema parsing ----------------

    @classmethod
    def _parse_schema(cls, node: ET.Element) -> SchemaConfig:
        namespace = node.attrib.get("Namespace", "")
        alias = node.attrib.get("Alias")
        associations = cls._parse_associations(node)

        entities: List[EntityConfig] = []
        enums: List[EnumConfig] = []
        callables: List[CallableConfig] = []
        entity_sets: Dict[str, str] = {}

        for child in node:
            tag = _strip_ns(child.tag)
            if tag in ("EntityType", "ComplexType"):
                entities.append(cls._parse_structured(child, associations, complex=tag == "ComplexType"))
            elif tag == "EnumType":
                enums.append(cls._parse_enum(child))
            elif tag in ("Function", "Action"):
                callables.append(cls._parse_callable(child, action=tag == "Action"))

        by_name = {c.name: c for c in callables}
        for container in _children(node, "EntityContainer"):
            for child in container:
                tag = _strip_ns(child.tag)
                name = child.attrib.get("Name")
                if not name:
                    continue
                if tag == "EntitySet":
                    entity_sets[name] = child.attrib.get("EntityType", "")
                elif tag == "Singleton":
                    entity_sets[name] = child.attrib.get("Type", "")
                elif tag in ("FunctionImport", "ActionImport"):
                    target = child.attrib.get("Function") or child.attrib.get("Action")
                    if target:
                        # v4: the import points at a declared function/action
                        declared = by_name.get(target.split(".")[-1])
                        if declared is not None and name not in by_name:
                            callables.append(declared.model_copy(update={"name": name}))
                    elif name not in by_name:
                        callables.append(cls._parse_function_import(child))

        return SchemaConfig(
            namespace=namespace,
            alias=alias,
            entities=entities,
            enums=enums,
            callables=callables,
            entity_sets=entity_sets,
        )

    @staticmethod
    def _parse_associations(node: ET.Element) -> Dict[str, Dict[str, Tuple[str, bool]]]:
        """v2 associations: name -> role -> (type, collection)."""
        out: Dict[str, Dict[str, Tuple[str, bool]]] = {}
        for assoc in _children(node, "Association"):
            roles = {}
            for end in _children(assoc, "End"):
                roles[end.attrib.get("Role", "")] = (
                    end.attrib.get("Type", ""),
                    end.attrib.get("Multiplicity") == "*",
                )
            out[assoc.attrib.get("Name", "")] = roles
        return out

    @staticmethod
    def _parse_structured(
        node: ET.Element,
        associations: Dict[str, Dict[str, Tuple[str, bool]]],
        *,
        complex: bool,
    ) -> EntityConfig:
        keys = set()
        for key in _children(node, "Key"):
            for ref in _children(key, "PropertyRef"):
                keys.add(ref.attrib.get("Name"))

        fields: List[FieldConfig] = []
        for c in node:
            tag = _strip_ns(c.tag)
            pname = c.attrib.get("Name")
            if not pname:
                continue
            if tag == "Property":
                type_name, collection = _collection_type(c.attrib.get("Type", "Edm.String"))
                fields.append(FieldConfig(
                    name=pname,
                    type=type_name,
                    key=pname in keys,
                    collection=collection,
                    nullable=c.attrib.get("Nullable", "true").lower() != "false",
                ))
            elif tag == "NavigationProperty":
                if "Type" in c.attrib:
                    type_name, collection = _collection_type(c.attrib["Type"])
                else:
                    relationship = c.attrib.get("Relationship", "").split(".")[-1]
                    type_name, collection = associations.get(relationship, {}).get(
                        c.attrib.get("ToRole", ""), ("", False)
                    )
                fields.append(FieldConfig(
                    name=pname,
                    type=type_name,
                    navigation=True,
                    collection=collection,
                    nullable=c.attrib.get("Nullable", "true").lower() != "false",
                ))

        return EntityConfig(
            name=node.attrib.get("Name", ""),
            fields=fields,
            complex=complex,
            base=node.attrib.get("BaseType"),
            open=_is_true(node.attrib.get("OpenType")),
        )

    @staticmethod
    def _parse_enum(node: ET.Element) -> EnumConfig:
        members: Dict[str, int] = {}
        next_value = 0
        for member in _children(node, "Member"):
            value = member.attrib.get("Value")
            number = int(value) if value is not None else next_value
            members[member.attrib.get("Name", "")] = number
            next_value = number + 1
        return EnumConfig(
            name=node.attrib.get("Name", ""),
            members=members,
            flags=_is_true(node.attrib.get("IsFlags")),
        )

    @staticmethod
    def _parse_callable(node: ET.Element, *, action: bool) -> CallableConfig:
        parameters = []
        for p in _children(node, "Parameter"):
            type_name, collection = _collection_type(p.attrib.get("Type", "Edm.String"))
            parameters.append(FieldConfig(
                name=p.attrib.get("Name", ""),
                type=type_name,
                collection=collection,
                nullable=p.attrib.get("Nullable", "true").lower() != "false",
            ))
        return_type, return_collection = None, False
        for r in _children(node, "ReturnType"):
            return_type, return_collection = _collection_type(r.attrib.get("Type", ""))
        return CallableConfig(
            name=node.attrib.get("Name", ""),
            action=action,
            bound=_is_true(node.attrib.get("IsBound")),
            composable=_is_true(node.attrib.get("IsComposable")),
            parameters=parameters,
            return_type=return_type,
            return_collection=return_collection,
        )

    @staticmethod
    def _parse_function_import(node: ET.Element) -> CallableConfig:
        # v2 function imports carry everything inline
        return_type, return_collection = None, False
        if node.attrib.get("ReturnType"):
            return_type, return_collection = _collection_type(node.attrib["ReturnType"])
        parameters = [
            FieldConfig(name=p.attrib.get("Name", ""), type=p.attrib.get("Type", "Edm.String"))
            for p in _children(node, "Parameter")
        ]
        method = (_attr(node, "HttpMethod") or "GET").upper()
        return CallableConfig(
            name=node.attrib.get("Name", ""),
            action=method != "GET",
            parameters=parameters,
            return_type=return_type,
            return_collection=return_collection,
        )

    # ---------------- discovery helpers ----------------

    def entity_sets(self) -> List[str]:
        """
        Get list of entity set names in the service.

        Returns
        -------
        list of str
            Sorted list of entity set names
        """
        return sorted(self._entity_sets.keys())

    def properties(self, entity_set: str) -> List[str]:
        """
        Get list of properties for an entity set.

        Parameters
        ----------
        entity_set : str
            Name of the entity set

        Returns
        -------
        list of str
            List of property names
        """
        info = self._entity_sets.get(entity_set)
        return list(info.properties) if info else []

    def validate_select(
        self,
        entity_set: str,
        fields: List[str]
    ) -> Tuple[List[str], List[str]]:
        """
        Validate fields against entity set metadata.

        Returns
        -------
        tuple of (list, list)
            (valid_fields, unknown_fields)
        """
        props = set(self.properties(entity_set))
        valid, unknown = [], []
        for f in fields:
            (valid if f in props else unknown).append(f)
        return valid, unknown

    def get_entity_set_info(self, entity_set: str) -> Optional[EntitySetInfo]:
        return self._entity_sets.get(entity_set)
