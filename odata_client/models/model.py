"""
odata_client.models.model - Entity model
=========================================

An :class:`ODataModel` wraps one attached resource plus an attribute bag.
Incoming payloads are reconciled against field metadata: scalars go through
their parser, complex values become sub-models (or sub-collections) bound to
a property resource, and navigation properties are resolved lazily.

Lifecycle: unattached -> attached -> populated, and finally destroyed after
a successful server delete (every later operation fails).

Examples
--------
>>> product = asyncio.run(client.entity_set("Products").entity(5).fetch_model())
>>> product["Name"] = "Organic Milk"
>>> product.set_relation("Category", dairy)
>>> asyncio.run(product.save())   # PUT Category/$ref, then PUT Products(5)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional

from odata_client.config.parsers import ODataField
from odata_client.core.errors import (
    ConfigurationError,
    EntityKeyError,
    OperationNotSupportedError,
    TypeMismatchError,
)
from odata_client.resources.resource import ODataResource, ResourceKind
from odata_client.resources.responses import ODataEntityMeta

logger = logging.getLogger("odata_client.models")


FETCH = "fetch"
CREATE = "create"
UPDATE = "update"
DESTROY = "destroy"

# Supported operations per resource kind; the flag tells whether a key is required
OPERATIONS: Dict[ResourceKind, Dict[str, bool]] = {
    ResourceKind.ENTITY: {FETCH: True, CREATE: False, UPDATE: True, DESTROY: True},
    ResourceKind.SINGLETON: {FETCH: False, UPDATE: False},
    ResourceKind.NAVIGATION: {FETCH: False},
    ResourceKind.PROPERTY: {FETCH: False},
    ResourceKind.CALLABLE: {FETCH: False},
}


@dataclass
class _Relation:
    field: ODataField
    model: Any
    changed: bool = False


def _is_deferred(value: Any) -> bool:
    # OData v2 placeholder for a navigation property that was not expanded
    return isinstance(value, dict) and set(value) == {"__deferred"}


class ODataModel:
    """
    Entity (or complex value) bound to an :class:`ODataResource`.

    Parameters
    ----------
    entity : dict, optional
        Wire payload; annotations are split off into :attr:`meta`
    resource : ODataResource, optional
        Resource to attach to; the payload is parsed against its type
    meta : ODataEntityMeta, optional
        Annotations received out of band (e.g. the ETag header)

    Subclasses declare typed access with :class:`Attribute` and
    :class:`Relation` and set ``entity_type`` to pin their bound type.
    """

    entity_type: ClassVar[Optional[str]] = None

    def __init__(
        self,
        entity: Optional[Dict[str, Any]] = None,
        *,
        resource: Optional[ODataResource] = None,
        meta: Optional[ODataEntityMeta] = None,
    ) -> None:
        self._resource: Optional[ODataResource] = None
        self._entity: Dict[str, Any] = {}
        self._attributes: Dict[str, Any] = {}
        self._meta = meta if meta is not None else ODataEntityMeta()
        self._relations: Dict[str, _Relation] = {}
        self._destroyed = False
        if entity is not None:
            data, entity_meta = ODataEntityMeta.split(entity)
            self._entity = dict(data)
            self._attributes = dict(data)
            if meta is None:
                self._meta = entity_meta
        if resource is not None:
            self.attach(resource)

    # ---------------- state ----------------

    @property
    def resource(self) -> Optional[ODataResource]:
        return self._resource

    @property
    def meta(self) -> ODataEntityMeta:
        return self._meta

    @property
    def attributes(self) -> Dict[str, Any]:
        return self._attributes

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def type(self) -> Optional[str]:
        if self._resource is not None:
            return self._resource.type()
        return self.entity_type

    def attach(self, resource: ODataResource) -> "ODataModel":
        """
        Bind the model to ``resource``.

        Raises
        ------
        TypeMismatchError
            If the model is already bound to another type
        """
        current = self.type()
        if current is not None and resource.type() != current:
            raise TypeMismatchError(
                f"Cannot attach a '{current}' model to a '{resource.type()}' resource"
            )
        first = self._resource is None
        self._resource = resource
        if first and self._entity:
            self.populate(self._entity, self._meta)
        return self

    def _check_alive(self) -> None:
        if self._destroyed:
            raise OperationNotSupportedError("The model has been destroyed")

    def _check_attached(self) -> ODataResource:
        if self._resource is None:
            raise OperationNotSupportedError("The model is not attached to a resource")
        return self._resource

    def _fields(self) -> Dict[str, ODataField]:
        if self._resource is None or self.type() is None:
            return {}
        parser = self._resource.client.settings.entity_parser_for_type(self.type())
        return {f.name: f for f in parser.fields()}

    # ---------------- attributes ----------------

    def __getitem__(self, name: str) -> Any:
        field = self._fields().get(name)
        if field is not None and field.navigation:
            return self.get_relation(name)
        return self._attributes[name]

    def __setitem__(self, name: str, value: Any) -> None:
        field = self._fields().get(name)
        if field is not None and field.navigation:
            self.set_relation(name, value)
        else:
            self._attributes[name] = value

    def __contains__(self, name: str) -> bool:
        return name in self._attributes

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.type()} {self._attributes!r}>"

    # ---------------- payload ----------------

    def populate(self, entity: Optional[Dict[str, Any]], meta: Optional[ODataEntityMeta] = None) -> "ODataModel":
        """
        Replace the model state with a wire payload.

        Scalars are deserialized, complex values are wrapped, unknown keys
        are kept verbatim and navigation values stay raw until first access.
        The relation cache is cleared.
        """
        data, entity_meta = ODataEntityMeta.split(entity or {})
        self._meta = meta if meta is not None else entity_meta
        self._entity = dict(data)
        self._relations = {}

        fields = self._fields()
        attributes: Dict[str, Any] = {}
        for name, value in data.items():
            field = fields.get(name)
            if field is None:
                attributes[name] = value
            elif field.navigation:
                continue
            elif field.complex:
                attributes[name] = self._wrap_complex(field, value)
            else:
                attributes[name] = field.deserialize(value)
        self._attributes = attributes
        return self

    def _wrap_complex(self, field: ODataField, value: Any) -> Any:
        if value is None:
            return None
        resource = self._check_attached().property(field.name)
        if field.collection:
            return resource.as_collection(value)
        return resource.as_model(value)

    def to_entity(self) -> Dict[str, Any]:
        """Inverse of :meth:`populate`: a plain payload for the wire."""
        fields = self._fields()
        out: Dict[str, Any] = {}
        for name, value in self._attributes.items():
            field = fields.get(name)
            if isinstance(value, ODataModel):
                out[name] = value.to_entity()
            elif hasattr(value, "to_entities"):
                out[name] = value.to_entities()
            elif field is not None:
                out[name] = field.serialize(value)
            else:
                out[name] = value
        for name, relation in self._relations.items():
            if relation.changed or name in self._entity:
                out[name] = self._relation_payload(relation.model)
        return out

    @staticmethod
    def _relation_payload(model: Any) -> Any:
        if model is None:
            return None
        if hasattr(model, "to_entities"):
            return model.to_entities()
        return model.to_entity()

    # ---------------- relations ----------------

    def _navigation_field(self, name: str) -> ODataField:
        field = self._fields().get(name)
        if field is None or not field.navigation:
            raise ConfigurationError(f"'{self.type()}' has no navigation property '{name}'")
        return field

    def get_relation(self, name: str) -> Any:
        """
        Related model (or collection) for a navigation property.

        Built on first access from the raw payload, or as an empty shell,
        then cached until the next :meth:`populate`.
        """
        self._check_alive()
        field = self._navigation_field(name)
        relation = self._relations.get(name)
        if relation is None:
            resource = self.navigation_property(name)
            raw = self._entity.get(name)
            if _is_deferred(raw):
                raw = None
            if field.collection:
                model = resource.as_collection(raw if raw is not None else [])
            else:
                model = resource.as_model(raw)
            relation = _Relation(field, model)
            self._relations[name] = relation
        return relation.model

    def set_relation(self, name: str, model: Optional["ODataModel"]) -> None:
        """
        Replace (or clear, with None) a single-valued relation.

        The server-side reference changes on the next :meth:`update`.
        """
        self._check_alive()
        field = self._navigation_field(name)
        if field.collection:
            raise TypeMismatchError(
                f"'{name}' is a collection; use the collection's add/remove instead"
            )
        if model is not None and (not isinstance(model, ODataModel) or model.type() != field.type):
            got = model.type() if isinstance(model, ODataModel) else type(model).__name__
            raise TypeMismatchError(f"'{name}' expects '{field.type}', got '{got}'")
        self._relations[name] = _Relation(field, model, changed=True)

    def changed_relations(self) -> Dict[str, Any]:
        return {
            name: rel.model for name, rel in self._relations.items()
            if rel.changed and not rel.field.collection
        }

    # ---------------- keys and derived resources ----------------

    def resolve_key(self) -> Any:
        """Key from the attributes; None while any key field is missing."""
        resource = self._check_attached()
        parser = resource.client.settings.entity_parser_for_type(self.type())
        return parser.resolve_key(self._attributes)

    def entity_resource(self, *, require_key: bool = True) -> ODataResource:
        """Clone of the attached resource, keyed from the attributes where possible."""
        resource = self._check_attached().clone()
        # only sets and collection-valued navigations take a key
        if resource.kind in (ResourceKind.ENTITY, ResourceKind.NAVIGATION) and resource.is_collection():
            key = self.resolve_key()
            if key is not None:
                resource.key(key)
        if require_key and resource.is_collection():
            raise EntityKeyError(f"'{self.type()}' model has no key")
        return resource

    def navigation_property(self, name: str) -> ODataResource:
        return self.entity_resource().navigation_property(name)

    def property(self, name: str) -> ODataResource:
        return self.entity_resource(require_key=False).property(name)

    def cast(self, type: str) -> ODataResource:
        return self.entity_resource().cast(type)

    def function(self, name: str, return_type: Optional[str] = None) -> ODataResource:
        return self.entity_resource().function(name, return_type)

    def action(self, name: str, return_type: Optional[str] = None) -> ODataResource:
        return self.entity_resource().action(name, return_type)

    # ---------------- persistence ----------------

    def _target(self, operation: str) -> ODataResource:
        self._check_alive()
        resource = self._check_attached()
        kind = resource.kind
        operations = OPERATIONS.get(kind, {})
        if operation not in operations:
            raise OperationNotSupportedError(
                f"Cannot {operation} a model bound to a {kind.value} resource"
            )
        if operation == CREATE:
            target = resource.clone()
            target.key().clear()
            return target
        return self.entity_resource(require_key=operations[operation])

    async def fetch(self, **options: Any) -> "ODataModel":
        resource = self._target(FETCH)
        if resource.kind == ResourceKind.PROPERTY:
            prop = await resource.fetch_property(**options)
            return self.populate(prop.value, prop.meta)
        if resource.kind == ResourceKind.CALLABLE:
            result = await resource.call(response_type="entity", **options)
        else:
            result = await resource.fetch_entity(**options)
        return self.populate(result.entity, result.meta)

    async def create(self, **options: Any) -> "ODataModel":
        resource = self._target(CREATE)
        body = self.to_entity()
        result = await resource.post(body, response_type="entity", **options)
        self.populate(result.entity if result.entity is not None else body, result.meta)
        # address the new entity from now on
        key = self.resolve_key()
        if key is not None:
            self._resource = resource.key(key)
        logger.debug("created %s", self.type())
        return self

    async def update(self, **options: Any) -> "ODataModel":
        """
        Persist changed single-valued relations, then the attributes.

        Each changed relation is sent as a ``$ref`` PUT (set) or DELETE
        (unset), one after the other, with the ETag returned by the previous
        call. A relation counts as persisted only once its call succeeded.
        The remaining attributes are then sent with ``PUT``.
        """
        resource = self._target(UPDATE)
        etag = options.pop("etag", None) or self._meta.etag
        for name, relation in list(self._relations.items()):
            if not relation.changed or relation.field.collection:
                continue
            ref = resource.navigation_property(name).reference()
            if relation.model is None:
                result = await ref.unset_reference(etag=etag)
            else:
                result = await ref.set_reference(relation.model, etag=etag)
            etag = result.meta.etag or etag
            self._meta.etag = etag
            relation.changed = False
            logger.debug("updated reference %s of %s", name, self.type())

        navigation = {name for name, f in self._fields().items() if f.navigation}
        body = {k: v for k, v in self.to_entity().items() if k not in navigation}
        result = await resource.put(body, etag=etag, response_type="entity", **options)
        return self.populate(result.entity if result.entity is not None else body, result.meta)

    async def save(self, **options: Any) -> "ODataModel":
        """Create when the key is still empty, update otherwise."""
        self._check_alive()
        resource = self._check_attached()
        if resource.kind == ResourceKind.ENTITY and not resource.has_key() and self.resolve_key() is None:
            return await self.create(**options)
        return await self.update(**options)

    async def destroy(self, **options: Any) -> None:
        resource = self._target(DESTROY)
        etag = options.pop("etag", None) or self._meta.etag
        await resource.delete(etag=etag, **options)
        self._destroyed = True
        logger.debug("destroyed %s", resource.endpoint_url())
