"""Resource schema builder.

Works out what a resource class serializes. The item schema comes from the
first source that answers:

1. an explicit ``ApiResource(schema=...)``
2. an explicit ``ApiResource(model=...)``
3. the dict literal returned by the class's own ``to_array``
4. the resource a collection class ``collects``
5. the model guessed from ``@mixin``/``@see`` or the class name

and otherwise a generic ``{id, created_at, updated_at}`` object. Relations
are added on top, then the result is wrapped for collections.
"""

import copy
import logging
import re
from typing import Any, Callable

from autoswagger.naming import singularize
from autoswagger.parser.base import RelationDescriptor, ResourceDescriptor, TransformField
from autoswagger.parser.docblock import mixin_of
from autoswagger.parser.reflection import Reflector

from .model import ModelSchemaBuilder, generic_schema, guess_property_type, object_schema

logger = logging.getLogger(__name__)

ResourceTier = Callable[[ResourceDescriptor], dict | None]

RESOURCE_SUFFIX = re.compile(r"(Resource|Collection)$")

LITERAL_TYPES = (
    (bool, "boolean"),
    (int, "integer"),
    (float, "number"),
    (str, "string"),
    (list, "array"),
    (dict, "object"),
)


def paginated_envelope(item: dict) -> dict:
    """The ``{data, links, meta}`` envelope of a paginated collection."""
    return {
        "type": "object",
        "properties": {
            "data": {"type": "array", "items": item},
            "links": {
                "type": "object",
                "properties": {
                    "first": {"type": "string", "format": "uri"},
                    "last": {"type": "string", "format": "uri"},
                    "prev": {"type": "string", "format": "uri", "nullable": True},
                    "next": {"type": "string", "format": "uri", "nullable": True},
                },
            },
            "meta": {
                "type": "object",
                "properties": {
                    "current_page": {"type": "integer"},
                    "from": {"type": "integer", "nullable": True},
                    "last_page": {"type": "integer"},
                    "links": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "url": {"type": "string", "format": "uri", "nullable": True},
                                "label": {"type": "string"},
                                "active": {"type": "boolean"},
                            },
                        },
                    },
                    "path": {"type": "string", "format": "uri"},
                    "per_page": {"type": "integer"},
                    "to": {"type": "integer", "nullable": True},
                    "total": {"type": "integer"},
                },
            },
        },
    }


def is_paginated_envelope(schema: dict) -> bool:
    """True only for the exact envelope ``paginated_envelope`` produces."""
    properties = schema.get("properties") or {}
    if set(properties) != {"data", "links", "meta"} or (properties["data"] or {}).get("type") != "array":
        return False
    template = paginated_envelope({})["properties"]
    return all(
        set((properties[part] or {}).get("properties") or {}) == set(template[part]["properties"])
        for part in ("links", "meta")
    )


def wrap_collection(schema: dict, is_collection: bool, is_paginated: bool = True) -> dict:
    """Wrap an item schema for a collection; already wrapped schemas pass through."""
    if not is_collection or is_paginated_envelope(schema):
        return schema
    if schema.get("type") == "array":
        return paginated_envelope(schema.get("items", {})) if is_paginated else schema
    if is_paginated:
        return paginated_envelope(schema)
    return {"type": "array", "items": schema}


def literal_schema(value: Any) -> dict:
    if value is None:
        return {"type": "string", "nullable": True}
    for python_type, schema_type in LITERAL_TYPES:
        if isinstance(value, python_type):
            return {"type": schema_type, "example": value}
    return {"type": "string"}


class ResourceSchemaBuilder:
    def __init__(self, reflector: Reflector, models: ModelSchemaBuilder):
        self.reflector = reflector
        self.models = models
        # resource keys and "model:<key>" entries currently being expanded
        self._in_flight: set[str] = set()
        self.tiers: list[ResourceTier] = [
            self._explicit_schema,
            self._explicit_model,
            self._structural,
            self._collected,
            self._guessed_model,
        ]

    def build(
        self,
        ref: Any,
        context: str | None = None,
        is_collection: bool | None = None,
        is_paginated: bool | None = None,
    ) -> dict | None:
        """Schema for a resource reference, or ``None`` when it is not a resource.

        ``is_collection``/``is_paginated`` override what the class declares.
        """
        key = self.reflector.resolve_resource(ref, context)
        if key is None:
            return None
        descriptor = self.reflector.resource(key)
        meta = descriptor.api_resource

        if is_collection is None:
            is_collection = descriptor.is_collection_class or bool(meta and meta.is_collection)
        if is_paginated is None:
            is_paginated = meta.is_paginated if meta else True

        if key in self._in_flight:
            logger.debug("Resource %s is already being expanded", descriptor.name)
            item = {"type": "object"}
        else:
            self._in_flight.add(key)
            try:
                item = self.item_schema(descriptor)
            finally:
                self._in_flight.discard(key)

        return wrap_collection(item, is_collection, is_paginated)

    def item_schema(self, descriptor: ResourceDescriptor) -> dict:
        for tier in self.tiers:
            schema = tier(descriptor)
            if schema is not None:
                break
        else:
            logger.debug("No structure found for %s, using generic schema", descriptor.name)
            tier, schema = None, generic_schema()

        meta = descriptor.api_resource
        if meta and meta.description and "description" not in schema:
            schema["description"] = meta.description
        # an explicit schema is taken as written; only declared relations go on top
        return self._add_relations(descriptor, schema, detect=tier != self._explicit_schema)

    # -- tiers ------------------------------------------------------------------

    def _explicit_schema(self, descriptor: ResourceDescriptor) -> dict | None:
        meta = descriptor.api_resource
        if meta and meta.schema_:
            return copy.deepcopy(meta.schema_)
        return None

    def _explicit_model(self, descriptor: ResourceDescriptor) -> dict | None:
        meta = descriptor.api_resource
        if not meta or not meta.model:
            return None
        key = self.reflector.resolve_model(meta.model, descriptor.module)
        if key is None:
            logger.debug("Model %s of %s cannot be resolved", meta.model, descriptor.name)
            return None
        return copy.deepcopy(self.models.build(key))

    def _structural(self, descriptor: ResourceDescriptor) -> dict | None:
        if not descriptor.transform:
            return None
        model_key = self.guess_model(descriptor)
        model_properties = self.models.build(model_key).get("properties", {}) if model_key else {}

        properties = {
            name: self._transform_field(name, field, model_properties, descriptor.module)
            for name, field in descriptor.transform.items()
        }
        return object_schema(properties)

    def _transform_field(self, name: str, field: TransformField, model_properties: dict, context: str) -> dict:
        if field.kind == "attribute":
            target = field.target or name
            if target in model_properties:
                return copy.deepcopy(model_properties[target])
            return guess_property_type(target)
        if field.kind == "resource":
            return self.build(field.target, context, is_collection=False) or generic_schema()
        if field.kind == "collection":
            nested = self.build(field.target, context, is_collection=True, is_paginated=False)
            return nested or {"type": "array", "items": generic_schema()}
        if field.kind == "literal":
            return literal_schema(field.value)
        return guess_property_type(name)

    def _collected(self, descriptor: ResourceDescriptor) -> dict | None:
        if not descriptor.collects:
            return None
        return self.build(descriptor.collects, is_collection=False)

    def _guessed_model(self, descriptor: ResourceDescriptor) -> dict | None:
        key = self.guess_model(descriptor)
        return copy.deepcopy(self.models.build(key)) if key else None

    def guess_model(self, descriptor: ResourceDescriptor) -> str | None:
        """The model a resource most likely serializes."""
        candidates = []
        if descriptor.api_resource and descriptor.api_resource.model:
            candidates.append(descriptor.api_resource.model)
        mixin = mixin_of(descriptor.doc)
        if mixin:
            candidates.append(mixin)
        stripped = RESOURCE_SUFFIX.sub("", descriptor.name)
        if stripped:
            candidates.extend([stripped, singularize(stripped)])

        for candidate in dict.fromkeys(candidates):
            key = self.reflector.resolve_model(candidate, descriptor.module)
            if key is not None:
                return key
        return None

    # -- relations --------------------------------------------------------------

    def _add_relations(self, descriptor: ResourceDescriptor, schema: dict, detect: bool = True) -> dict:
        meta = descriptor.api_resource
        if not meta or not (meta.relations or (detect and meta.include_all_relations)):
            return schema
        properties = schema.setdefault("properties", {})

        for name, spec in meta.relations.items():
            properties[name] = self._declared_relation(spec, descriptor.module)

        if detect and meta.include_all_relations:
            model_key = self.guess_model(descriptor)
            if model_key is not None:
                self._add_model_relations(model_key, properties)
        return schema

    def _declared_relation(self, spec: Any, context: str) -> dict:
        if isinstance(spec, dict):
            ref = spec.get("resource") or spec.get("model")
            many = bool(spec.get("is_collection", False))
        else:
            ref, many = spec, False

        item = self.build(ref, context, is_collection=False)
        if item is None:
            model_key = self.reflector.resolve_model(ref, context)
            item = copy.deepcopy(self.models.build(model_key)) if model_key else generic_schema()
        return {"type": "array", "items": item} if many else item

    def _add_model_relations(self, model_key: str, properties: dict) -> None:
        guard = f"model:{model_key}"
        if guard in self._in_flight:
            return
        descriptor = self.reflector.model(model_key)
        if descriptor is None:
            return
        self._in_flight.add(guard)
        try:
            for relation in descriptor.relations:
                # explicit and model-derived properties win
                if relation.name not in properties:
                    properties[relation.name] = self._detected_relation(relation)
        finally:
            self._in_flight.discard(guard)

    def _detected_relation(self, relation: RelationDescriptor) -> dict:
        key = relation.related_model
        if key is None:
            item = generic_schema()
        elif f"model:{key}" in self._in_flight:
            item = {"type": "object"}
        else:
            item = copy.deepcopy(self.models.build(key))
            self._add_model_relations(key, item.setdefault("properties", {}))
        return {"type": "array", "items": item} if relation.cardinality == "many" else item
