"""Model schema builder.

One object schema per model class, built at most once per run and
registered under ``components.schemas``. Sources are tried in order and the
first one yielding properties wins:

1. ``ApiProperty`` markers on the fields
2. field docstrings and class-level ``@property`` lines
3. the ``fillable`` field list
4. public fields plus ``id``/``created_at``/``updated_at``
"""

import logging
from datetime import datetime
from typing import Any, Callable

from autoswagger.naming import humanize
from autoswagger.parser.base import ModelDescriptor
from autoswagger.parser.docblock import parse_model_doc, type_schema
from autoswagger.parser.reflection import Reflector
from autoswagger.parser.rules import example_for
from autoswagger.parser.types import schema_ref

logger = logging.getLogger(__name__)

Tier = Callable[[ModelDescriptor, Callable[[str], str | None]], dict[str, dict]]

TIMESTAMP_FIELDS = ("created_at", "updated_at")


def guess_property_type(name: str) -> dict[str, Any]:
    """Type a field by its name alone."""
    if name == "id" or name.endswith("_id"):
        return {"type": "integer", "example": 1}
    if name.endswith(("_at", "_date")):
        return {"type": "string", "format": "date-time", "example": datetime.now().replace(microsecond=0).isoformat()}
    if name == "email":
        return {"type": "string", "format": "email", "example": "user@example.com"}
    if "url" in name or "link" in name:
        return {"type": "string", "format": "uri", "example": "https://example.com"}
    if name.startswith(("is_", "has_")):
        return {"type": "boolean", "example": True}
    if any(word in name for word in ("amount", "price", "cost")):
        return {"type": "number", "format": "float", "example": 99.99}
    return {"type": "string", "example": f"Example {humanize(name)}"}


def generic_schema() -> dict[str, Any]:
    """Placeholder object for anything that cannot be resolved to a model."""
    return {
        "type": "object",
        "properties": {name: guess_property_type(name) for name in ("id", *TIMESTAMP_FIELDS)},
    }


def object_schema(properties: dict[str, dict], description: str = "") -> dict[str, Any]:
    """Wrap properties into an object schema, hoisting ``required`` flags."""
    required = []
    cleaned = {}
    for name, prop in properties.items():
        prop = dict(prop)
        if prop.pop("required", False) is True:
            required.append(name)
        cleaned[name] = prop

    schema: dict[str, Any] = {"type": "object"}
    if description:
        schema["description"] = description
    schema["properties"] = cleaned
    if required:
        schema["required"] = required
    return schema


class ModelSchemaBuilder:
    def __init__(self, reflector: Reflector):
        self.reflector = reflector
        # schema name -> schema, in registration order
        self.schemas: dict[str, dict] = {}
        self._built: dict[str, dict] = {}
        self._in_flight: set[str] = set()
        self.tiers: list[Tier] = [
            self._from_annotations,
            self._from_docstrings,
            self._from_fillable,
            self._from_public_fields,
        ]

    def schema_name(self, ref: Any, context: str | None = None) -> str | None:
        """Resolve a model reference, build it if needed, and return its schema name."""
        key = self.reflector.resolve_model(ref, context)
        if key is None:
            return None
        # an in-flight model is mid-build; a $ref to it is already valid
        if key not in self._built and key not in self._in_flight:
            self.build(key)
        descriptor = self.reflector.model(key)
        return descriptor.name if descriptor else None

    def ref_for(self, ref: Any, context: str | None = None) -> dict | None:
        name = self.schema_name(ref, context)
        return schema_ref(name) if name else None

    def build(self, key: str) -> dict[str, Any]:
        if key in self._built:
            return self._built[key]
        descriptor = self.reflector.model(key)
        if descriptor is None:
            logger.debug("No model descriptor for %s", key)
            return generic_schema()

        cls = self.reflector.class_for(key)
        context = cls.__module__ if cls is not None else None

        def resolve(token: str) -> str | None:
            return self.schema_name(token, context)

        self._in_flight.add(key)
        try:
            properties: dict[str, dict] = {}
            for tier in self.tiers:
                properties = tier(descriptor, resolve)
                if properties:
                    break
            description = descriptor.description or ""
            if not description and descriptor.doc:
                description = parse_model_doc(descriptor.doc).description
            schema = object_schema(properties, description)
        finally:
            self._in_flight.discard(key)

        self._built[key] = schema
        self.schemas[descriptor.name] = schema
        return schema

    def build_all(self, keys: list[str]) -> None:
        for key in keys:
            self.build(key)

    # -- tiers ------------------------------------------------------------------

    def _from_annotations(self, descriptor: ModelDescriptor, resolve) -> dict[str, dict]:
        properties = {}
        for name, marker in descriptor.annotated_properties.items():
            if marker.hidden:
                continue
            if marker.schema_:
                prop = dict(marker.schema_)
            else:
                prop = type_schema(marker.type or descriptor.field_types.get(name) or "string", resolve)
                if marker.format:
                    prop["format"] = marker.format
                if marker.items:
                    prop["items"] = dict(marker.items)
            if marker.description:
                prop["description"] = marker.description
            if marker.example is not None:
                prop["example"] = marker.example
            if marker.enum:
                prop["enum"] = list(marker.enum)
            if marker.nullable:
                prop["nullable"] = True
            if marker.required:
                prop["required"] = True
            properties[name] = prop
        return properties

    def _from_docstrings(self, descriptor: ModelDescriptor, resolve) -> dict[str, dict]:
        if not descriptor.doc and not descriptor.field_docs:
            return {}
        parsed = parse_model_doc(descriptor.doc, descriptor.field_docs, descriptor.field_types, resolve)
        return parsed.properties

    def _typed_field(self, descriptor: ModelDescriptor, name: str, resolve) -> dict[str, Any]:
        token = descriptor.field_types.get(name)
        if not token:
            return guess_property_type(name)
        prop = type_schema(token, resolve)
        if "$ref" in prop:
            return prop
        if prop.get("type") == "string" and not prop.get("format"):
            # a plain str annotation says less than the field name does
            guessed = guess_property_type(name)
            if prop.get("nullable"):
                guessed["nullable"] = True
            return guessed
        prop.setdefault("example", example_for(prop))
        return prop

    def _from_fillable(self, descriptor: ModelDescriptor, resolve) -> dict[str, dict]:
        return {name: self._typed_field(descriptor, name, resolve) for name in descriptor.fillable}

    def _from_public_fields(self, descriptor: ModelDescriptor, resolve) -> dict[str, dict]:
        names = ["id", *descriptor.public_fields, *TIMESTAMP_FIELDS]
        return {name: self._typed_field(descriptor, name, resolve) for name in dict.fromkeys(names)}
