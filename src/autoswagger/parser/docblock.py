"""Doc-comment annotation parser.

Reads ``@tag`` hints out of docstrings::

    class User(Model):
        \"\"\"A registered user.

        @property int $id
        @property string $email Login address
        @property Collection<Post> $posts
        \"\"\"

        nickname: str
        \"\"\"Display name.

        @example neo
        @nullable
        \"\"\"
"""

import inspect
import json
import re
from typing import Any, Callable, NamedTuple

from pydantic import BaseModel

from .types import map_type

Resolver = Callable[[str], str | None]

TAG_LINE = re.compile(r"^@([\w-]+)\s*(.*)$")
PROPERTY_TAG = re.compile(r"^@property(?:-read|-write)?\s+(\S+)\s+\$?(\w+)(?:\s+(.*))?$")
RETURN_GENERIC = re.compile(r"^[\\\w.|]+\s*[<\[]\s*[\"']?([\\\w.]+)[\"']?\s*[>\]]")
RETURN_ARRAY = re.compile(r"^[\\\w.|]+\|([\\\w.]+)\[\]")
RETURN_NULLABLE = re.compile(r"^([\\\w.]+)\s*\|\s*(?:null|None)\b")

ARRAY_WRAPPERS = {"list", "collection", "sequence", "iterable", "set", "tuple"}


class ParsedType(NamedTuple):
    base: str
    is_array: bool = False
    nullable: bool = False


class DocSchema(BaseModel):
    description: str = ""
    properties: dict[str, dict[str, Any]] = {}


def clean_doc(doc: str | None) -> str:
    """Normalize indentation and drop PHP-style comment decoration."""
    if not doc:
        return ""
    lines = []
    for line in inspect.cleandoc(doc).splitlines():
        line = re.sub(r"^\s*/\*\*\s?|\s*\*/\s*$", "", line)
        line = re.sub(r"^\s*\*\s?", "", line)
        lines.append(line)
    return "\n".join(lines).strip()


def extract_description(doc: str | None) -> str:
    """Return the docstring body with every ``@tag`` line removed."""
    kept = [line for line in clean_doc(doc).splitlines() if not line.strip().startswith("@")]
    return "\n".join(kept).strip()


def iter_tags(doc: str | None) -> list[tuple[str, str]]:
    tags = []
    for line in clean_doc(doc).splitlines():
        match = TAG_LINE.match(line.strip())
        if match:
            tags.append((match.group(1).lower(), match.group(2).strip()))
    return tags


def first_tag(doc: str | None, *names: str) -> str | None:
    for tag, value in iter_tags(doc):
        if tag in names:
            return value
    return None


def parse_type(token: str) -> ParsedType:
    """Split a doc-comment type into its base, array and nullable parts."""
    token = token.strip().strip("\"'")
    nullable = False
    is_array = False

    if token.startswith("?"):
        token, nullable = token[1:], True

    # T|null, null|T, T | None
    parts = [p.strip() for p in token.split("|") if p.strip()]
    if len(parts) > 1:
        if any(p.lower() in ("null", "none") for p in parts):
            nullable = True
            parts = [p for p in parts if p.lower() not in ("null", "none")]
        # Collection|Post[] -> prefer the array-suffixed member
        suffixed = [p for p in parts if p.endswith("[]")]
        token = suffixed[0] if suffixed else parts[-1]
        if not suffixed and len(parts) > 1 and parts[0].rsplit(".", 1)[-1].lower() in ARRAY_WRAPPERS:
            token, is_array = parts[-1], True
    elif parts:
        token = parts[0]

    generic = re.match(r"^([\\\w.]+)\s*[<\[]\s*(.+?)\s*[>\]]$", token)
    if generic:
        outer = generic.group(1).rsplit(".", 1)[-1].lower()
        inner = generic.group(2)
        if outer == "optional":
            inner_type = parse_type(inner)
            return ParsedType(inner_type.base, inner_type.is_array or is_array, True)
        if outer in ARRAY_WRAPPERS:
            # Collection<int, Post> keeps the value type
            token, is_array = inner.split(",")[-1].strip(), True
        else:
            token = generic.group(1)

    if token.endswith("[]"):
        token, is_array = token[:-2], True

    return ParsedType(token.strip().strip("\"'"), is_array, nullable)


def type_schema(token: str, resolve_model: Resolver | None = None) -> dict[str, Any]:
    """Map a doc-comment type to a schema, including array and nullable forms."""
    parsed = parse_type(token)
    schema = map_type(parsed.base, resolve_model)
    if schema.get("type") == "array" and "items" not in schema:
        schema["items"] = {"type": "string"}

    if parsed.is_array:
        schema = {"type": "array", "items": schema}
    if parsed.nullable:
        schema["nullable"] = True
    return schema


def cast_example(value: str, schema_type: str | None) -> Any:
    """Cast an ``@example`` value to the property's type."""
    value = value.strip()
    if schema_type == "integer":
        try:
            return int(value)
        except ValueError:
            return value
    if schema_type == "number":
        try:
            return float(value)
        except ValueError:
            return value
    if schema_type == "boolean":
        return value.lower() in ("1", "true", "yes", "on")
    if schema_type == "array":
        try:
            decoded = json.loads(value)
        except ValueError:
            decoded = None
        if isinstance(decoded, list):
            return decoded
        return [item.strip() for item in value.split(",")]
    if schema_type == "object":
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def apply_annotations(doc: str | None, schema: dict[str, Any]) -> dict[str, Any]:
    """Merge ``@example``, ``@format``, ``@required``, ``@nullable`` and ``@enum``."""
    for tag, value in iter_tags(doc):
        if tag == "example" and value:
            schema["example"] = cast_example(value, schema.get("type", "string"))
        elif tag == "format" and value:
            schema["format"] = value.split()[0]
        elif tag == "required":
            schema["required"] = True
        elif tag == "nullable":
            schema["nullable"] = True
        elif tag == "enum" and value:
            match = re.match(r"^\{([^}]*)\}", value)
            raw = match.group(1) if match else value
            schema["enum"] = [item.strip() for item in raw.split(",") if item.strip()]
    return schema


def parse_field_doc(
    doc: str | None,
    annotation: str | None = None,
    resolve_model: Resolver | None = None,
) -> dict[str, Any]:
    """Build a property schema from one field's docstring.

    ``@var`` wins over the field's type annotation; without either the
    property is a string.
    """
    schema: dict[str, Any] = {}
    description = extract_description(doc)
    if description:
        schema["description"] = description

    var_type = first_tag(doc, "var")
    token = var_type.split()[0] if var_type else annotation
    if token:
        schema.update(type_schema(token, resolve_model))
    else:
        schema["type"] = "string"

    return apply_annotations(doc, schema)


def parse_property_tags(doc: str | None, resolve_model: Resolver | None = None) -> dict[str, dict]:
    """Read class-level ``@property`` lines into property schemas."""
    properties: dict[str, dict] = {}
    for line in clean_doc(doc).splitlines():
        match = PROPERTY_TAG.match(line.strip())
        if not match:
            continue
        type_token, name, description = match.groups()
        schema = type_schema(type_token, resolve_model)
        if description and description.strip():
            schema["description"] = description.strip()
        properties.setdefault(name, schema)
    return properties


def parse_model_doc(
    class_doc: str | None,
    field_docs: dict[str, str] | None = None,
    field_types: dict[str, str] | None = None,
    resolve_model: Resolver | None = None,
) -> DocSchema:
    """Parse a model's class docstring and its field docstrings.

    Field docstrings define properties first; class-level ``@property`` lines
    only fill in names the fields did not define.
    """
    field_types = field_types or {}
    properties: dict[str, dict] = {}

    for name, doc in (field_docs or {}).items():
        properties[name] = parse_field_doc(doc, field_types.get(name), resolve_model)

    for name, schema in parse_property_tags(class_doc, resolve_model).items():
        properties.setdefault(name, schema)

    return DocSchema(description=extract_description(class_doc), properties=properties)


def mixin_of(doc: str | None) -> str | None:
    """The model a resource docstring points at with ``@mixin`` or ``@see``."""
    for names in (("mixin",), ("see",)):
        value = first_tag(doc, *names)
        if value:
            return value.split()[0]
    return None


def return_model_of(doc: str | None) -> str | None:
    """The related model named by an accessor's ``@return`` tag.

    Recognizes ``Relation<Model>``/``Relation[Model]``, ``Collection|Model[]``
    and ``Model|null``.
    """
    value = first_tag(doc, "return", "returns")
    if not value:
        return None
    value = value.split()[0] if " " in value and "<" not in value else value
    for pattern in (RETURN_GENERIC, RETURN_ARRAY, RETURN_NULLABLE):
        match = pattern.match(value)
        if match:
            return match.group(1).lstrip("\\")
    return None
