"""Type token to OpenAPI type/format mapping."""

from typing import Callable

SCHEMA_REF_PREFIX = "#/components/schemas/"

TYPE_MAP: dict[str, dict[str, str]] = {
    "int": {"type": "integer"},
    "integer": {"type": "integer"},
    "float": {"type": "number", "format": "float"},
    "double": {"type": "number", "format": "double"},
    "decimal": {"type": "number"},
    "numeric": {"type": "number"},
    "bool": {"type": "boolean"},
    "boolean": {"type": "boolean"},
    "array": {"type": "array"},
    "list": {"type": "array"},
    "tuple": {"type": "array"},
    "object": {"type": "object"},
    "dict": {"type": "object"},
    "json": {"type": "object"},
    "mixed": {"type": "object"},
    "any": {"type": "object"},
    "date": {"type": "string", "format": "date"},
    "datetime": {"type": "string", "format": "date-time"},
    "date_format": {"type": "string", "format": "date-time"},
    "carbon": {"type": "string", "format": "date-time"},
    "email": {"type": "string", "format": "email"},
    "password": {"type": "string", "format": "password"},
    "url": {"type": "string", "format": "uri"},
    "uri": {"type": "string", "format": "uri"},
    "ip": {"type": "string", "format": "ipv4"},
    "ipv4": {"type": "string", "format": "ipv4"},
    "ipv6": {"type": "string", "format": "ipv6"},
    "uuid": {"type": "string", "format": "uuid"},
    "file": {"type": "string", "format": "binary"},
    "image": {"type": "string", "format": "binary"},
    "bytes": {"type": "string", "format": "binary"},
    "string": {"type": "string"},
    "str": {"type": "string"},
}


def normalize_token(token: str) -> str:
    """Lower-case a token and drop any leading module or namespace path."""
    token = token.strip().lstrip("\\")
    for separator in ("\\", ":"):
        token = token.rsplit(separator, 1)[-1]
    # datetime.datetime -> datetime
    return token.rsplit(".", 1)[-1].lower()


def schema_ref(name: str) -> dict[str, str]:
    if name.startswith("#/"):
        return {"$ref": name}
    return {"$ref": SCHEMA_REF_PREFIX + name}


def map_type(token: str | None, resolve_model: Callable[[str], str | None] | None = None) -> dict:
    """Map a type or validation-rule token to an OpenAPI schema fragment.

    Tokens in the fixed vocabulary map to their type/format pair. Any other
    token is offered to ``resolve_model``; a model schema name coming back
    turns into a ``$ref``. Everything else is a plain string. Never raises.
    """
    if not token or not isinstance(token, str):
        return {"type": "string"}

    mapped = TYPE_MAP.get(normalize_token(token))
    if mapped is not None:
        return dict(mapped)

    if resolve_model is not None:
        try:
            schema_name = resolve_model(token.strip().lstrip("\\"))
        except Exception:
            schema_name = None
        if schema_name:
            return schema_ref(schema_name)

    return {"type": "string"}
