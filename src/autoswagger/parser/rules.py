"""Validation-rule interpreter.

Turns one field's rule list (``"required|string|max:255"`` or
``["required", "integer", "min:1"]``) into a JSON Schema property plus a
required flag, and a whole rule set into an object schema.
"""

import logging
from datetime import date, datetime
from typing import Any, Mapping

from .base import InterpretedField
from .types import TYPE_MAP, map_type

logger = logging.getLogger(__name__)

# Rule tokens that only modify the field and never change its type.
MODIFIER_RULES = {"required", "nullable", "sometimes", "present", "filled", "bail"}

# PHP date() characters -> strftime directives
PHP_DATE_DIRECTIVES = {
    "d": "%d", "D": "%a", "j": "%-d", "l": "%A", "N": "%u", "w": "%w", "z": "%j",
    "W": "%V", "F": "%B", "m": "%m", "M": "%b", "n": "%-m", "o": "%G", "Y": "%Y",
    "y": "%y", "a": "%p", "A": "%p", "g": "%-I", "G": "%-H", "h": "%I", "H": "%H",
    "i": "%M", "s": "%S", "u": "%f", "e": "%Z", "T": "%Z", "O": "%z", "P": "%z",
    "c": "%Y-%m-%dT%H:%M:%S", "r": "%a, %d %b %Y %H:%M:%S",
}

NIL_UUID = "00000000-0000-0000-0000-000000000000"


def split_rules(rules: Any) -> list[Any]:
    """Flatten a rule declaration into a list of tokens."""
    if rules is None:
        return []
    if isinstance(rules, str):
        return [r for r in rules.split("|") if r.strip()]
    if isinstance(rules, (list, tuple)):
        tokens: list[Any] = []
        for rule in rules:
            if isinstance(rule, str) and "|" in rule:
                tokens.extend(split_rules(rule))
            else:
                tokens.append(rule)
        return tokens
    return [rules]


def format_date_example(fmt: str, moment: datetime | None = None) -> str:
    """Render ``moment`` (default: now) with a PHP-style or strftime format."""
    moment = moment or datetime.now()
    if "%" in fmt:
        return moment.strftime(fmt)
    out = []
    escaped = False
    for char in fmt:
        if escaped:
            out.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "U":
            out.append(str(int(moment.timestamp())))
        elif char in PHP_DATE_DIRECTIVES:
            directive = PHP_DATE_DIRECTIVES[char]
            if directive.startswith("%-"):
                out.append(str(int(moment.strftime("%" + directive[2:]))))
            else:
                out.append(moment.strftime(directive))
        else:
            out.append(char)
    return "".join(out)


def example_for(prop: dict) -> Any:
    """Generate an example value from a property's type and format."""
    schema_type = prop.get("type", "string")
    fmt = prop.get("format")

    if schema_type == "integer":
        return 1
    if schema_type == "number":
        return 1.23
    if schema_type == "boolean":
        return True
    if schema_type == "array":
        return []
    if schema_type == "object":
        return {}
    if fmt == "date":
        return date.today().isoformat()
    if fmt == "date-time":
        return datetime.now().replace(microsecond=0).isoformat()
    if fmt == "email":
        return "user@example.com"
    if fmt == "uri":
        return "https://example.com"
    if fmt == "uuid":
        return NIL_UUID
    if fmt == "binary":
        return "(binary)"
    return "string"


def _number(raw: str) -> int | float | None:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return int(value) if value.is_integer() else value


def _set_type(prop: dict, mapped: dict) -> None:
    prop.pop("format", None)
    prop.pop("items", None)
    prop.update(mapped)
    if prop["type"] == "array":
        prop["items"] = {"type": "string"}


def _apply_bound(prop: dict, name: str, raw: str) -> None:
    value = _number(raw)
    if value is None:
        return
    schema_type = prop.get("type")
    if schema_type == "string":
        keys = {"min": ["minLength"], "max": ["maxLength"], "size": ["minLength", "maxLength"]}
    elif schema_type in ("integer", "number"):
        keys = {"min": ["minimum"], "max": ["maximum"], "size": ["minimum", "maximum"]}
    elif schema_type == "array":
        keys = {"min": ["minItems"], "max": ["maxItems"], "size": ["minItems", "maxItems"]}
    else:
        return
    for key in keys[name]:
        prop[key] = int(value) if key.endswith(("Length", "Items")) else value


def interpret_rules(field_name: str, rules: Any) -> InterpretedField:
    """Interpret one field's validation rules.

    Bare type tokens are applied left to right, so the last one wins.
    ``required``/``nullable`` accumulate regardless of position, and an
    ``in:`` enum is applied after the scan so later type tokens cannot drop it.
    """
    prop: dict[str, Any] = {
        "type": "string",
        "description": field_name.replace("_", " ").title(),
    }
    required = False
    enum_values: list[str] | None = None

    for rule in split_rules(rules):
        if isinstance(rule, (list, tuple, dict)):
            continue
        if not isinstance(rule, str):
            # rule objects contribute their class name
            rule = type(rule).__name__
        rule = rule.strip()

        if rule == "required":
            required = True
            continue
        if rule == "nullable":
            prop["nullable"] = True
            continue
        if rule in MODIFIER_RULES:
            continue

        if ":" in rule:
            name, _, params = rule.partition(":")
            name = name.strip().lower()
            if name in ("min", "max", "size"):
                _apply_bound(prop, name, params.split(",")[0])
            elif name == "in":
                enum_values = [p.strip() for p in params.split(",")]
            elif name == "date_format":
                _set_type(prop, {"type": "string", "format": "date-time"})
                prop["example"] = format_date_example(params)
            continue

        token = rule.lower()
        if token in TYPE_MAP:
            _set_type(prop, map_type(token))
            if token != "date_format":
                prop.pop("example", None)

    if enum_values is not None:
        prop["enum"] = enum_values

    if "example" not in prop:
        prop["example"] = example_for(prop)

    return InterpretedField(property=prop, required=required)


def rules_to_schema(rules: Mapping[str, Any]) -> dict:
    """Build an object schema from a ``{field: rules}`` mapping.

    Dotted (nested) field names are skipped.
    """
    properties: dict[str, Any] = {}
    required: list[str] = []

    for field_name, field_rules in rules.items():
        if "." in str(field_name):
            logger.debug("Skipping nested rule field %s", field_name)
            continue
        interpreted = interpret_rules(str(field_name), field_rules)
        properties[field_name] = interpreted.property
        if interpreted.required:
            required.append(field_name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema
