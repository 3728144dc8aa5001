"""Path-template placeholders and their ``in: path`` parameters."""

import re

from autoswagger.naming import singularize

PLACEHOLDER = re.compile(r"\{(\w+)\??\}")


def extract_path_parameters(path: str) -> list[str]:
    """Placeholder names of ``path`` in order, each once."""
    names: list[str] = []
    for name in PLACEHOLDER.findall(path):
        if name not in names:
            names.append(name)
    return names


def path_parameter_schema(name: str) -> dict:
    return {
        "name": name,
        "in": "path",
        "required": True,
        "description": f"ID of the {singularize(name)}",
        "schema": {"type": "string"},
    }


def add_missing_path_parameters(operation: dict, path: str) -> dict:
    """Give every placeholder a required path parameter.

    Declared path parameters are kept (and forced to ``required``); missing
    ones are synthesized after them.
    """
    parameters = operation.setdefault("parameters", [])
    declared = set()
    for parameter in parameters:
        if parameter.get("in") == "path":
            parameter["required"] = True
            declared.add(parameter.get("name"))

    for name in extract_path_parameters(path):
        if name not in declared:
            parameters.append(path_parameter_schema(name))

    if not parameters:
        del operation["parameters"]
    return operation
