"""Heuristic source-text analysis.

Best-effort fallbacks used only when declarations say nothing: finding the
resource a handler returns, and reading the dict literal a resource's
``to_array`` builds. Both return ``None`` whenever the source does not match
the expected shape; callers treat that as "no information".
"""

import ast
import logging
import re
import textwrap

from .base import ReturnHint, TransformField

logger = logging.getLogger(__name__)

RESOURCE_NAME = r"[A-Za-z_][\w.]*(?:Resource|Collection)"
RETURN_INSTANCE = re.compile(rf"return\s+({RESOURCE_NAME})\s*\(")
RETURN_COLLECTION = re.compile(rf"({RESOURCE_NAME})\.collection\s*\(")

TRANSFORM_METHOD = "to_array"


def scan_returned_resource(source: str | None) -> ReturnHint | None:
    """Find ``return XResource(...)`` or ``XResource.collection(...)`` in a handler body."""
    if not source:
        return None
    match = RETURN_INSTANCE.search(source)
    if match:
        return ReturnHint(resource=match.group(1), is_collection=False)
    match = RETURN_COLLECTION.search(source)
    if match:
        return ReturnHint(resource=match.group(1), is_collection=True)
    return None


def _dotted(node: ast.AST) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        parent = _dotted(node.value)
        return f"{parent}.{node.attr}" if parent else None
    return None


def _self_attribute(node: ast.AST) -> str | None:
    """``self.x``, ``self.resource.x``, ``self.resource["x"]`` and calls on them -> ``x``."""
    chain: list[str] = []
    while True:
        if isinstance(node, ast.Call):
            node = node.func
            chain.clear()
        elif isinstance(node, ast.Attribute):
            chain.insert(0, node.attr)
            node = node.value
        elif isinstance(node, ast.Subscript):
            key = node.slice
            if isinstance(key, ast.Constant) and isinstance(key.value, str):
                chain.insert(0, key.value)
            else:
                chain.clear()
            node = node.value
        else:
            break
    if not (isinstance(node, ast.Name) and node.id == "self") or not chain:
        return None
    if chain[0] == "resource" and len(chain) > 1:
        chain = chain[1:]
    return chain[0]


def _classify(node: ast.AST) -> TransformField:
    if isinstance(node, ast.Constant):
        return TransformField(kind="literal", value=node.value)

    if isinstance(node, ast.Call):
        func = node.func
        name = _dotted(func)

        if isinstance(func, ast.Attribute) and func.attr == "when_loaded":
            if len(node.args) > 1:
                inner = node.args[1]
                if isinstance(inner, ast.Lambda):
                    inner = inner.body
                return _classify(inner)
            if node.args and isinstance(node.args[0], ast.Constant):
                return TransformField(kind="attribute", target=str(node.args[0].value))

        if isinstance(func, ast.Attribute) and func.attr == "collection":
            owner = _dotted(func.value)
            if owner and re.fullmatch(RESOURCE_NAME, owner):
                return TransformField(kind="collection", target=owner)

        if name and re.fullmatch(RESOURCE_NAME, name):
            return TransformField(kind="resource", target=name)

    attribute = _self_attribute(node)
    if attribute is None and isinstance(node, ast.Call) and len(node.args) == 1:
        # str(self.x), float(self.price)
        attribute = _self_attribute(node.args[0])
    if attribute:
        return TransformField(kind="attribute", target=attribute)
    return TransformField(kind="unknown")


def _returned_dict(function: ast.FunctionDef) -> ast.Dict | None:
    for node in ast.walk(function):
        if isinstance(node, ast.Return) and isinstance(node.value, ast.Dict):
            keys = node.value.keys
            if keys and all(isinstance(k, ast.Constant) and isinstance(k.value, str) for k in keys):
                return node.value
    return None


def analyze_transform(source: str | None) -> dict[str, TransformField] | None:
    """Read the dict literal returned by a resource's ``to_array``.

    ``source`` may be the whole class or just the method.
    """
    if not source:
        return None
    try:
        tree = ast.parse(textwrap.dedent(source))
    except SyntaxError:
        logger.debug("Resource source could not be parsed")
        return None

    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name == TRANSFORM_METHOD:
            returned = _returned_dict(node)
            if returned is None:
                return None
            return {key.value: _classify(value) for key, value in zip(returned.keys, returned.values)}
    return None
