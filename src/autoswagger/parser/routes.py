"""Route source adapter.

Routes come from configuration as an inline list, a reference to a list, or
a reference to a zero-argument callable returning one. Each entry is a
``RouteDescriptor``, a dict or a ``(method, path, handler)`` tuple::

    ROUTES = [
        ("GET|HEAD", "/api/products", "app.controllers:ProductController@index"),
        {"methods": ["POST"], "uri": "api/products", "action": (ProductController, "store")},
    ]
"""

import importlib
import inspect
import logging
import re
from typing import Any

from .base import RouteDescriptor

logger = logging.getLogger(__name__)

IGNORED_METHODS = {"HEAD", "OPTIONS"}

# {id?} / {id:[0-9]+} -> {id}; <int:id> / <id> -> {id}
OPTIONAL_OR_CONSTRAINED = re.compile(r"\{(\w+)(?:\?|:[^}]*)\}")
CONVERTER = re.compile(r"<(?:\w+:)?(\w+)>")


def normalize_path(path: str) -> str:
    path = OPTIONAL_OR_CONSTRAINED.sub(r"{\1}", path.strip())
    path = CONVERTER.sub(r"{\1}", path)
    if not path.startswith("/"):
        path = "/" + path
    return path


def split_methods(methods: Any) -> list[str]:
    """``"GET|HEAD"`` / ``["GET", "POST"]`` -> documented methods only."""
    if isinstance(methods, str):
        methods = re.split(r"[|,\s]+", methods)
    result = []
    for method in methods or []:
        method = str(method).strip().upper()
        if method and method not in IGNORED_METHODS and method not in result:
            result.append(method)
    return result


def _lookup(reference: str) -> Any:
    if ":" in reference:
        module_name, _, attr = reference.partition(":")
    else:
        module_name, _, attr = reference.rpartition(".")
    target: Any = importlib.import_module(module_name)
    for part in attr.split("."):
        target = getattr(target, part)
    return target


def _entries(source: Any) -> list[Any]:
    if source is None:
        return []
    if isinstance(source, str):
        try:
            source = _lookup(source)
        except (ImportError, AttributeError, ValueError) as exc:
            logger.warning("Cannot load routes from %s: %s", source, exc)
            return []
    if callable(source) and not isinstance(source, (list, tuple)):
        source = source()
    return list(source or [])


def _expand(entry: Any) -> list[RouteDescriptor]:
    if isinstance(entry, RouteDescriptor):
        methods, path, handler = entry.http_method, entry.path_template, entry.handler
    elif isinstance(entry, dict):
        methods = entry.get("methods", entry.get("method", "GET"))
        path = entry.get("uri", entry.get("path"))
        handler = entry.get("action", entry.get("handler", entry.get("uses")))
    elif isinstance(entry, (list, tuple)) and len(entry) == 3:
        methods, path, handler = entry
    else:
        logger.debug("Ignoring malformed route entry %r", entry)
        return []

    if not path:
        return []
    return [
        RouteDescriptor(http_method=method, path_template=normalize_path(str(path)), handler=handler)
        for method in split_methods(methods)
    ]


def load_routes(source: Any) -> list[RouteDescriptor]:
    """Load and expand route entries into one descriptor per documented method."""
    routes = []
    for entry in _entries(source):
        expanded = _expand(entry)
        if not expanded:
            logger.info("Skipping route %r: no documented method", entry)
        routes.extend(expanded)
    return routes


def is_included(path: str, api_prefix: str = "api", exclude_prefixes: list[str] | tuple = ()) -> bool:
    """Allowlist by ``api_prefix`` (empty disables it), denylist by ``exclude_prefixes``."""
    uri = path.strip("/")
    for prefix in exclude_prefixes:
        prefix = prefix.strip("/")
        if prefix and (uri == prefix or uri.startswith(prefix + "/")):
            return False
    prefix = (api_prefix or "").strip("/")
    if prefix and not (uri == prefix or uri.startswith(prefix + "/")):
        return False
    return True


def resolve_handler(handler: Any) -> tuple[Any, str] | None:
    """Split a handler reference into ``(controller reference, method name)``.

    Closures, lambdas and plain functions are not controller methods and
    resolve to ``None``.
    """
    if isinstance(handler, (list, tuple)) and len(handler) == 2:
        controller, method = handler
        return (controller, str(method)) if controller and method else None

    if isinstance(handler, str):
        if "@" in handler:
            controller, _, method = handler.rpartition("@")
        elif ":" in handler and "." in handler.partition(":")[2]:
            module_name, _, qualname = handler.partition(":")
            cls_name, _, method = qualname.rpartition(".")
            controller = f"{module_name}:{cls_name}"
        else:
            return None
        return (controller, method) if controller and method else None

    if inspect.ismethod(handler):
        owner = handler.__self__
        return (owner if isinstance(owner, type) else type(owner)), handler.__name__
    if inspect.isfunction(handler):
        qualname = handler.__qualname__
        if "<locals>" in qualname or "." not in qualname:
            return None
        cls_name, _, method = qualname.rpartition(".")
        return f"{handler.__module__}:{cls_name}", method
    return None
