"""Document assembler: owns the OpenAPI document for one generation run."""

import copy
import logging

from autoswagger.config import Settings
from autoswagger.parser.base import RouteDescriptor
from autoswagger.parser.reflection import Reflector
from autoswagger.parser.routes import is_included, load_routes, resolve_handler

from .model import ModelSchemaBuilder
from .operation import OperationBuilder
from .resource import ResourceSchemaBuilder

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.0"


class DocumentGenerator:
    """Generate an OpenAPI document from configured routes, controllers and models.

    Every call to :meth:`generate` starts from scratch; nothing is cached
    between runs.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()
        self._reset()

    def _reset(self) -> None:
        scan = self.settings.scan
        self.reflector = Reflector(
            model_namespaces=scan.model_namespaces,
            use_docstrings=scan.use_docstrings,
            source_scanning=scan.source_scanning,
        )
        self.models = ModelSchemaBuilder(self.reflector)
        self.resources = ResourceSchemaBuilder(self.reflector, self.models)
        self.operations = OperationBuilder(self.models, self.resources, scan.require_api_swagger)

    def skeleton(self) -> dict:
        settings = self.settings
        return {
            "openapi": OPENAPI_VERSION,
            "info": {
                "title": settings.title,
                "description": settings.description,
                "version": settings.version,
            },
            "servers": copy.deepcopy(settings.servers),
            "paths": {},
            "components": {
                "schemas": {},
                "securitySchemes": copy.deepcopy(settings.security_schemes),
            },
            "security": copy.deepcopy(settings.security),
        }

    def routes(self) -> list[RouteDescriptor]:
        """Controller-declared routes first, so route-table entries replace them."""
        scan = self.settings.scan
        routes = self.reflector.controller_routes(scan.controllers)
        if scan.analyze_routes:
            routes.extend(load_routes(self.settings.routes))
        return routes

    def generate(self) -> dict:
        self._reset()
        document = self.skeleton()
        tags: dict[str, dict] = {}

        self.models.build_all(self.reflector.register_models(self.settings.scan.models))

        for route in self.routes():
            if not is_included(route.path_template, self.settings.api_prefix, self.settings.exclude_prefixes):
                logger.info("Skipping %s %s: excluded path", route.http_method, route.path_template)
                continue
            try:
                self.add_route(document, route, tags)
            except Exception as exc:
                logger.warning("Skipping %s %s: %s", route.http_method, route.path_template, exc, exc_info=True)

        if tags:
            document["tags"] = list(tags.values())
        document["components"]["schemas"] = dict(self.models.schemas)
        return document

    def add_route(self, document: dict, route: RouteDescriptor, tags: dict[str, dict]) -> None:
        target = resolve_handler(route.handler)
        if target is None:
            logger.info("Skipping %s %s: handler is not a controller method", route.http_method, route.path_template)
            return
        handler = self.reflector.handler(*target)
        if handler is None:
            logger.info("Skipping %s %s: cannot resolve %r", route.http_method, route.path_template, route.handler)
            return

        operation = self.operations.build(route, handler)
        if operation is None:
            return
        document["paths"].setdefault(route.path_template, {})[route.http_method.lower()] = operation

        # only described tags are listed; operations still carry every tag name
        for tag in handler.class_tags:
            if tag.description and tag.name not in tags:
                tags[tag.name] = {"name": tag.name, "description": tag.description}
