"""Operation builder: one OpenAPI operation per (path, method) pair."""

import copy
import logging
from typing import Any

from autoswagger.attributes import ApiException, ApiParameter, ApiRequestBody, ApiResponse
from autoswagger.parser.base import HandlerDescriptor, RouteDescriptor
from autoswagger.parser.docblock import extract_description
from autoswagger.parser.rules import rules_to_schema
from autoswagger.parser.types import map_type, schema_ref

from .model import ModelSchemaBuilder
from .paths import add_missing_path_parameters
from .resource import ResourceSchemaBuilder

logger = logging.getLogger(__name__)

JSON = "application/json"

DEFAULT_RESPONSES = {
    "200": "Successful response",
    "400": "Bad request",
    "401": "Unauthenticated",
    "500": "Server error",
}


def _json_content(schema: dict) -> dict:
    return {JSON: {"schema": schema}}


def _has_body(response: Any) -> bool:
    return isinstance(response, dict) and bool(response.get("content"))


class OperationBuilder:
    def __init__(
        self,
        models: ModelSchemaBuilder,
        resources: ResourceSchemaBuilder,
        require_api_swagger: bool = False,
    ):
        self.models = models
        self.resources = resources
        self.require_api_swagger = require_api_swagger

    def is_documented(self, handler: HandlerDescriptor) -> bool:
        for marker in (handler.swagger, handler.class_swagger):
            if marker is not None and not marker.include:
                return False
        if self.require_api_swagger:
            return any(m is not None and m.include for m in (handler.swagger, handler.class_swagger))
        return True

    def build(self, route: RouteDescriptor, handler: HandlerDescriptor) -> dict | None:
        """Build the operation, or ``None`` when the handler opts out."""
        if not self.is_documented(handler):
            logger.info("Skipping %s %s: not opted in", route.http_method, route.path_template)
            return None

        meta = handler.operation
        summary, description = self._doc_summary(handler.doc)

        operation: dict[str, Any] = {
            "tags": list(meta.tags) if meta and meta.tags else self.tags_for(handler),
            "summary": (meta.summary if meta else "") or summary or handler.method_name,
        }
        description = (meta.description if meta else "") or description
        if description:
            operation["description"] = description
        if meta and meta.operation_id:
            operation["operationId"] = meta.operation_id
        if meta and meta.deprecated:
            operation["deprecated"] = True

        parameters: list[dict] = []
        for parameter in meta.parameters if meta else []:
            self._add_parameter(parameters, copy.deepcopy(parameter))
        for marker in handler.parameters:
            self._add_parameter(parameters, self.parameter_schema(marker))
        if parameters:
            operation["parameters"] = parameters

        request_body = self.request_body(handler)
        if request_body:
            operation["requestBody"] = request_body

        operation["responses"] = self.responses(handler)

        security = self.security(handler)
        if security:
            operation["security"] = security

        return add_missing_path_parameters(operation, route.path_template)

    @staticmethod
    def tags_for(handler: HandlerDescriptor) -> list[str]:
        return [tag.name for tag in handler.class_tags] or [handler.controller_name]

    @staticmethod
    def _doc_summary(doc: str) -> tuple[str, str]:
        text = extract_description(doc)
        if not text:
            return "", ""
        first, _, rest = text.partition("\n")
        return first.strip(), rest.strip()

    # -- parameters -------------------------------------------------------------

    @staticmethod
    def _add_parameter(parameters: list[dict], parameter: dict) -> None:
        key = (parameter.get("name"), parameter.get("in"))
        if any((p.get("name"), p.get("in")) == key for p in parameters):
            logger.debug("Duplicate parameter %s in %s ignored", *key)
            return
        parameters.append(parameter)

    @staticmethod
    def parameter_schema(marker: ApiParameter) -> dict:
        parameter: dict[str, Any] = {
            "name": marker.name,
            "in": marker.in_,
            "required": True if marker.in_ == "path" else marker.required,
        }
        if marker.description:
            parameter["description"] = marker.description
        if marker.schema_:
            schema = copy.deepcopy(marker.schema_)
        else:
            schema = map_type(marker.type)
            if marker.format:
                schema["format"] = marker.format
            if schema.get("type") == "array":
                schema["items"] = {"type": "string"}
        parameter["schema"] = schema
        if marker.example is not None:
            parameter["example"] = marker.example
        return parameter

    # -- request body -----------------------------------------------------------

    def request_body(self, handler: HandlerDescriptor) -> dict | None:
        if handler.request_body is not None:
            return self._explicit_request_body(handler.request_body)
        for key, rules in handler.validation_rules:
            schema = rules_to_schema(rules)
            if not schema["properties"]:
                continue
            return {
                "description": key.rsplit(".", 1)[-1],
                "required": True,
                "content": _json_content(schema),
            }
        return None

    @staticmethod
    def _explicit_request_body(marker: ApiRequestBody) -> dict:
        body: dict[str, Any] = {"required": marker.required}
        if marker.description:
            body["description"] = marker.description
        if marker.ref:
            body["content"] = _json_content(schema_ref(marker.ref))
        elif marker.content:
            body["content"] = copy.deepcopy(marker.content)
        else:
            body["content"] = _json_content({"type": "object"})
        return body

    # -- responses --------------------------------------------------------------

    def responses(self, handler: HandlerDescriptor) -> dict:
        responses: dict[str, Any] = {}
        meta = handler.operation
        for status, response in (meta.responses if meta else {}).items():
            if isinstance(response, str):
                response = {"description": response}
            responses[str(status)] = copy.deepcopy(response)
        for marker in handler.responses:
            responses[str(marker.status_code)] = self.response_schema(marker, handler.module)

        if not _has_body(responses.get("200")):
            inferred = self.inferred_response(handler)
            if inferred is not None:
                ok = responses.setdefault("200", {"description": DEFAULT_RESPONSES["200"]})
                ok["content"] = _json_content(inferred)

        # exact responses outrank exception mappings; method-level beats class-level
        declared = set(responses)
        for marker in [*handler.class_exceptions, *handler.exceptions]:
            status = str(marker.status_code)
            if status not in declared:
                responses[status] = self.exception_response(marker)

        if not responses:
            responses = {status: {"description": text} for status, text in DEFAULT_RESPONSES.items()}
        return responses

    def response_schema(self, marker: ApiResponse, context: str = "") -> dict:
        response: dict[str, Any] = {"description": marker.description}
        if marker.content:
            response["content"] = copy.deepcopy(marker.content)
        elif marker.ref:
            response["content"] = _json_content(self._reference_schema(marker.ref, context))
        elif marker.type:
            schema = map_type(marker.type, lambda token: self.models.schema_name(token, context))
            if schema.get("type") == "array":
                schema["items"] = {"type": "object"}
            response["content"] = _json_content(schema)
        if marker.headers:
            response["headers"] = copy.deepcopy(marker.headers)
        return response

    def _reference_schema(self, ref: str, context: str) -> dict:
        if ref.startswith("#/"):
            return schema_ref(ref)
        resource = self.resources.build(ref, context)
        if resource is not None:
            return resource
        return self.models.ref_for(ref, context) or schema_ref(ref)

    def inferred_response(self, handler: HandlerDescriptor) -> dict | None:
        hint = handler.declared_return or handler.scanned_return
        if hint is None:
            return None
        # a collection hint forces wrapping; otherwise the class decides
        return self.resources.build(hint.resource, handler.module, is_collection=True if hint.is_collection else None)

    @staticmethod
    def exception_response(marker: ApiException) -> dict:
        description = marker.description or f"Exception: {marker.short_name}"
        if marker.schema_:
            schema = copy.deepcopy(marker.schema_)
        else:
            schema = {
                "type": "object",
                "properties": {
                    "message": {"type": "string", "example": description},
                    "exception": {"type": "string", "example": marker.short_name},
                    "status_code": {"type": "integer", "example": marker.status_code},
                },
            }
        return {"description": description, "content": _json_content(schema)}

    # -- security ---------------------------------------------------------------

    @staticmethod
    def security(handler: HandlerDescriptor) -> list[dict[str, list[str]]]:
        if handler.operation and handler.operation.security:
            return copy.deepcopy(handler.operation.security)
        markers = handler.security or handler.class_security
        return [{marker.name: list(marker.scopes)} for marker in markers]
