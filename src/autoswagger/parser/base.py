"""Typed records harvested from the host application.

The reflection layer converts classes, docstrings and annotations into
these records once; every builder downstream works on the records only.
"""

from typing import Any, Literal

from pydantic import BaseModel

from autoswagger.attributes import (
    ApiException,
    ApiOperation,
    ApiParameter,
    ApiProperty,
    ApiRequestBody,
    ApiResource,
    ApiResponse,
    ApiSecurity,
    ApiSwagger,
    ApiTag,
)


class RouteDescriptor(BaseModel):
    """A single (HTTP method, path) pair pointing at a handler."""

    http_method: str  # GET / POST / PUT / PATCH / DELETE
    path_template: str  # /api/users/{id}
    handler: Any = None  # "pkg.mod:Controller@method", (cls, "method") or a callable


class InterpretedField(BaseModel):
    """Output of the validation-rule interpreter for one field."""

    property: dict[str, Any]
    required: bool = False


class RelationDescriptor(BaseModel):
    name: str
    related_model: str | None = None  # class key, None when unresolvable
    cardinality: Literal["one", "many"] = "one"
    relation_type: str | None = None  # HasMany, BelongsTo, ... when declared


class ModelDescriptor(BaseModel):
    key: str  # module.QualName, unique per class
    name: str  # schema name in components.schemas
    description: str = ""
    annotated_properties: dict[str, ApiProperty] = {}
    doc: str = ""
    field_docs: dict[str, str] = {}
    field_types: dict[str, str] = {}  # type tokens from field annotations
    fillable: list[str] = []
    public_fields: list[str] = []
    relations: list[RelationDescriptor] = []


class TransformField(BaseModel):
    """One key of a resource's ``to_array`` dict literal."""

    kind: Literal["attribute", "resource", "collection", "literal", "unknown"]
    target: str | None = None  # attribute name, or resource class reference
    value: Any = None  # literal value


class ResourceDescriptor(BaseModel):
    key: str
    name: str
    module: str = ""
    doc: str = ""
    is_collection_class: bool = False
    collects: str | None = None  # item resource key of a collection class
    api_resource: ApiResource | None = None
    transform: dict[str, TransformField] | None = None  # None: inconclusive


class ReturnHint(BaseModel):
    """A resource class a handler returns, and whether it returns a list of it."""

    resource: str
    is_collection: bool = False


class HandlerDescriptor(BaseModel):
    controller_key: str
    controller_name: str
    method_name: str
    module: str = ""
    doc: str = ""

    class_swagger: ApiSwagger | None = None
    class_tags: list[ApiTag] = []
    class_security: list[ApiSecurity] = []
    class_exceptions: list[ApiException] = []

    swagger: ApiSwagger | None = None
    operation: ApiOperation | None = None
    parameters: list[ApiParameter] = []
    request_body: ApiRequestBody | None = None
    responses: list[ApiResponse] = []
    security: list[ApiSecurity] = []
    exceptions: list[ApiException] = []

    # validation classes among the handler's parameters: (class key, rules)
    validation_rules: list[tuple[str, dict[str, Any]]] = []
    declared_return: ReturnHint | None = None
    scanned_return: ReturnHint | None = None
