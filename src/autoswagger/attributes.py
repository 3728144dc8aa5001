"""Explicit API metadata markers.

Each marker is a pydantic record that also works as a decorator, so a
controller reads much like an annotated one::

    @ApiTag(name="Products", description="Product operations")
    class ProductController:
        @ApiOperation(summary="Create a product")
        @ApiResponse(status_code=201, description="Created")
        def store(self, request: CreateProductRequest) -> ProductResource:
            ...

Model fields take ``ApiProperty`` through ``typing.Annotated``.
Markers are stored on the decorated object itself, in source order, and are
not inherited by subclasses.
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

ATTRIBUTES_KEY = "__api_attributes__"

A = TypeVar("A", bound="Attribute")


def class_reference(value: Any) -> Any:
    """Keep strings as given, turn classes into ``module:QualName`` references."""
    if isinstance(value, type):
        return f"{value.__module__}:{value.__qualname__}"
    return value


class Attribute(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def __call__(self, target):
        attached = list(target.__dict__.get(ATTRIBUTES_KEY, []))
        # decorators apply bottom-up; prepend to keep source order
        attached.insert(0, self)
        setattr(target, ATTRIBUTES_KEY, attached)
        return target


def attributes_of(target: Any, kind: type[A]) -> list[A]:
    """Return the markers of ``kind`` declared directly on ``target``."""
    if target is None:
        return []
    try:
        attached = target.__dict__.get(ATTRIBUTES_KEY, [])
    except AttributeError:
        return []
    return [a for a in attached if isinstance(a, kind)]


def first_attribute(target: Any, kind: type[A]) -> A | None:
    found = attributes_of(target, kind)
    return found[0] if found else None


class ApiSwagger(Attribute):
    """Opt a controller class or method in (or out) of the documentation."""

    include: bool = True


class ApiTag(Attribute):
    name: str
    description: str = ""


class ApiSecurity(Attribute):
    name: str
    scopes: list[str] = []


class ApiOperation(Attribute):
    summary: str = ""
    description: str = ""
    method: str = "GET"
    path: str | None = None
    operation_id: str | None = None
    responses: dict[str, Any] = {}
    parameters: list[dict[str, Any]] = []
    tags: list[str] = []
    security: list[dict[str, list[str]]] = []
    deprecated: bool = False


class ApiParameter(Attribute):
    name: str
    in_: str = Field("query", alias="in")
    description: str = ""
    required: bool = False
    type: str | None = "string"
    format: str | None = None
    schema_: dict[str, Any] | None = Field(None, alias="schema")
    example: Any = None


class ApiRequestBody(Attribute):
    description: str = ""
    required: bool = True
    content: dict[str, Any] = {}
    ref: str | None = None


class ApiResponse(Attribute):
    status_code: int
    description: str
    type: str | None = None
    ref: str | None = None
    content: dict[str, Any] = {}
    headers: dict[str, Any] = {}


class ApiException(Attribute):
    """A business exception an endpoint may raise, and the status it maps to."""

    exception: str
    status_code: int = 422
    description: str = ""
    schema_: dict[str, Any] = Field({}, alias="schema")

    @field_validator("exception", mode="before")
    @classmethod
    def _exception_name(cls, value: Any) -> Any:
        return class_reference(value)

    @property
    def short_name(self) -> str:
        return self.exception.replace(":", ".").rsplit(".", 1)[-1]


class ApiModel(Attribute):
    name: str | None = None
    description: str = ""


class ApiProperty(Attribute):
    """Field-level metadata, attached with ``Annotated[T, ApiProperty(...)]``."""

    type: str | None = None
    description: str = ""
    required: bool = False
    example: Any = None
    format: str | None = None
    enum: list[Any] | None = None
    nullable: bool = False
    hidden: bool = False
    items: dict[str, Any] | None = None
    schema_: dict[str, Any] | None = Field(None, alias="schema")


class ApiResource(Attribute):
    """Declares what a resource class serializes.

    ``relations`` maps a relation name to a resource (or model) reference, or
    to ``{"resource": ref, "is_collection": bool}``.
    """

    model: str | None = None
    schema_: dict[str, Any] = Field({}, alias="schema")
    relations: dict[str, Any] = {}
    is_paginated: bool = True
    is_collection: bool = False
    description: str | None = None
    include_all_relations: bool = False

    @field_validator("model", mode="before")
    @classmethod
    def _model_reference(cls, value: Any) -> Any:
        return class_reference(value)

    @field_validator("relations", mode="before")
    @classmethod
    def _relation_references(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        normalized = {}
        for name, spec in value.items():
            if isinstance(spec, dict):
                spec = {**spec, "resource": class_reference(spec.get("resource"))}
            else:
                spec = class_reference(spec)
            normalized[name] = spec
        return normalized
