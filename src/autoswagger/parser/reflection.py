"""Reflection layer: host-application classes -> typed records.

Everything that asks a live Python object what it is lives here. The
builders only ever see the records from ``parser.base``, keyed by a stable
``module.QualName`` string per class.
"""

import ast
import importlib
import inspect
import logging
import re
import sys
import textwrap
import types
import typing
from collections.abc import Mapping
from typing import Annotated, Any, ClassVar, ForwardRef, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from autoswagger.attributes import (
    ApiException,
    ApiModel,
    ApiOperation,
    ApiParameter,
    ApiProperty,
    ApiRequestBody,
    ApiResource,
    ApiResponse,
    ApiSecurity,
    ApiSwagger,
    ApiTag,
    attributes_of,
    first_attribute,
)
from autoswagger.contracts import JsonResource, Model, ResourceCollection
from autoswagger.naming import is_plural, singularize, snake_case, studly_case

from .base import (
    HandlerDescriptor,
    ModelDescriptor,
    RelationDescriptor,
    ResourceDescriptor,
    ReturnHint,
    RouteDescriptor,
)
from .docblock import return_model_of
from .source_scan import TRANSFORM_METHOD, analyze_transform, scan_returned_resource

logger = logging.getLogger(__name__)

TO_MANY_RELATIONS = {"HasMany", "BelongsToMany", "MorphMany", "MorphToMany", "HasManyThrough"}
TO_ONE_RELATIONS = {"HasOne", "BelongsTo", "MorphTo", "MorphOne", "HasOneThrough"}
RELATION_TYPES = TO_MANY_RELATIONS | TO_ONE_RELATIONS

RELATION_VERB = re.compile(r"^(has|belongs|morph)")
# longest first so has_many_posts strips "has_many_"
RELATION_PREFIX = re.compile(
    r"^(?:has_many_through|has_one_through|belongs_to_many|morph_to_many|has_many|has_one|"
    r"belongs_to|morph_many|morph_one|morph_to|has|belongs|morph)_?"
)
TO_MANY_PREFIXES = ("has_many", "belongs_to_many", "morph_many", "morph_to_many")

ANNOTATION_REF = re.compile(r"^\s*([\w.]+)\s*(?:\[\s*[\"']?([\w.:]+)[\"']?\s*\])?\s*$")

HIDDEN_MODEL_FIELDS = {"fillable"}


def class_key(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def _import_attr(module_name: str, attr: str) -> type | None:
    if not module_name or not attr:
        return None
    try:
        target: Any = importlib.import_module(module_name)
    except Exception as exc:
        logger.debug("Cannot import %s: %s", module_name, exc)
        return None
    for part in attr.split("."):
        target = getattr(target, part, None)
        if target is None:
            return None
    return target if isinstance(target, type) else None


def attribute_docstrings(cls: type) -> dict[str, str]:
    """Docstrings written directly below class-level field assignments."""
    try:
        source = inspect.getsource(cls)
    except (OSError, TypeError):
        return {}
    try:
        tree = ast.parse(textwrap.dedent(source))
    except SyntaxError:
        return {}

    classdef = next((n for n in tree.body if isinstance(n, ast.ClassDef)), None)
    if classdef is None:
        return {}

    docs: dict[str, str] = {}
    for previous, node in zip(classdef.body, classdef.body[1:]):
        if not (
            isinstance(node, ast.Expr)
            and isinstance(node.value, ast.Constant)
            and isinstance(node.value.value, str)
        ):
            continue
        if isinstance(previous, ast.AnnAssign) and isinstance(previous.target, ast.Name):
            docs[previous.target.id] = node.value.value
        elif (
            isinstance(previous, ast.Assign)
            and len(previous.targets) == 1
            and isinstance(previous.targets[0], ast.Name)
        ):
            docs[previous.targets[0].id] = node.value.value
    return docs


def annotation_token(hint: Any) -> str | None:
    """Render a type annotation as a doc-comment style type token.

    Classes become ``module:QualName`` so they resolve exactly later on.
    """
    if hint is None or hint is type(None):
        return None
    if isinstance(hint, str):
        return hint
    if isinstance(hint, ForwardRef):
        return hint.__forward_arg__
    if hint is Any:
        return "mixed"

    origin = get_origin(hint)
    if origin is Annotated:
        return annotation_token(get_args(hint)[0])
    if origin is Union or (hasattr(types, "UnionType") and origin is types.UnionType):
        members = [a for a in get_args(hint) if a is not type(None)]
        token = annotation_token(members[0]) if len(members) == 1 else "mixed"
        return f"?{token}" if len(members) < len(get_args(hint)) and token else token
    if origin in (list, set, frozenset, tuple) or (
        origin is not None and getattr(origin, "__name__", "") in ("Sequence", "Iterable", "Collection")
    ):
        args = [a for a in get_args(hint) if a is not Ellipsis]
        inner = annotation_token(args[0]) if args else None
        return f"{inner}[]" if inner else "array"
    if origin is dict:
        return "object"
    if isinstance(hint, type):
        return f"{hint.__module__}:{hint.__qualname__}"
    return None


def _safe_hints(target: Any) -> dict[str, Any]:
    try:
        return get_type_hints(target, include_extras=True)
    except Exception as exc:
        logger.debug("Unresolvable annotations on %r: %s", target, exc)
        return dict(getattr(target, "__annotations__", {}) or {})


def _is_classvar(hint: Any) -> bool:
    if hint is ClassVar or get_origin(hint) is ClassVar:
        return True
    return isinstance(hint, str) and hint.startswith(("ClassVar", "typing.ClassVar"))


def _own_doc(cls: type) -> str:
    doc = cls.__dict__.get("__doc__")
    return doc if isinstance(doc, str) else ""


class Reflector:
    """Resolves class references and harvests records, memoized per run."""

    def __init__(
        self,
        model_namespaces: list[str] | tuple[str, ...] = ("app.models", "app"),
        use_docstrings: bool = True,
        source_scanning: bool = True,
    ):
        self.model_namespaces = list(model_namespaces)
        self.use_docstrings = use_docstrings
        self.source_scanning = source_scanning
        self._classes: dict[str, type] = {}
        self._registered_models: set[str] = set()
        self._models: dict[str, ModelDescriptor] = {}
        self._resources: dict[str, ResourceDescriptor] = {}

    # -- resolution ---------------------------------------------------------

    def key_of(self, cls: type) -> str:
        key = class_key(cls)
        self._classes[key] = cls
        return key

    def class_for(self, key: str) -> type | None:
        return self._classes.get(key)

    def resolve(self, ref: Any, context: str | None = None) -> type | None:
        """Turn a class reference into a class, or ``None``.

        ``context`` is the module name of the class that made the reference;
        bare names are looked up there before the configured namespaces.
        """
        if isinstance(ref, type):
            self.key_of(ref)
            return ref
        if not isinstance(ref, str):
            return None

        name = ref.strip().strip("\"'").lstrip("\\").replace("\\", ".")
        if not name:
            return None
        if name in self._classes:
            return self._classes[name]

        found = None
        if ":" in name:
            module_name, _, attr = name.partition(":")
            found = _import_attr(module_name, attr)
            name = attr.rsplit(".", 1)[-1]
        elif "." in name:
            module_name, _, attr = name.rpartition(".")
            found = _import_attr(module_name, attr) or _import_attr(module_name.lower(), attr)
            name = attr

        if found is None and context:
            candidate = getattr(sys.modules.get(context), name, None)
            if isinstance(candidate, type):
                found = candidate

        if found is None:
            for namespace in self.model_namespaces:
                found = _import_attr(namespace, name) or _import_attr(f"{namespace}.{snake_case(name)}", name)
                if found is not None:
                    break

        if found is None:
            logger.debug("Unresolvable class reference %r", ref)
            return None
        self.key_of(found)
        return found

    def resolve_module(self, ref: Any) -> types.ModuleType | None:
        if isinstance(ref, types.ModuleType):
            return ref
        if not isinstance(ref, str) or ":" in ref:
            return None
        try:
            return importlib.import_module(ref)
        except Exception as exc:
            logger.debug("Cannot import %s: %s", ref, exc)
            return None

    def classes_in(self, ref: Any) -> list[type]:
        """A class reference, or every class defined in a referenced module."""
        cls = ref if isinstance(ref, type) else None
        if cls is None and isinstance(ref, str) and ":" in ref:
            cls = self.resolve(ref)
        if cls is not None:
            self.key_of(cls)
            return [cls]

        module = self.resolve_module(ref)
        if module is None:
            cls = self.resolve(ref)
            return [cls] if cls is not None else []
        found = [
            obj
            for _, obj in inspect.getmembers(module, inspect.isclass)
            if obj.__module__ == module.__name__
        ]
        for obj in found:
            self.key_of(obj)
        return found

    # -- classification -----------------------------------------------------

    def register_models(self, refs: list[Any]) -> list[str]:
        """Register classes (or modules of classes) as models up front."""
        keys = []
        for ref in refs or []:
            explicit_class = isinstance(ref, type) or (isinstance(ref, str) and ":" in ref)
            for cls in self.classes_in(ref):
                # a module contributes only what already looks like a model
                if not explicit_class and not self.is_model(cls):
                    continue
                key = self.key_of(cls)
                self._registered_models.add(key)
                keys.append(key)
        return keys

    def is_model(self, cls: Any) -> bool:
        if not isinstance(cls, type):
            return False
        if cls is Model:
            return False
        if issubclass(cls, Model) or first_attribute(cls, ApiModel) is not None:
            return True
        return class_key(cls) in self._registered_models

    def is_resource(self, cls: Any) -> bool:
        if not isinstance(cls, type):
            return False
        if cls in (JsonResource, ResourceCollection):
            return False
        return issubclass(cls, JsonResource) or first_attribute(cls, ApiResource) is not None

    def is_validation_class(self, cls: Any) -> bool:
        if not isinstance(cls, type) or cls.__module__ == "builtins":
            return False
        if self.is_model(cls) or self.is_resource(cls):
            return False
        return callable(getattr(cls, "rules", None))

    def resolve_model(self, ref: Any, context: str | None = None) -> str | None:
        cls = self.resolve(ref, context)
        return self.key_of(cls) if self.is_model(cls) else None

    def resolve_resource(self, ref: Any, context: str | None = None) -> str | None:
        cls = self.resolve(ref, context)
        return self.key_of(cls) if self.is_resource(cls) else None

    # -- models ---------------------------------------------------------------

    def model(self, key: str) -> ModelDescriptor | None:
        if key in self._models:
            return self._models[key]
        cls = self.class_for(key)
        if cls is None:
            return None

        api_model = first_attribute(cls, ApiModel)
        hints = _safe_hints(cls)

        # pydantic models keep config and internals on the class next to their fields
        pydantic_fields = cls.model_fields if issubclass(cls, BaseModel) else None

        annotated: dict[str, ApiProperty] = {}
        field_types: dict[str, str] = {}
        public_fields: list[str] = []
        for name, hint in hints.items():
            if name.startswith("_") or name in HIDDEN_MODEL_FIELDS or _is_classvar(hint):
                continue
            if pydantic_fields is not None and name not in pydantic_fields:
                continue
            public_fields.append(name)
            if get_origin(hint) is Annotated:
                marker = next((m for m in hint.__metadata__ if isinstance(m, ApiProperty)), None)
                if marker is not None:
                    annotated[name] = marker
            token = annotation_token(hint)
            if token:
                field_types[name] = token

        for name, value in (vars(cls).items() if pydantic_fields is None else ()):
            if name.startswith("_") or name in HIDDEN_MODEL_FIELDS or name in public_fields:
                continue
            if callable(value) or isinstance(value, (property, classmethod, staticmethod)):
                continue
            public_fields.append(name)

        fillable = getattr(cls, "fillable", None)
        if not isinstance(fillable, (list, tuple)):
            fillable = []

        descriptor = ModelDescriptor(
            key=key,
            name=(api_model.name if api_model and api_model.name else cls.__name__),
            description=api_model.description if api_model else "",
            annotated_properties=annotated,
            doc=_own_doc(cls) if self.use_docstrings else "",
            field_docs=attribute_docstrings(cls) if self.use_docstrings else {},
            field_types=field_types,
            fillable=[str(f) for f in fillable],
            public_fields=public_fields,
            relations=self._relations(cls),
        )
        self._models[key] = descriptor
        return descriptor

    def _relation_return(self, func: Any) -> tuple[bool, str | None, Any]:
        """(has a return annotation, relation type name, generic argument)."""
        annotation = getattr(func, "__annotations__", {}).get("return")
        if annotation is None:
            return False, None, None
        try:
            annotation = get_type_hints(func).get("return", annotation)
        except Exception:
            pass

        if isinstance(annotation, str):
            match = ANNOTATION_REF.match(annotation)
            if not match:
                return True, None, None
            outer = match.group(1).rsplit(".", 1)[-1]
            return True, (outer if outer in RELATION_TYPES else None), match.group(2)

        origin = get_origin(annotation) or annotation
        outer = getattr(origin, "__name__", None)
        if outer not in RELATION_TYPES:
            return True, None, None
        argument = None
        args = get_args(annotation)
        if args:
            argument = args[0]
            if isinstance(argument, ForwardRef):
                argument = argument.__forward_arg__
            elif isinstance(argument, typing.TypeVar):
                argument = None
        return True, outer, argument

    def _relations(self, cls: type) -> list[RelationDescriptor]:
        relations = []
        for name, member in vars(cls).items():
            if name.startswith("_") or not inspect.isfunction(member):
                continue
            try:
                params = list(inspect.signature(member).parameters.values())[1:]
            except (TypeError, ValueError):
                continue
            if any(p.default is p.empty and p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD) for p in params):
                continue

            annotated, relation_type, argument = self._relation_return(member)
            if relation_type is None and (annotated or not RELATION_VERB.match(name)):
                continue

            stripped = RELATION_PREFIX.sub("", name) or name
            if relation_type is not None:
                cardinality = "many" if relation_type in TO_MANY_RELATIONS else "one"
            else:
                many = name.startswith(TO_MANY_PREFIXES) or is_plural(stripped)
                cardinality = "many" if many else "one"

            related = None
            if self.use_docstrings:
                doc_model = return_model_of(inspect.getdoc(member))
                if doc_model:
                    related = self.resolve_model(doc_model, cls.__module__)
            if related is None and argument is not None:
                related = self.resolve_model(argument, cls.__module__)
            if related is None:
                related = self.resolve_model(studly_case(singularize(stripped)), cls.__module__)
            if related is None:
                logger.debug("Relation %s.%s has no resolvable model", cls.__name__, name)

            relations.append(
                RelationDescriptor(
                    name=name,
                    related_model=related,
                    cardinality=cardinality,
                    relation_type=relation_type,
                )
            )
        return relations

    # -- resources --------------------------------------------------------------

    def resource(self, key: str) -> ResourceDescriptor | None:
        if key in self._resources:
            return self._resources[key]
        cls = self.class_for(key)
        if cls is None:
            return None

        transform = None
        if self.source_scanning and TRANSFORM_METHOD in vars(cls):
            try:
                source = inspect.getsource(vars(cls)[TRANSFORM_METHOD])
            except (OSError, TypeError):
                source = None
            transform = analyze_transform(source)

        collects = getattr(cls, "collects", None)
        collects = self.key_of(collects) if self.is_resource(collects) else None

        descriptor = ResourceDescriptor(
            key=key,
            name=cls.__name__,
            module=cls.__module__,
            doc=_own_doc(cls) if self.use_docstrings else "",
            is_collection_class=isinstance(cls, type) and issubclass(cls, ResourceCollection),
            collects=collects,
            api_resource=first_attribute(cls, ApiResource),
            transform=transform,
        )
        self._resources[key] = descriptor
        return descriptor

    # -- handlers ---------------------------------------------------------------

    def validation_rules(self, cls: type) -> dict[str, Any] | None:
        """Instantiate a validation class and read its rules; ``None`` on failure."""
        try:
            rules = cls().rules()
        except Exception as exc:
            logger.debug("Cannot read rules from %s: %s", cls.__name__, exc)
            return None
        return dict(rules) if isinstance(rules, Mapping) else None

    def _return_hint(self, annotation: Any, context: str) -> ReturnHint | None:
        if annotation is None:
            return None
        if isinstance(annotation, str):
            match = ANNOTATION_REF.match(annotation)
            if not match:
                return None
            outer, argument = match.groups()
            if outer.rsplit(".", 1)[-1].lower() in ("list", "sequence", "iterable") and argument:
                key = self.resolve_resource(argument, context)
                return ReturnHint(resource=key, is_collection=True) if key else None
            key = self.resolve_resource(outer, context)
        else:
            origin = get_origin(annotation)
            if origin is Annotated:
                return self._return_hint(get_args(annotation)[0], context)
            if origin in (list, tuple, set) or getattr(origin, "__name__", "") in ("Sequence", "Iterable"):
                args = get_args(annotation)
                inner = self._return_hint(args[0], context) if args else None
                return ReturnHint(resource=inner.resource, is_collection=True) if inner else None
            key = self.resolve_resource(annotation, context) if isinstance(annotation, type) else None
        if key is None:
            return None
        cls = self.class_for(key)
        return ReturnHint(resource=key, is_collection=issubclass(cls, ResourceCollection))

    def handler(self, controller: Any, method_name: str) -> HandlerDescriptor | None:
        """Harvest a controller method, or ``None`` when it cannot be resolved."""
        cls = self.resolve(controller)
        if cls is None:
            return None
        func = getattr(cls, method_name, None)
        if func is None or not callable(func):
            logger.debug("%s has no method %s", cls.__name__, method_name)
            return None
        # staticmethod/classmethod wrappers carry the markers on the function
        func = getattr(func, "__func__", func)

        hints = _safe_hints(func)
        validation_rules: list[tuple[str, dict[str, Any]]] = []
        try:
            params = list(inspect.signature(func).parameters)
        except (TypeError, ValueError):
            params = []
        for name in params:
            hint = hints.get(name)
            if get_origin(hint) is Annotated:
                hint = get_args(hint)[0]
            if isinstance(hint, str):
                hint = self.resolve(hint, cls.__module__)
            if not self.is_validation_class(hint):
                continue
            rules = self.validation_rules(hint)
            if rules:
                validation_rules.append((self.key_of(hint), rules))
                break

        scanned = None
        if self.source_scanning:
            try:
                source = inspect.getsource(func)
            except (OSError, TypeError):
                source = None
            found = scan_returned_resource(source)
            if found is not None:
                key = self.resolve_resource(found.resource, func.__module__)
                if key is not None:
                    scanned = ReturnHint(resource=key, is_collection=found.is_collection)

        return HandlerDescriptor(
            controller_key=self.key_of(cls),
            controller_name=cls.__name__,
            method_name=method_name,
            module=cls.__module__,
            doc=(inspect.getdoc(func) or "") if self.use_docstrings else "",
            class_swagger=first_attribute(cls, ApiSwagger),
            class_tags=attributes_of(cls, ApiTag),
            class_security=attributes_of(cls, ApiSecurity),
            class_exceptions=attributes_of(cls, ApiException),
            swagger=first_attribute(func, ApiSwagger),
            operation=first_attribute(func, ApiOperation),
            parameters=attributes_of(func, ApiParameter),
            request_body=first_attribute(func, ApiRequestBody),
            responses=attributes_of(func, ApiResponse),
            security=attributes_of(func, ApiSecurity),
            exceptions=attributes_of(func, ApiException),
            validation_rules=validation_rules,
            declared_return=self._return_hint(hints.get("return"), cls.__module__),
            scanned_return=scanned,
        )

    def controller_routes(self, refs: list[Any]) -> list[RouteDescriptor]:
        """Routes declared directly on controller methods through ``ApiOperation``."""
        routes = []
        for ref in refs or []:
            for cls in self.classes_in(ref):
                for name, member in vars(cls).items():
                    func = getattr(member, "__func__", member)
                    if name.startswith("_") or not inspect.isfunction(func):
                        continue
                    operation = first_attribute(func, ApiOperation)
                    if operation is None or not operation.path or not operation.method:
                        continue
                    routes.append(
                        RouteDescriptor(
                            http_method=operation.method.upper(),
                            path_template=operation.path,
                            handler=(cls, name),
                        )
                    )
        return routes
