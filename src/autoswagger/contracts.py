"""Base classes a host application builds on.

autoswagger never runs these at generation time; it only reads their
declarations. They give models, validation classes and resources a common
shape the reflection layer can recognize.
"""

from typing import Any, ClassVar, Generic, Iterable, TypeVar

T = TypeVar("T")


class Model:
    """A persisted data model.

    ``fillable`` lists the fields that may be mass-assigned; it doubles as the
    whitelisted field list used when a model carries no richer metadata.
    """

    fillable: ClassVar[list[str]] = []

    def __init__(self, **attributes: Any):
        for name, value in attributes.items():
            setattr(self, name, value)

    def has_one(self, related: type) -> "HasOne":
        return HasOne(self, related)

    def has_many(self, related: type) -> "HasMany":
        return HasMany(self, related)

    def belongs_to(self, related: type) -> "BelongsTo":
        return BelongsTo(self, related)

    def belongs_to_many(self, related: type) -> "BelongsToMany":
        return BelongsToMany(self, related)


class Relation(Generic[T]):
    """A relationship between a parent model and a related model class."""

    def __init__(self, parent: Any, related: type):
        self.parent = parent
        self.related = related


class HasOne(Relation[T]):
    pass


class HasMany(Relation[T]):
    pass


class BelongsTo(Relation[T]):
    pass


class BelongsToMany(Relation[T]):
    pass


class MorphTo(Relation[T]):
    pass


class MorphOne(Relation[T]):
    pass


class MorphMany(Relation[T]):
    pass


class MorphToMany(Relation[T]):
    pass


class HasOneThrough(Relation[T]):
    pass


class HasManyThrough(Relation[T]):
    pass


class FormRequest:
    """An incoming request validated against per-field rules."""

    def __init__(self, data: dict | None = None):
        self.data = data or {}

    def rules(self) -> dict:
        return {}


class JsonResource:
    """Shapes a single model instance into its wire representation."""

    def __init__(self, resource: Any):
        self.resource = resource

    def __getattr__(self, name: str) -> Any:
        resource = self.__dict__.get("resource")
        if resource is None:
            raise AttributeError(name)
        return getattr(resource, name)

    def to_array(self, request: Any = None) -> dict:
        return dict(vars(self.resource)) if self.resource is not None else {}

    def when_loaded(self, relation: str, value: Any = None) -> Any:
        loaded = getattr(self.resource, relation, None)
        if loaded is None:
            return None
        return value() if callable(value) else (value if value is not None else loaded)

    @classmethod
    def collection(cls, resources: Iterable[Any]) -> "AnonymousResourceCollection":
        return AnonymousResourceCollection(resources, cls)


class ResourceCollection(JsonResource):
    """Shapes a list of model instances."""

    collects: ClassVar[type[JsonResource] | None] = None

    def to_array(self, request: Any = None) -> list:
        item_class = self.collects or JsonResource
        return [item_class(item).to_array(request) for item in self.resource or []]


class AnonymousResourceCollection(ResourceCollection):
    def __init__(self, resources: Iterable[Any], collects: type[JsonResource]):
        super().__init__(list(resources))
        self.collects = collects
