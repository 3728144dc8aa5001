from typing import Annotated

from autoswagger.attributes import ApiProperty
from autoswagger.contracts import Model
from autoswagger.parser.reflection import Reflector, annotation_token, attribute_docstrings

from sample_app import models
from sample_app.controllers import ProductController, ReportController, UserController
from sample_app.models import Book, Customer, OrderRecord, Post, Product, User
from sample_app.requests import CreateProductRequest
from sample_app.resources import ProductResource, UserCollection, UserResource


def _reflector(**kwargs) -> Reflector:
    kwargs.setdefault("model_namespaces", ["sample_app.models", "sample_app"])
    return Reflector(**kwargs)


class TestResolve:
    def test_class_object(self):
        assert _reflector().resolve(Product) is Product

    def test_colon_and_dotted_references(self):
        reflector = _reflector()
        assert reflector.resolve("sample_app.models:Product") is Product
        assert reflector.resolve("sample_app.models.Product") is Product

    def test_backslash_namespace(self):
        assert _reflector().resolve("\\sample_app\\models\\Post") is Post

    def test_bare_name_uses_context_then_namespaces(self):
        reflector = _reflector()
        assert reflector.resolve("Product", "sample_app.resources") is Product
        assert reflector.resolve("Book") is Book

    def test_unknown_reference_is_none(self):
        reflector = _reflector()
        assert reflector.resolve("Nope") is None
        assert reflector.resolve("no.such.module:Thing") is None
        assert reflector.resolve(42) is None

    def test_classification(self):
        reflector = _reflector()
        assert reflector.is_model(User)
        assert not reflector.is_model(Model)
        assert reflector.is_resource(UserCollection)
        assert reflector.is_validation_class(CreateProductRequest)
        assert not reflector.is_validation_class(int)

    def test_register_models_from_module(self):
        reflector = _reflector()
        keys = reflector.register_models(["sample_app.models"])
        assert "sample_app.models.Product" in keys
        assert "sample_app.models.User" in keys

    def test_registered_plain_class_counts_as_model(self):
        class Plain:
            name: str

        reflector = _reflector()
        assert not reflector.is_model(Plain)
        reflector.register_models([Plain])
        assert reflector.is_model(Plain)


class TestModelDescriptor:
    def test_public_fields_and_types(self):
        reflector = _reflector()
        descriptor = reflector.model(reflector.key_of(Product))
        assert descriptor.name == "Product"
        assert descriptor.public_fields == ["id", "name", "price"]
        assert descriptor.field_types["price"] == "builtins:float"
        assert descriptor.fillable == []

    def test_fillable(self):
        reflector = _reflector()
        descriptor = reflector.model(reflector.key_of(Customer))
        assert descriptor.fillable[0] == "name"
        assert "fillable" not in descriptor.public_fields

    def test_annotated_properties_and_model_name(self):
        reflector = _reflector()
        descriptor = reflector.model(reflector.key_of(OrderRecord))
        assert descriptor.name == "Order"
        assert descriptor.description == "A placed order"
        assert descriptor.annotated_properties["status"].enum == ["pending", "paid"]
        assert descriptor.field_types["note"] == "?builtins:str"

    def test_field_docstrings(self):
        reflector = _reflector()
        descriptor = reflector.model(reflector.key_of(Post))
        assert descriptor.field_docs["title"].startswith("Post title.")
        assert "body" in descriptor.field_docs

    def test_relations(self):
        reflector = _reflector()
        relations = {r.name: r for r in reflector.model(reflector.key_of(User)).relations}
        assert set(relations) == {"posts", "department", "has_many_comments"}
        assert relations["posts"].cardinality == "many"
        assert relations["posts"].relation_type == "HasMany"
        assert relations["posts"].related_model == "sample_app.models.Post"
        assert relations["department"].cardinality == "one"
        assert relations["department"].related_model == "sample_app.models.Department"
        assert relations["has_many_comments"].cardinality == "many"
        assert relations["has_many_comments"].related_model is None

    def test_relation_from_docstring_return(self):
        class Writer(Model):
            def has_articles(self):
                """@return HasMany<Post>"""
                return []

            def belongs_to_team(self):
                return None

            def articles_count(self) -> int:
                return 0

        reflector = _reflector()
        relations = {r.name: r for r in reflector.model(reflector.key_of(Writer)).relations}
        assert set(relations) == {"has_articles", "belongs_to_team"}
        assert relations["has_articles"].related_model == "sample_app.models.Post"
        assert relations["has_articles"].cardinality == "many"
        assert relations["belongs_to_team"].related_model == "sample_app.models.Team"
        assert relations["belongs_to_team"].cardinality == "one"

    def test_memoized(self):
        reflector = _reflector()
        key = reflector.key_of(Product)
        assert reflector.model(key) is reflector.model(key)


class TestResourceDescriptor:
    def test_transform_analysis(self):
        reflector = _reflector()
        descriptor = reflector.resource(reflector.key_of(ProductResource))
        assert descriptor.transform["currency"].kind == "literal"
        assert descriptor.api_resource is None

    def test_collection_class(self):
        reflector = _reflector()
        descriptor = reflector.resource(reflector.key_of(UserCollection))
        assert descriptor.is_collection_class is True
        assert descriptor.collects == "sample_app.resources.UserResource"
        assert descriptor.transform is None

    def test_source_scanning_disabled(self):
        reflector = _reflector(source_scanning=False)
        assert reflector.resource(reflector.key_of(ProductResource)).transform is None


class TestHandlerDescriptor:
    def test_store(self):
        handler = _reflector().handler(ProductController, "store")
        assert handler.controller_name == "ProductController"
        assert handler.operation.summary == "Create a product"
        assert handler.class_tags[0].name == "Products"
        key, rules = handler.validation_rules[0]
        assert key == "sample_app.requests.CreateProductRequest"
        assert rules["price"] == "required|numeric|min:0"
        assert handler.declared_return.resource == "sample_app.resources.ProductResource"

    def test_scanned_return(self):
        handler = _reflector().handler(ProductController, "index")
        assert handler.declared_return is None
        assert handler.scanned_return.is_collection is True
        assert handler.doc.startswith("List products.")

    def test_declared_collection_class(self):
        handler = _reflector().handler(UserController, "index")
        assert handler.declared_return.resource == "sample_app.resources.UserCollection"
        assert handler.declared_return.is_collection is True

    def test_failing_validation_class_gives_no_rules(self):
        handler = _reflector().handler(ProductController, "bulk_import")
        assert handler.validation_rules == []
        assert handler.request_body.ref == "ImportPayload"

    def test_parameter_markers_in_source_order(self):
        handler = _reflector().handler(ProductController, "update")
        assert [p.description for p in handler.parameters] == ["Product id", "Duplicate"]

    def test_unresolvable(self):
        reflector = _reflector()
        assert reflector.handler("sample_app.controllers:Missing", "index") is None
        assert reflector.handler(ProductController, "nope") is None

    def test_controller_routes(self):
        routes = _reflector().controller_routes([ReportController])
        assert [(r.http_method, r.path_template) for r in routes] == [("GET", "/api/reports"), ("POST", "/api/reports")]


class TestHelpers:
    def test_annotation_token(self):
        assert annotation_token(int) == "builtins:int"
        assert annotation_token(list[Post]) == "sample_app.models:Post[]"
        assert annotation_token(Annotated[int, ApiProperty()]) == "builtins:int"
        assert annotation_token(dict[str, int]) == "object"
        assert annotation_token(None) is None

    def test_attribute_docstrings(self):
        docs = attribute_docstrings(models.Post)
        assert set(docs) == {"title", "body", "views"}
