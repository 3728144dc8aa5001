from autoswagger.attributes import ApiException, ApiResponse
from autoswagger.generator.model import ModelSchemaBuilder
from autoswagger.generator.operation import OperationBuilder
from autoswagger.generator.resource import ResourceSchemaBuilder, is_paginated_envelope
from autoswagger.parser.base import RouteDescriptor
from autoswagger.parser.reflection import Reflector

from sample_app.controllers import ProductController, ReportController, UserController


def _builder(**kwargs) -> OperationBuilder:
    reflector = Reflector(model_namespaces=["sample_app.models"])
    models = ModelSchemaBuilder(reflector)
    return OperationBuilder(models, ResourceSchemaBuilder(reflector, models), **kwargs)


def _operation(controller, method, path="/api/things", http_method="GET", builder=None):
    builder = builder or _builder()
    handler = builder.models.reflector.handler(controller, method)
    route = RouteDescriptor(http_method=http_method, path_template=path, handler=(controller, method))
    return builder.build(route, handler)


class TestDocumentationGates:
    def test_opt_out_marker(self):
        assert _operation(ProductController, "legacy") is None

    def test_opt_in_required(self):
        builder = _builder(require_api_swagger=True)
        assert _operation(ProductController, "index", builder=builder) is None
        assert _operation(ReportController, "unlisted", builder=builder) is not None


class TestHeader:
    def test_docstring_summary_and_class_tag(self):
        operation = _operation(ProductController, "index")
        assert operation["tags"] == ["Products"]
        assert operation["summary"] == "List products."
        assert operation["description"] == "Returns every product, newest first."

    def test_operation_marker(self):
        operation = _operation(ProductController, "store", http_method="POST")
        assert operation["summary"] == "Create a product"
        assert operation["operationId"] == "createProduct"
        assert "deprecated" not in operation

    def test_fallbacks(self):
        operation = _operation(UserController, "posts")
        assert operation["tags"] == ["UserController"]
        assert operation["summary"] == "posts"
        assert "description" not in operation

    def test_operation_tags_and_deprecation(self):
        operation = _operation(UserController, "deactivate", path="/api/users/{id}/deactivate", http_method="POST")
        assert operation["tags"] == ["Admin"]
        assert operation["summary"] == "Deactivate"
        assert operation["deprecated"] is True


class TestParameters:
    def test_first_duplicate_wins_and_path_params_required(self):
        operation = _operation(ProductController, "update", path="/api/products/{product}", http_method="PUT")
        assert operation["parameters"] == [
            {
                "name": "product",
                "in": "path",
                "required": True,
                "description": "Product id",
                "schema": {"type": "integer"},
            }
        ]

    def test_missing_path_parameters_added(self):
        operation = _operation(UserController, "posts", path="/api/users/{id}/posts/{postId}")
        assert [(p["name"], p["in"], p["required"]) for p in operation["parameters"]] == [
            ("id", "path", True),
            ("postId", "path", True),
        ]
        assert operation["parameters"][1]["description"] == "ID of the postId"

    def test_no_parameters_key_without_parameters(self):
        assert "parameters" not in _operation(UserController, "index", path="/api/users")


class TestRequestBody:
    def test_from_validation_class(self):
        body = _operation(ProductController, "store", http_method="POST")["requestBody"]
        assert body["description"] == "CreateProductRequest"
        assert body["required"] is True
        schema = body["content"]["application/json"]["schema"]
        assert schema["required"] == ["name", "price"]
        assert schema["properties"]["price"]["minimum"] == 0

    def test_nested_fields_skipped(self):
        body = _operation(ProductController, "update", path="/api/products/{product}", http_method="PUT")["requestBody"]
        properties = body["content"]["application/json"]["schema"]["properties"]
        assert list(properties) == ["name", "status", "tags"]
        assert properties["status"]["enum"] == ["draft", "published"]

    def test_explicit_marker_with_ref(self):
        body = _operation(ProductController, "bulk_import", http_method="POST")["requestBody"]
        assert body == {
            "required": True,
            "description": "Import file",
            "content": {"application/json": {"schema": {"$ref": "#/components/schemas/ImportPayload"}}},
        }

    def test_no_body(self):
        assert "requestBody" not in _operation(ProductController, "index")


class TestResponses:
    def test_default_set(self):
        responses = _operation(UserController, "posts", path="/api/users/{id}/posts/{postId}")["responses"]
        assert responses == {
            "200": {"description": "Successful response"},
            "400": {"description": "Bad request"},
            "401": {"description": "Unauthenticated"},
            "500": {"description": "Server error"},
        }

    def test_inferred_from_return_annotation(self):
        responses = _operation(ProductController, "show", path="/api/products/{product}")["responses"]
        ok = responses["200"]
        assert ok["description"] == "Successful response"
        schema = ok["content"]["application/json"]["schema"]
        assert list(schema["properties"]) == ["id", "name", "price", "currency", "sku"]

    def test_inferred_collection_from_source(self):
        responses = _operation(ProductController, "index")["responses"]
        assert is_paginated_envelope(responses["200"]["content"]["application/json"]["schema"])

    def test_collection_class_annotation(self):
        responses = _operation(UserController, "index", path="/api/users")["responses"]
        assert is_paginated_envelope(responses["200"]["content"]["application/json"]["schema"])

    def test_exception_precedence(self):
        responses = _operation(ProductController, "destroy", path="/api/products/{product}", http_method="DELETE")[
            "responses"
        ]
        assert list(responses) == ["204", "409", "404"]
        assert responses["204"] == {"description": "Deleted"}
        assert responses["409"]["description"] == "Cannot delete reserved stock"
        not_found = responses["404"]
        assert not_found["description"] == "Exception: ProductNotFound"
        assert not_found["content"]["application/json"]["schema"]["properties"]["status_code"]["example"] == 404

    def test_explicit_response_beats_exception(self):
        responses = _operation(ProductController, "stock", path="/api/products/{product}/stock")["responses"]
        assert responses["200"] == {
            "description": "Stock level",
            "content": {"application/json": {"schema": {"type": "integer"}}},
        }
        assert responses["409"]["description"] == "Out of stock"

    def test_response_marker_with_model_ref(self):
        builder = _builder()
        response = builder.response_schema(ApiResponse(status_code=200, description="One", ref="Product"))
        assert response["content"]["application/json"]["schema"] == {"$ref": "#/components/schemas/Product"}
        assert "Product" in builder.models.schemas

    def test_response_marker_with_resource_ref(self):
        response = _builder().response_schema(
            ApiResponse(status_code=200, description="Users", ref="sample_app.resources:UserCollection")
        )
        assert is_paginated_envelope(response["content"]["application/json"]["schema"])

    def test_custom_exception_schema(self):
        marker = ApiException(exception="Gone", status_code=410, schema={"type": "object"})
        assert OperationBuilder.exception_response(marker) == {
            "description": "Exception: Gone",
            "content": {"application/json": {"schema": {"type": "object"}}},
        }


class TestSecurity:
    def test_class_level(self):
        assert _operation(UserController, "index", path="/api/users")["security"] == [{"bearerAuth": []}]

    def test_method_level_wins(self):
        operation = _operation(UserController, "deactivate", path="/api/users/{id}/deactivate", http_method="POST")
        assert operation["security"] == [{"oauth": ["users:write"]}]

    def test_none_declared(self):
        assert "security" not in _operation(ProductController, "index")
