from autoswagger.parser.base import RouteDescriptor
from autoswagger.parser.routes import (
    is_included,
    load_routes,
    normalize_path,
    resolve_handler,
    split_methods,
)

from sample_app.controllers import ProductController


class TestNormalizePath:
    def test_leading_slash_added(self):
        assert normalize_path("api/users") == "/api/users"

    def test_optional_and_constrained(self):
        assert normalize_path("/api/users/{id?}") == "/api/users/{id}"
        assert normalize_path("/api/users/{id:[0-9]+}") == "/api/users/{id}"

    def test_converters(self):
        assert normalize_path("/api/users/<int:id>/posts/<slug>") == "/api/users/{id}/posts/{slug}"


class TestSplitMethods:
    def test_head_and_options_dropped(self):
        assert split_methods("GET|HEAD") == ["GET"]
        assert split_methods(["options"]) == []

    def test_multiple(self):
        assert split_methods(["put", "PATCH", "PUT"]) == ["PUT", "PATCH"]


class TestLoadRoutes:
    def test_inline_entries(self):
        routes = load_routes([
            ("GET|HEAD", "api/a", "m:C@a"),
            {"methods": ["PUT", "PATCH"], "uri": "/api/b/{id?}", "action": "m:C@b"},
            RouteDescriptor(http_method="delete", path_template="api/c", handler="m:C@c"),
        ])
        assert [(r.http_method, r.path_template) for r in routes] == [
            ("GET", "/api/a"),
            ("PUT", "/api/b/{id}"),
            ("PATCH", "/api/b/{id}"),
            ("DELETE", "/api/c"),
        ]

    def test_reference_to_list_and_callable(self):
        from_list = load_routes("sample_app.routes:ROUTES")
        from_callable = load_routes("sample_app.routes.get_routes")
        assert len(from_list) == len(from_callable) > 10

    def test_options_only_route_skipped(self):
        assert load_routes([("OPTIONS", "/api/a", "m:C@a")]) == []

    def test_malformed_entries_ignored(self):
        assert load_routes([("GET", "/api/a"), {"methods": "GET"}]) == []

    def test_missing_reference(self):
        assert load_routes("sample_app.routes:NOPE") == []
        assert load_routes(None) == []


class TestIsIncluded:
    def test_prefix_allowlist(self):
        assert is_included("/api/users")
        assert not is_included("/health")
        assert not is_included("/apiary")

    def test_empty_prefix_disables_allowlist(self):
        assert is_included("/health", api_prefix="")

    def test_denylist(self):
        assert not is_included("/telescope/requests", api_prefix="", exclude_prefixes=["telescope"])
        assert not is_included("/api/_debugbar", api_prefix="", exclude_prefixes=["api/_debugbar"])


class TestResolveHandler:
    def test_string_forms(self):
        assert resolve_handler("app.http:UserController@show") == ("app.http:UserController", "show")
        assert resolve_handler("app.http:UserController.show") == ("app.http:UserController", "show")
        assert resolve_handler("app.http.UserController@show") == ("app.http.UserController", "show")

    def test_pair(self):
        assert resolve_handler((ProductController, "store")) == (ProductController, "store")

    def test_function_defined_on_class(self):
        assert resolve_handler(ProductController.show) == ("sample_app.controllers:ProductController", "show")

    def test_bound_method(self):
        assert resolve_handler(ProductController().show) == (ProductController, "show")

    def test_closures_and_functions_skipped(self):
        def view():
            return None

        assert resolve_handler(lambda: None) is None
        assert resolve_handler(view) is None
        assert resolve_handler(len) is None
        assert resolve_handler("app.http:view") is None
