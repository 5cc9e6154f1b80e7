"""
Router (router.py)

Tests method normalization, rule registration and request resolution.
"""

import pytest

from harrier.di import Injector
from harrier.faults import HttpError
from harrier.router import BODY_METHODS, Methods, ResolvedRoute, RouteRule, Router


# ============================================================================
# Methods
# ============================================================================

class TestMethods:

    @pytest.mark.parametrize("raw", ["get", "Get", "GET", Methods.GET])
    def test_parse_normalizes(self, raw):
        assert Methods.parse(raw) is Methods.GET

    def test_unknown_method_is_405(self):
        with pytest.raises(HttpError) as exc_info:
            Methods.parse("BREW")

        assert exc_info.value.get_code() == 405

    def test_str_is_plain_name(self):
        assert str(Methods.PATCH) == "PATCH"
        assert f"core/index{Methods.POST}" == "core/indexPOST"

    def test_body_methods(self):
        assert BODY_METHODS == {Methods.POST, Methods.PATCH, Methods.PUT}
        assert Methods.GET not in BODY_METHODS
        assert Methods.DELETE not in BODY_METHODS


# ============================================================================
# Rules
# ============================================================================

class TestRouteRule:

    def test_methods_are_parsed(self):
        rule = RouteRule("/", "core/index", ("get", "post"))

        assert rule.methods == (Methods.GET, Methods.POST)

    def test_empty_methods_allow_everything(self):
        rule = RouteRule("/", "core/index")

        assert rule.allows(Methods.DELETE)

    def test_none_methods_allow_everything(self):
        rule = RouteRule("/", "core/index", None)

        assert rule.methods == ()
        assert rule.allows(Methods.POST)

    def test_invalid_method_rejected(self):
        with pytest.raises(HttpError):
            RouteRule("/", "core/index", ("NOPE",))


class TestRouter:

    def test_add_rules_accepts_mappings(self, root, router):
        router.add_rules([{"url": "/about", "route": "core/about", "methods": ["GET"]}])

        urls = [rule.url for rule in router.get_rules()]
        assert "/about" in urls
        assert len(router.get_rules()) == 3

    @pytest.mark.asyncio
    async def test_parse_request(self, router):
        resolved = await router.parse_request("/", "get", {"host": "example.com"})

        assert isinstance(resolved, ResolvedRoute)
        assert resolved.method is Methods.GET
        assert resolved.route == "core/index"
        assert resolved.url == "/"
        assert resolved.headers == {"host": "example.com"}

    @pytest.mark.asyncio
    async def test_missing_path_is_404(self, router):
        with pytest.raises(HttpError) as exc_info:
            await router.parse_request("/nowhere", "GET")

        assert exc_info.value.get_code() == 404
        assert exc_info.value.data["path"] == "/nowhere"

    @pytest.mark.asyncio
    async def test_wrong_method_is_405(self, router):
        with pytest.raises(HttpError) as exc_info:
            await router.parse_request("/items", "GET")

        assert exc_info.value.get_code() == 405
        assert exc_info.value.data["allowed"] == ["POST", "PUT", "PATCH"]

    @pytest.mark.asyncio
    async def test_first_matching_rule_wins(self, router):
        router.add_rules([
            RouteRule("/items", "items/list", ("GET",)),
            RouteRule("/items", "items/other", ("GET",)),
        ])

        resolved = await router.parse_request("/items", "GET")

        assert resolved.route == "items/list"

    def test_router_shared_through_root(self, root, router):
        child = Injector.create_and_resolve_child(root, type("Leaf", (), {}))

        assert child.get(Router) is router
