import pytest

from namedmux.errors import RegistryNotInstalled, RouteLookupFault
from namedmux.registry import RouteLookup, RouteRegistry, route_registry

REGISTRY = RouteRegistry(
    {
        "index": "/",
        "ui.other": "/ui/other",
        "user.detail": "/user/{id}",
        "static": "/static/{path...}",
    }
)


def test_get() -> None:
    assert REGISTRY.get("ui.other") == "/ui/other"
    assert REGISTRY.get("missing") is None
    assert REGISTRY.get("missing", "/fallback") == "/fallback"


def test_get_is_idempotent() -> None:
    assert REGISTRY.get("ui.other") == REGISTRY.get("ui.other")
    assert REGISTRY.get("missing") == REGISTRY.get("missing")
    assert len(REGISTRY) == 4


def test_has_matches_get() -> None:
    for name in REGISTRY:
        assert REGISTRY.has(name) == REGISTRY.get(name)


def test_has_missing_raises() -> None:
    with pytest.raises(RouteLookupFault) as exc_info:
        REGISTRY.has("missing")
    assert exc_info.value.name == "missing"


def test_has_is_not_a_key_error() -> None:
    """A failed has() must not be absorbed by handlers catching lookup misses."""
    with pytest.raises(RouteLookupFault):
        try:
            REGISTRY.has("missing")
        except LookupError:
            pytest.fail("RouteLookupFault must not be a LookupError")


def test_get_or() -> None:
    assert REGISTRY.get_or("index", KeyError("index")) == "/"
    with pytest.raises(KeyError, match="nope"):
        REGISTRY.get_or("missing", KeyError("nope"))


def test_get_or_else_only_builds_error_on_miss() -> None:
    built: list[str] = []

    def make_error() -> Exception:
        built.append("error")
        return ValueError("missing route")

    assert REGISTRY.get_or_else("index", make_error) == "/"
    assert built == []
    with pytest.raises(ValueError, match="missing route"):
        REGISTRY.get_or_else("missing", make_error)
    assert built == ["error"]


def test_immutable() -> None:
    with pytest.raises(TypeError):
        REGISTRY["index"] = "/other"  # type: ignore[index]
    with pytest.raises(TypeError):
        REGISTRY._routes["index"] = "/other"
    assert REGISTRY["index"] == "/"


def test_copies_input() -> None:
    source = {"index": "/"}
    registry = RouteRegistry(source)
    source["index"] = "/changed"
    assert registry["index"] == "/"


def test_equality_and_hash() -> None:
    a = RouteRegistry({"index": "/"})
    b = RouteRegistry({"index": "/"})
    assert a == b
    assert hash(a) == hash(b)
    assert a == {"index": "/"}
    assert a != RouteRegistry({"index": "/x"})


def test_url() -> None:
    assert REGISTRY.url("ui.other") == "/ui/other"
    assert REGISTRY.url("user.detail", id=42) == "/user/42"
    assert REGISTRY.url("user.detail", id="a/b c") == "/user/a%2Fb%20c"
    assert REGISTRY.url("static", path="css/site.css") == "/static/css/site.css"


def test_url_param_called_name() -> None:
    registry = RouteRegistry({"tag": "/tag/{name}"})
    assert registry.url("tag", name="python") == "/tag/python"


def test_url_errors() -> None:
    with pytest.raises(RouteLookupFault):
        REGISTRY.url("missing")
    with pytest.raises(ValueError, match="missing path params .*: id"):
        REGISTRY.url("user.detail")
    with pytest.raises(ValueError, match="unknown path params .*: page"):
        REGISTRY.url("user.detail", id=1, page=2)


def test_lookup_delegates() -> None:
    lookup = RouteLookup(REGISTRY)
    assert lookup.get("ui.other") == "/ui/other"
    assert lookup.get("missing") is None
    assert lookup.has("ui.other") == "/ui/other"
    assert lookup.url("user.detail", id=1) == "/user/1"
    assert lookup.get_or("index", KeyError()) == "/"
    assert lookup.get_or_else("index", KeyError) == "/"
    with pytest.raises(RouteLookupFault):
        lookup.has("missing")


def test_lookup_requires_registry() -> None:
    with pytest.raises(RegistryNotInstalled, match="got NoneType"):
        RouteLookup(None)  # ty: ignore[invalid-argument-type]
    with pytest.raises(RegistryNotInstalled, match="got dict"):
        RouteLookup({"index": "/"})  # ty: ignore[invalid-argument-type]


def test_lookup_current_without_registry_raises() -> None:
    with pytest.raises(RegistryNotInstalled):
        RouteLookup.current()


def test_lookup_current_shares_registry() -> None:
    with route_registry.set(REGISTRY):
        lookup = RouteLookup.current()
    assert lookup.registry is REGISTRY
    with pytest.raises(RegistryNotInstalled):
        RouteLookup.current()
