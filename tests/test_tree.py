import pytest

from namedmux.tree import (
    CatchAllNode,
    FrozenDict,
    LeafKey,
    Node,
    WildCardNode,
    _construct_sub_tree,
    _merge_trees,
    add_route,
    finalize_tree,
    find_handler,
)


def handler_a() -> str:
    return "a"


def handler_b() -> str:
    return "b"


def not_found() -> str:
    return "404"


def method_not_allowed() -> str:
    return "405"


def test__construct_sub_tree() -> None:
    leaf = Node(children=FrozenDict({LeafKey.GET: Node(handler=handler_a, name="x")}))
    tree = _construct_sub_tree("/user/{id}/{rest...}", leaf)
    assert tree == Node(
        children=FrozenDict(
            {
                "user": Node(
                    wildcard=WildCardNode(
                        name="id",
                        child=Node(catchall=CatchAllNode(name="rest", child=leaf)),
                    )
                )
            }
        )
    )


def test__construct_sub_tree_requires_leading_slash() -> None:
    with pytest.raises(ValueError, match="path must start with '/'"):
        _construct_sub_tree("user", Node())


def test__merge_trees() -> None:
    tree1 = add_route(Node(), LeafKey.GET, "/user/{id}/profile", handler_a, name="profile")
    tree2 = add_route(Node(), LeafKey.GET, "/user/{id}", handler_b, name="user")
    tree = _merge_trees(tree1, tree2)
    assert tree == Node(
        children=FrozenDict(
            {
                "user": Node(
                    wildcard=WildCardNode(
                        name="id",
                        child=Node(
                            children=FrozenDict(
                                {
                                    LeafKey.GET: Node(handler=handler_b, name="user"),
                                    "profile": Node(
                                        children=FrozenDict(
                                            {
                                                LeafKey.GET: Node(
                                                    handler=handler_a, name="profile"
                                                )
                                            }
                                        )
                                    ),
                                }
                            )
                        ),
                    )
                )
            }
        )
    )


@pytest.mark.parametrize(
    "path1,path2,match",
    [
        ("/user/{id}", "/user/{name}", "conflicting wildcards"),
        ("/f/{a...}", "/f/{b...}", "conflicting catchalls"),
    ],
)
def test__merge_trees_conflicts(path1: str, path2: str, match: str) -> None:
    tree = add_route(Node(), LeafKey.GET, path1, handler_a)
    with pytest.raises(ValueError, match=match):
        add_route(tree, LeafKey.POST, path2, handler_b)


def test__merge_trees_conflicting_names() -> None:
    tree = add_route(Node(), LeafKey.GET, "/x", handler_a, name="one")
    with pytest.raises(ValueError, match="conflicting route names"):
        add_route(tree, LeafKey.GET, "/x", handler_a, name="two")


def test_same_route_added_twice_is_idempotent() -> None:
    tree = add_route(Node(), LeafKey.GET, "/x", handler_a, name="one")
    assert add_route(tree, LeafKey.GET, "/x", handler_a, name="one") == tree


def test_frozen_dict_is_immutable() -> None:
    d = FrozenDict({"a": 1})
    for mutate in (
        lambda: d.__setitem__("b", 2),
        lambda: d.update(b=2),
        lambda: d.pop("a"),
        d.clear,
    ):
        with pytest.raises(TypeError, match="immutable"):
            mutate()
    assert d == {"a": 1}
    assert hash(d) == hash(FrozenDict({"a": 1}))


@pytest.fixture
def tree() -> Node:
    tree: Node = Node()
    tree = add_route(tree, LeafKey.GET, "/", handler_a, name="home")
    tree = add_route(tree, LeafKey.GET, "/user/{id}", handler_a, name="user.detail")
    tree = add_route(tree, LeafKey.GET, "/user/me", handler_b, name="user.me")
    tree = add_route(tree, LeafKey.ANY_HTTP, "/static/{path...}", handler_b, name="static")
    return finalize_tree(tree, not_found, method_not_allowed)


def test_find_handler_exact_beats_wildcard(tree: Node) -> None:
    match = find_handler("/user/me", LeafKey.GET, tree)
    assert (match.handler, match.route, match.name) == (handler_b, "/user/me", "user.me")
    assert match.params == {}


def test_find_handler_wildcard(tree: Node) -> None:
    match = find_handler("/user/42", LeafKey.GET, tree)
    assert (match.handler, match.name) == (handler_a, "user.detail")
    assert match.route == "/user/{id}"
    assert match.params == {"id": "42"}


def test_find_handler_catchall_any_method(tree: Node) -> None:
    match = find_handler("/static/css/site.css", LeafKey.POST, tree)
    assert match.handler is handler_b
    assert match.name == "static"
    assert match.params == {"path": "css/site.css"}
    assert match.route == "/static/{path...}"


def test_find_handler_root(tree: Node) -> None:
    match = find_handler("/", LeafKey.GET, tree)
    assert (match.handler, match.route, match.name) == (handler_a, "/", "home")


def test_find_handler_not_found(tree: Node) -> None:
    match = find_handler("/nope", LeafKey.GET, tree)
    assert match.handler is not_found
    assert (match.route, match.name) == ("", None)


def test_find_handler_method_not_allowed(tree: Node) -> None:
    match = find_handler("/user/42", LeafKey.DELETE, tree)
    assert match.handler is method_not_allowed
    assert match.name is None
    assert match.params == {"id": "42"}


def test_find_handler_without_error_handlers() -> None:
    tree = add_route(Node(), LeafKey.GET, "/x", handler_a)
    with pytest.raises(ValueError, match="No not found handler set"):
        find_handler("/y", LeafKey.GET, tree)
    with pytest.raises(ValueError, match="No method not allowed handler set"):
        find_handler("/x", LeafKey.POST, tree)


def test_finalize_tree_keeps_subtree_handlers() -> None:
    def sub_not_found() -> str:
        return "sub 404"

    tree = add_route(Node(), LeafKey.GET, "/api/x", handler_a)
    api = tree.children["api"]
    tree = Node(
        children=FrozenDict(
            {"api": Node(children=api.children, not_found_handler=sub_not_found)}
        )
    )
    tree = finalize_tree(tree, not_found, method_not_allowed)
    assert find_handler("/api/nope", LeafKey.GET, tree).handler is sub_not_found
    assert find_handler("/nope", LeafKey.GET, tree).handler is not_found
