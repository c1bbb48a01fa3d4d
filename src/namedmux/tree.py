"""Zero dependency routing trie with path params and route names.

Inspired by go 1.22+ net/http's routingNode
"""

from collections.abc import Callable
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import lru_cache
from typing import Never

path_params: ContextVar[dict[str, str]] = ContextVar("path_params")
http_route: ContextVar[str] = ContextVar("http_route")
route_name: ContextVar[str | None] = ContextVar("route_name")

type Middleware[T] = Callable[[T], T]


class LeafKey(Enum):
    """Valid keys for leaf nodes: HTTP methods or websocket.

    ANY_HTTP represents any http method
    WEBSOCKET matches a websocket connection
    """

    CONNECT = "CONNECT"
    DELETE = "DELETE"
    GET = "GET"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    PATCH = "PATCH"
    POST = "POST"
    PUT = "PUT"
    TRACE = "TRACE"

    ANY_HTTP = "ANY_HTTP"
    WEBSOCKET = "WEBSOCKET"

    def __repr__(self) -> str:
        return str(self.value)


class FrozenDict[K, V](dict[K, V]):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._hash: int | None = None

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self.items()))
        return self._hash

    def _immutable(self, *args, **kwargs) -> Never:
        msg = "FrozenDict is immutable"
        raise TypeError(msg)

    __setitem__ = __delitem__ = clear = pop = popitem = setdefault = update = _immutable
    __ior__ = _immutable


@dataclass(slots=True, frozen=True)
class Node[T]:
    """Segment-based trie node.

    Leaf nodes (children keyed by LeafKey) hold the handler, its middleware
    and the name the route was registered under.
    """

    handler: T | None = None
    middleware: tuple[Middleware[T], ...] = ()
    name: str | None = None
    children: FrozenDict[str | LeafKey, Node[T]] = field(default_factory=FrozenDict)
    wildcard: WildCardNode[T] | None = None
    catchall: CatchAllNode[T] | None = None
    not_found_handler: T | None = None
    method_not_allowed_handler: T | None = None


@dataclass(slots=True, frozen=True)
class WildCardNode[T]:
    name: str
    child: Node[T]


@dataclass(slots=True, frozen=True)
class CatchAllNode[T]:
    name: str
    child: Node[T]


@dataclass(slots=True, frozen=True)
class Match[T]:
    """Result of a trie lookup.

    ``route`` is the matched template (e.g. "/user/{id}") and ``name`` the
    route name; both are empty/None when an error handler was selected.
    """

    handler: T
    middleware: tuple[Middleware[T], ...] = ()
    params: FrozenDict[str, str] = field(default_factory=FrozenDict)
    route: str = ""
    name: str | None = None


def _not_found[T](node: Node[T]) -> Match[T]:
    if node.not_found_handler is None:
        msg = "No not found handler set"
        raise ValueError(msg)
    return Match(node.not_found_handler)


@lru_cache(maxsize=1024)
def find_handler[T](path: str, method: LeafKey, tree: Node[T]) -> Match[T]:
    """Traverses the tree to find the best match handler.

    Each path segment priority is: exact match > wildcard match > catchall match
    If no matching node is found for the path, return not found handler
    If matching node for path does not support method, return method not allowed handler
    """
    segments = path[1:].split("/")  # assumes leading "/"

    current = tree
    params: dict[str, str] = {}
    route_parts: list[str] = []
    for i, seg in enumerate(segments):
        child = current.children.get(seg)
        if child is not None:
            route_parts.append(seg)
            current = child
            continue
        if current.wildcard is not None:
            params[current.wildcard.name] = seg
            route_parts.append("{" + current.wildcard.name + "}")
            current = current.wildcard.child
            continue
        if current.catchall is not None:
            params[current.catchall.name] = "/".join(segments[i:])
            route_parts.append("{" + current.catchall.name + "...}")
            current = current.catchall.child
            break
        return _not_found(current)

    leaf = current.children.get(method)
    if leaf is None:  # fallback to any method handler
        leaf = current.children.get(LeafKey.ANY_HTTP)
    if leaf is None:
        if any(isinstance(k, LeafKey) for k in current.children):
            if current.method_not_allowed_handler is None:
                msg = "No method not allowed handler set"
                raise ValueError(msg)
            return Match(current.method_not_allowed_handler, params=FrozenDict(params))
        return _not_found(current)
    if leaf.handler is None:
        return _not_found(current)

    return Match(
        leaf.handler,
        leaf.middleware,
        FrozenDict(params),
        "/" + "/".join(route_parts),
        leaf.name,
    )


def add_route[T](
    tree: Node[T],
    method: LeafKey,
    path: str,
    handler: T,
    middleware: tuple[Middleware[T], ...] = (),
    name: str | None = None,
) -> Node[T]:
    """add route to tree for handler on method/path with optional middleware"""
    leaf = Node(handler=handler, middleware=middleware, name=name)
    sub_tree = _construct_sub_tree(path, Node(children=FrozenDict({method: leaf})))
    return _merge_trees(tree, sub_tree)


def finalize_tree[T](
    tree: Node[T], not_found_handler: T, method_not_allowed_handler: T
) -> Node[T]:
    """cascade not_found_handler and method_not_allowed_handler down through tree"""
    not_found_handler = tree.not_found_handler or not_found_handler
    method_not_allowed_handler = (
        tree.method_not_allowed_handler or method_not_allowed_handler
    )

    def descend(child: Node[T]) -> Node[T]:
        return finalize_tree(child, not_found_handler, method_not_allowed_handler)

    return replace(
        tree,
        not_found_handler=not_found_handler,
        method_not_allowed_handler=method_not_allowed_handler,
        children=FrozenDict({k: descend(c) for k, c in tree.children.items()}),
        wildcard=None
        if tree.wildcard is None
        else WildCardNode(tree.wildcard.name, descend(tree.wildcard.child)),
        catchall=None
        if tree.catchall is None
        else CatchAllNode(tree.catchall.name, descend(tree.catchall.child)),
    )


def _construct_sub_tree[T](path: str, child: Node[T]) -> Node[T]:
    """construct sub tree for existing node on path"""
    if not path.startswith("/"):
        msg = f"path must start with '/', provided {path=}"
        raise ValueError(msg)

    for seg in reversed(path[1:].split("/")):
        if seg.startswith("{") and seg.endswith("...}"):
            child = Node(catchall=CatchAllNode(name=seg[1:-4], child=child))
        elif seg.startswith("{") and seg.endswith("}"):
            child = Node(wildcard=WildCardNode(name=seg[1:-1], child=child))
        else:
            child = Node(children=FrozenDict({seg: child}))
    return child


def _merge_trees[T](tree1: Node[T], tree2: Node[T]) -> Node[T]:
    """merge tree1 and tree2, error on conflict"""

    def pick[V](a: V | None, b: V | None, what: str) -> V | None:
        if a is not None and b is not None and a != b:
            msg = f"nodes have conflicting {what}"
            raise ValueError(msg)
        return a if a is not None else b

    handler = pick(tree1.handler, tree2.handler, "handlers")
    name = pick(tree1.name, tree2.name, "route names")
    not_found_handler = pick(
        tree1.not_found_handler, tree2.not_found_handler, "not found handlers"
    )
    method_not_allowed_handler = pick(
        tree1.method_not_allowed_handler,
        tree2.method_not_allowed_handler,
        "method not allowed handlers",
    )
    if tree1.middleware and tree2.middleware and tree1.middleware != tree2.middleware:
        msg = "node being merged in has conflicting middleware"
        raise ValueError(msg)
    middleware = tree1.middleware or tree2.middleware

    wildcard = tree1.wildcard or tree2.wildcard
    if tree1.wildcard is not None and tree2.wildcard is not None:
        if tree1.wildcard.name != tree2.wildcard.name:
            msg = "nodes have conflicting wildcards"
            raise ValueError(msg)
        wildcard = WildCardNode(
            tree1.wildcard.name,
            _merge_trees(tree1.wildcard.child, tree2.wildcard.child),
        )

    catchall = tree1.catchall or tree2.catchall
    if tree1.catchall is not None and tree2.catchall is not None:
        if tree1.catchall.name != tree2.catchall.name:
            msg = "nodes have conflicting catchalls"
            raise ValueError(msg)
        catchall = CatchAllNode(
            tree1.catchall.name,
            _merge_trees(tree1.catchall.child, tree2.catchall.child),
        )

    children = dict(tree1.children)
    for key, child in tree2.children.items():
        children[key] = _merge_trees(children[key], child) if key in children else child

    return Node(
        handler=handler,
        middleware=middleware,
        name=name,
        children=FrozenDict(children),
        wildcard=wildcard,
        catchall=catchall,
        not_found_handler=not_found_handler,
        method_not_allowed_handler=method_not_allowed_handler,
    )


def format_routes[T](root: Node[T]) -> str:
    """Format registered routes as a column-aligned listing:

        *      /              home          home_handler
        GET    /ui/           ui.index      index_handler
        GET    /user/{id}     user.detail   get_user        [auth]
        GET    /static/x      -             static_handler
    """
    routes = sorted(_collect_routes(root, []), key=lambda r: (r[1], r[0]))
    if not routes:
        return ""

    method_w = max(len(r[0]) for r in routes)
    path_w = max(len(r[1]) for r in routes)
    name_w = max(len(r[2]) for r in routes)
    handler_w = max(len(r[3]) for r in routes)

    lines: list[str] = []
    for method, path, name, handler, mw in routes:
        line = f"{method:<{method_w}}   {path:<{path_w}}   {name:<{name_w}}   "
        if mw:
            line += f"{handler:<{handler_w}}   [{' > '.join(mw)}]"
        else:
            line += handler
        lines.append(line.rstrip())
    return "\n".join(lines)


type _Route = tuple[str, str, str, str, list[str]]


def _collect_routes[T](node: Node[T], parts: list[str]) -> list[_Route]:
    routes: list[_Route] = []
    for key, child in node.children.items():
        if isinstance(key, LeafKey):
            if child.handler is not None:
                routes.append(
                    (
                        "*" if key is LeafKey.ANY_HTTP else key.value,
                        "/" + "/".join(parts),
                        child.name or "-",
                        _qualname(child.handler),
                        [_qualname(m) for m in child.middleware],
                    )
                )
        else:
            routes.extend(_collect_routes(child, [*parts, key]))
    if node.wildcard is not None:
        routes.extend(
            _collect_routes(node.wildcard.child, [*parts, "{" + node.wildcard.name + "}"])
        )
    if node.catchall is not None:
        routes.extend(
            _collect_routes(
                node.catchall.child, [*parts, "{" + node.catchall.name + "...}"]
            )
        )
    return routes


def _qualname(obj: object) -> str:
    """Extract __qualname__ from a callable, falling back to repr."""
    return str(obj.__qualname__) if hasattr(obj, "__qualname__") else repr(obj)
