"""Builder for routers whose routes carry hierarchical names.

A NamedRouter collects ``(name, path, handler)`` routes and nested
NamedRouters. ``finalize()`` flattens the whole tree in one depth-first pass
into a RouteRegistry (name -> path) and the Router that dispatches the very
same paths:

    ui = NamedRouter().route("index", "/", index).route("other", "/other", other)
    registry, router = (
        NamedRouter()
        .nest("ui", "/ui/", ui)
        .route("other", "/other", top_other)
        .finalize()
    )
    registry["ui.other"] == "/ui/other"
    registry["other"] == "/other"
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Self

from namedmux.errors import BuilderConsumed, DuplicateRouteName
from namedmux.names import NAME_SEPARATOR, compose_name, compose_path, validate_segment
from namedmux.registry import RouteRegistry
from namedmux.router import HTTPMethod, Router, WebsocketMethod
from namedmux.tree import Middleware
from namedmux.types import (
    ASGIHandler,
    ASGIHTTPHandler,
    HTTPReceive,
    HTTPResponseBodyEvent,
    HTTPResponseStartEvent,
    HTTPScope,
    HTTPSend,
)

logger = logging.getLogger(__name__)

type Method = HTTPMethod | WebsocketMethod


@dataclass(slots=True, frozen=True)
class _Leaf:
    name: str
    path: str
    handler: ASGIHandler
    method: Method | None
    middleware: tuple[Middleware[ASGIHandler], ...]


@dataclass(slots=True, frozen=True)
class _Nest:
    name: str | None  # None for merged routers
    path_prefix: str
    child: NamedRouter


@dataclass(slots=True, frozen=True)
class FlatRoute:
    """A route with its fully qualified name and composed path."""

    name: str
    path: str
    handler: ASGIHandler
    method: Method | None
    middleware: tuple[Middleware[ASGIHandler], ...]


class NamedRouter:
    """Accumulates named routes; see the module docstring for an example.

    Nesting or merging a NamedRouter into another transfers it to the parent:
    any further use of the child raises BuilderConsumed, as does using a
    router after ``finalize()``.
    """

    __slots__ = (
        "_consumed",
        "_leaves",
        "_method_not_allowed_handler",
        "_middleware",
        "_nests",
        "_not_found_handler",
        "_separator",
    )

    def __init__(
        self,
        *,
        separator: str = NAME_SEPARATOR,
        not_found_handler: ASGIHTTPHandler | None = None,
        method_not_allowed_handler: ASGIHTTPHandler | None = None,
    ) -> None:
        if not separator or "/" in separator:
            msg = f"invalid route name separator {separator!r}"
            raise ValueError(msg)
        self._separator = separator
        self._leaves: list[_Leaf] = []
        self._nests: list[_Nest] = []
        self._middleware: tuple[Middleware[ASGIHandler], ...] = ()
        self._not_found_handler = not_found_handler
        self._method_not_allowed_handler = method_not_allowed_handler
        self._consumed = False

    @property
    def separator(self) -> str:
        return self._separator

    def route(
        self,
        name: str,
        path: str,
        handler: ASGIHandler,
        *,
        method: Method | None = None,
        middleware: tuple[Middleware[ASGIHandler], ...] = (),
    ) -> Self:
        """Adds handler at path under name.

        ``method`` restricts the route to one HTTP method (or "WEBSOCKET");
        None accepts any method. Name uniqueness is checked by ``finalize()``
        since the name may still be prefixed by a parent router.
        """
        self._check_live()
        self._leaves.append(
            _Leaf(
                validate_segment(name, self._separator),
                compose_path("", path),
                handler,
                method,
                middleware,
            )
        )
        return self

    def nest(self, name: str, path_prefix: str, child: NamedRouter) -> Self:
        """Mounts child at path_prefix, prefixing its route names with name.

        With the default separator a child route "index" nested as "ui"
        becomes "ui.index".
        """
        self._check_live()
        validate_segment(name, self._separator)
        self._adopt(child)
        self._nests.append(_Nest(name, path_prefix, child))
        return self

    def merge(self, other: NamedRouter) -> Self:
        """Takes over other's routes at the same level, names unchanged."""
        self._check_live()
        self._adopt(other)
        self._nests.append(_Nest(None, "/", other))
        return self

    def use(self, *middleware: Middleware[ASGIHandler]) -> Self:
        """Adds middleware to every route of this router, nested ones included."""
        self._check_live()
        self._middleware += middleware
        return self

    def not_found(self, handler: ASGIHTTPHandler) -> Self:
        self._check_live()
        if self._not_found_handler is not None:
            msg = "not found handler is already set"
            raise ValueError(msg)
        self._not_found_handler = handler
        return self

    def method_not_allowed(self, handler: ASGIHTTPHandler) -> Self:
        self._check_live()
        if self._method_not_allowed_handler is not None:
            msg = "method not allowed handler is already set"
            raise ValueError(msg)
        self._method_not_allowed_handler = handler
        return self

    def flatten(self) -> Iterator[FlatRoute]:
        """Yields every route with its qualified name and composed path."""
        self._check_live()
        return self._walk(None, self._separator, "", ())

    def routes(self) -> dict[str, str]:
        """Name -> path mapping of the routes added so far.

        Raises DuplicateRouteName like ``finalize()`` does.
        """
        paths: dict[str, str] = {}
        for route in self.flatten():
            _insert(paths, route)
        return paths

    def finalize(self) -> tuple[RouteRegistry, Router]:
        """Builds the registry and the router serving the same routes.

        Raises DuplicateRouteName if two routes share a qualified name, in
        which case there is nothing that could be served.
        """
        router = Router(
            not_found_handler=self._not_found_handler or not_found,
            method_not_allowed_handler=self._method_not_allowed_handler
            or method_not_allowed,
        )
        paths: dict[str, str] = {}
        for route in self.flatten():
            _insert(paths, route)
            router.method(
                route.method,
                route.path,
                route.handler,
                route.middleware,
                name=route.name,
            )
            logger.debug("route %s -> %s", route.name, route.path)
        registry = RouteRegistry(paths)
        router.install(registry)
        router.finalize()
        self._consumed = True
        logger.info("finalized %d named routes", len(registry))
        return registry, router

    def _walk(
        self,
        name_prefix: str | None,
        separator: str,
        path_prefix: str,
        middleware: tuple[Middleware[ASGIHandler], ...],
    ) -> Iterator[FlatRoute]:
        # separator joins name_prefix to this router's names; it belongs to
        # the router that did the nesting
        middleware += self._middleware
        for leaf in self._leaves:
            yield FlatRoute(
                compose_name(name_prefix, leaf.name, separator),
                compose_path(path_prefix, leaf.path),
                leaf.handler,
                leaf.method,
                middleware + leaf.middleware,
            )
        for nest in self._nests:
            if nest.name is None:
                child_prefix, child_separator = name_prefix, separator
            else:
                child_prefix = compose_name(name_prefix, nest.name, separator)
                child_separator = self._separator
            yield from nest.child._walk(
                child_prefix,
                child_separator,
                compose_path(path_prefix, nest.path_prefix),
                middleware,
            )

    def _adopt(self, child: NamedRouter) -> None:
        if child is self:
            msg = "cannot nest a router into itself"
            raise BuilderConsumed(msg)
        child._check_live()
        if (
            child._not_found_handler is not None
            or child._method_not_allowed_handler is not None
        ):
            msg = "error handlers can only be set on the outermost router"
            raise ValueError(msg)
        for segment in child._outer_segments():
            validate_segment(segment, self._separator)
        child._consumed = True

    def _outer_segments(self) -> Iterator[str]:
        """Names that a parent joins to its prefix with its own separator."""
        yield from (leaf.name for leaf in self._leaves)
        for nest in self._nests:
            if nest.name is None:
                yield from nest.child._outer_segments()
            else:
                yield nest.name

    def _check_live(self) -> None:
        if self._consumed:
            msg = "router was already nested, merged or finalized"
            raise BuilderConsumed(msg)


def _insert(paths: dict[str, str], route: FlatRoute) -> None:
    existing = paths.get(route.name)
    if existing is not None:
        raise DuplicateRouteName(route.name, existing, route.path)
    paths[route.name] = route.path


async def _plain_text(send: HTTPSend, status: int, body: bytes) -> None:
    await send(
        HTTPResponseStartEvent(
            type="http.response.start",
            status=status,
            headers=[(b"content-type", b"text/plain; charset=utf-8")],
        )
    )
    await send(HTTPResponseBodyEvent(type="http.response.body", body=body))


async def not_found(scope: HTTPScope, _receive: HTTPReceive, send: HTTPSend) -> None:
    """Default handler for unknown paths."""
    if scope["type"] == "websocket":
        await send({"type": "websocket.close", "code": 1000})
        return
    await _plain_text(send, 404, b"Not Found")


async def method_not_allowed(
    scope: HTTPScope, _receive: HTTPReceive, send: HTTPSend
) -> None:
    """Default handler for known paths without a handler for the method."""
    if scope["type"] == "websocket":
        await send({"type": "websocket.close", "code": 1000})
        return
    await _plain_text(send, 405, b"Method Not Allowed")
