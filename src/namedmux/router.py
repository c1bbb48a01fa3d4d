"""ASGI router/multiplexer that dispatches named routes.

Inspired by go-chi/mux's Mux
"""

from contextlib import AbstractContextManager, nullcontext
from dataclasses import replace
from functools import reduce
from typing import Literal

from namedmux.registry import RouteRegistry, route_registry
from namedmux.tree import (
    LeafKey,
    Match,
    Middleware,
    Node,
    add_route,
    finalize_tree,
    find_handler,
    format_routes,
    http_route,
    path_params,
    route_name,
)
from namedmux.types import (
    ASGIHandler,
    ASGIHTTPHandler,
    HTTPReceive,
    HTTPScope,
    HTTPSend,
    LifespanReceive,
    LifespanScope,
    LifespanSend,
    LifespanShutdownCompleteEvent,
    LifespanStartupCompleteEvent,
    LifespanStartupFailedEvent,
    WebsocketReceive,
    WebsocketScope,
    WebsocketSend,
)

type HTTPMethod = Literal[
    "CONNECT", "DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT", "TRACE"
]
type WebsocketMethod = Literal["WEBSOCKET"]


class Router:
    __slots__ = ("_finalized", "_registry", "_tree")
    _tree: Node[ASGIHandler]
    _registry: RouteRegistry | None
    _finalized: bool

    def __init__(
        self,
        *,
        not_found_handler: ASGIHTTPHandler | None = None,
        method_not_allowed_handler: ASGIHTTPHandler | None = None,
        registry: RouteRegistry | None = None,
    ) -> None:
        self._tree = Node(
            not_found_handler=not_found_handler,
            method_not_allowed_handler=method_not_allowed_handler,
        )
        self._registry = registry
        self._finalized = False

    async def __call__(
        self,
        scope: HTTPScope | WebsocketScope | LifespanScope,
        receive: HTTPReceive | WebsocketReceive | LifespanReceive,
        send: HTTPSend | WebsocketSend | LifespanSend,
    ) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        match = self._match(
            LeafKey(scope["method"].upper())
            if scope["type"] == "http"
            else LeafKey.WEBSOCKET,
            scope.get("path", ""),
        )
        handler = reduce(lambda h, m: m(h), reversed(match.middleware), match.handler)
        with (
            path_params.set(match.params),
            http_route.set(match.route),
            route_name.set(match.name),
            self._installed(),
        ):
            await handler(scope, receive, send)  # ty: ignore[invalid-argument-type]

    def _installed(self) -> AbstractContextManager[object]:
        """Makes the registry visible to RouteLookup.current() for one request."""
        if self._registry is None:
            return nullcontext()
        return route_registry.set(self._registry)

    async def _handle_lifespan(
        self, receive: LifespanReceive, send: LifespanSend
    ) -> None:
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    self.finalize()
                except Exception as e:  # noqa: BLE001  - ASGI requires reporting any failure
                    await send(
                        LifespanStartupFailedEvent(
                            type="lifespan.startup.failed", message=str(e)
                        )
                    )
                    return
                await send(
                    LifespanStartupCompleteEvent(type="lifespan.startup.complete")
                )
            elif message["type"] == "lifespan.shutdown":
                await send(
                    LifespanShutdownCompleteEvent(type="lifespan.shutdown.complete")
                )
                return

    @property
    def registry(self) -> RouteRegistry | None:
        return self._registry

    def install(self, registry: RouteRegistry) -> None:
        """Installs the registry handed to every request via RouteLookup."""
        if self._registry is not None:
            msg = "route registry is already installed"
            raise ValueError(msg)
        self._registry = registry

    def finalize(self) -> None:
        """Finalize the router tree.

        Cascades not_found_handler and method_not_allowed_handler down through
        the routing tree. Idempotent - safe to call multiple times.

        This is called automatically during ASGI lifespan startup, but can be
        called manually before forking workers to avoid re-finalization overhead.
        """
        if self._finalized:
            return
        if self._tree.not_found_handler is None:
            msg = "Router does not have not_found_handler"
            raise ValueError(msg)
        if self._tree.method_not_allowed_handler is None:
            msg = "Router does not have method_not_allowed_handler"
            raise ValueError(msg)
        self._tree = finalize_tree(
            self._tree,
            self._tree.not_found_handler,
            self._tree.method_not_allowed_handler,
        )
        self._finalized = True

    def _match(self, method: LeafKey, path: str) -> Match[ASGIHandler]:
        # path is already unescaped by the ASGI server
        return find_handler(path, method, self._tree)

    def handle(
        self,
        path: str,
        handler: ASGIHandler,
        middleware: tuple[Middleware[ASGIHandler], ...] = (),
        *,
        name: str | None = None,
    ) -> None:
        """Registers handler in tree at path for any http method or websocket, with optional middleware."""
        self.method(None, path, handler, middleware, name=name)

    def method(
        self,
        method: HTTPMethod | WebsocketMethod | None,
        path: str,
        handler: ASGIHandler,
        middleware: tuple[Middleware[ASGIHandler], ...] = (),
        *,
        name: str | None = None,
    ) -> None:
        """Registers handler in tree at path for method, with optional middleware."""
        if self._finalized:
            msg = "cannot add routes to a finalized router"
            raise ValueError(msg)
        self._tree = add_route(
            self._tree,
            LeafKey(method.upper()) if method is not None else LeafKey.ANY_HTTP,
            path,
            handler,
            middleware,
            name,
        )

    def not_found(self, handler: ASGIHTTPHandler) -> None:
        """Registers http handler for paths that can't be found."""
        if self._tree.not_found_handler is not None:
            msg = "not found handler is already set"
            raise ValueError(msg)
        self._tree = replace(self._tree, not_found_handler=handler)

    def method_not_allowed(self, handler: ASGIHTTPHandler) -> None:
        """Registers http handler for paths where the method is unresolved."""
        if self._tree.method_not_allowed_handler is not None:
            msg = "method not allowed handler is already set"
            raise ValueError(msg)
        self._tree = replace(self._tree, method_not_allowed_handler=handler)

    def format_routes(self) -> str:
        """Human readable listing of method, path, name and handler per route."""
        return format_routes(self._tree)
