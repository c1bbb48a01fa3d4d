"""ASGI 3 type definitions used by the router and middleware."""

from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Literal, NotRequired, TypedDict


class ASGIVersions(TypedDict):
    spec_version: str
    version: Literal["3.0"]


class HTTPScope(TypedDict):
    type: Literal["http"]
    asgi: ASGIVersions
    http_version: str
    method: str
    scheme: str
    path: str
    raw_path: NotRequired[bytes]
    query_string: bytes
    root_path: str
    headers: Iterable[tuple[bytes, bytes]]
    client: tuple[str, int] | None
    server: tuple[str, int | None] | None
    state: NotRequired[dict[str, Any]]
    extensions: NotRequired[dict[str, dict[object, object]]]


class WebsocketScope(TypedDict):
    type: Literal["websocket"]
    asgi: ASGIVersions
    http_version: str
    scheme: str
    path: str
    raw_path: NotRequired[bytes]
    query_string: bytes
    root_path: str
    headers: Iterable[tuple[bytes, bytes]]
    client: tuple[str, int] | None
    server: tuple[str, int | None] | None
    subprotocols: Iterable[str]
    state: NotRequired[dict[str, Any]]
    extensions: NotRequired[dict[str, dict[object, object]]]


class LifespanScope(TypedDict):
    type: Literal["lifespan"]
    asgi: ASGIVersions
    state: NotRequired[dict[str, Any]]


class HTTPResponseStartEvent(TypedDict):
    type: Literal["http.response.start"]
    status: int
    headers: NotRequired[Iterable[tuple[bytes, bytes]]]
    trailers: NotRequired[bool]


class HTTPResponseBodyEvent(TypedDict):
    type: Literal["http.response.body"]
    body: bytes
    more_body: NotRequired[bool]


class LifespanStartupCompleteEvent(TypedDict):
    type: Literal["lifespan.startup.complete"]


class LifespanStartupFailedEvent(TypedDict):
    type: Literal["lifespan.startup.failed"]
    message: str


class LifespanShutdownCompleteEvent(TypedDict):
    type: Literal["lifespan.shutdown.complete"]


# receive/send events are left loosely typed beyond what the router emits
type Message = dict[str, Any]
type HTTPReceive = Callable[[], Awaitable[Message]]
type HTTPSend = Callable[[Message], Awaitable[None]]
type WebsocketReceive = Callable[[], Awaitable[Message]]
type WebsocketSend = Callable[[Message], Awaitable[None]]
type LifespanReceive = Callable[[], Awaitable[Message]]
type LifespanSend = Callable[[Message], Awaitable[None]]

type ASGIHTTPHandler = Callable[[HTTPScope, HTTPReceive, HTTPSend], Awaitable[None]]
type ASGIWebsocketHandler = Callable[
    [WebsocketScope, WebsocketReceive, WebsocketSend], Awaitable[None]
]
type ASGIHandler = ASGIHTTPHandler | ASGIWebsocketHandler
