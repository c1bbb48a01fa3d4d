from typing import Any

from namedmux.types import HTTPScope, Message, WebsocketScope


def mock_scope(
    path: str = "/",
    method: str = "GET",
    headers: dict[str, str] | None = None,
    query_string: bytes = b"",
) -> HTTPScope:
    return HTTPScope(
        type="http",
        asgi={"spec_version": "2.4", "version": "3.0"},
        http_version="1.1",
        method=method,
        scheme="http",
        path=path,
        query_string=query_string,
        root_path="",
        headers=[
            (k.encode("latin-1"), v.encode("latin-1"))
            for k, v in (headers or {}).items()
        ],
        client=("127.0.0.1", 51234),
        server=("localhost", 8000),
    )


def mock_websocket_scope(path: str = "/") -> WebsocketScope:
    return WebsocketScope(
        type="websocket",
        asgi={"spec_version": "2.4", "version": "3.0"},
        http_version="1.1",
        scheme="ws",
        path=path,
        query_string=b"",
        root_path="",
        headers=[],
        client=("127.0.0.1", 51234),
        server=("localhost", 8000),
        subprotocols=[],
    )


class MockReceive:
    """Replays a fixed sequence of messages."""

    def __init__(self, *messages: Message) -> None:
        self.messages = list(messages) or [
            {"type": "http.request", "body": b"", "more_body": False}
        ]

    async def __call__(self) -> Message:
        return self.messages.pop(0)


class MockSend:
    """Captures sent messages."""

    def __init__(self) -> None:
        self.messages: list[Message] = []

    async def __call__(self, message: Message) -> None:
        self.messages.append(message)

    @property
    def status(self) -> int | None:
        for message in self.messages:
            if message["type"] == "http.response.start":
                return message["status"]
        return None

    @property
    def body(self) -> bytes:
        return b"".join(
            m.get("body", b"") for m in self.messages if m["type"] == "http.response.body"
        )


async def text(send: Any, status: int, body: str) -> None:
    await send({"type": "http.response.start", "status": status, "headers": []})
    await send({"type": "http.response.body", "body": body.encode()})
