# /// script
# requires-python = ">=3.14"
# dependencies = [
#     "namedmux @ file:///${PROJECT_ROOT}/../namedmux",
#     "granian[uvloop]>=2.6.0,<3.0.0",
# ]
# ///
"""ASGI server demo.

Fully functional web server using Granian + namedmux NamedRouter. Handlers
build links from route names instead of hardcoding paths.
"""

import asyncio
import json
import logging
import sqlite3

from granian.constants import Interfaces
from granian.server.embed import Server

from namedmux import NamedRouter, RouteLookup, path_params, route_name
from namedmux.types import ASGIHTTPHandler, HTTPReceive, HTTPScope, HTTPSend

ADDRESS = "127.0.0.1"
PORT = 8000

_db = sqlite3.connect(":memory:")
_db.cursor().executescript("""
CREATE TABLE IF NOT EXISTS user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);
INSERT INTO user (name) VALUES ('ada'), ('grace');
""")


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    ui = (
        NamedRouter()
        .route("index", "/", ui_index, method="GET")
        .route("other", "/other", ui_other, method="GET")
    )
    _, router = (
        NamedRouter()
        .route("home", "/", home, method="GET")
        .route("other", "/other", home, method="GET")
        .nest("ui", "/ui/", ui)
        .nest("user", "/user", user_router(_db))
        .finalize()
    )
    print(router.format_routes())  # noqa: T201

    server = Server(
        router,
        address=ADDRESS,
        port=PORT,
        interface=Interfaces.ASGI,
        log_access=True,
    )
    try:
        await server.serve()
    except asyncio.CancelledError:
        pass


async def respond(send: HTTPSend, status: int, body: object) -> None:
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": [(b"content-type", b"application/json")],
        }
    )
    await send({"type": "http.response.body", "body": json.dumps(body).encode()})


async def home(_scope: HTTPScope, _receive: HTTPReceive, send: HTTPSend) -> None:
    routes = RouteLookup.current()
    await respond(
        send,
        200,
        {
            "ui": routes.has("ui.index"),
            "users": routes.has("user.list"),
            # get() is for names that may legitimately be missing
            "admin": routes.get("admin.index"),
        },
    )


async def ui_index(_scope: HTTPScope, _receive: HTTPReceive, send: HTTPSend) -> None:
    routes = RouteLookup.current()
    await respond(send, 200, {"route": route_name.get(), "next": routes.has("ui.other")})


async def ui_other(_scope: HTTPScope, _receive: HTTPReceive, send: HTTPSend) -> None:
    routes = RouteLookup.current()
    # we got here, so our own route has to exist
    this_route = routes.has("ui.other")
    await respond(
        send,
        200,
        {"route": this_route, "top_level_other": routes.get("other")},
    )


def user_router(db: sqlite3.Connection) -> NamedRouter:
    return (
        NamedRouter()
        .route("list", "/", get_users(db), method="GET")
        .route("detail", "/{id}", get_user(db), method="GET")
    )


# closure over handler to inject dependencies
def get_users(db: sqlite3.Connection) -> ASGIHTTPHandler:
    async def handler(_scope: HTTPScope, _receive: HTTPReceive, send: HTTPSend) -> None:
        routes = RouteLookup.current()
        rows = db.cursor().execute("SELECT id, name FROM user").fetchall()
        body = [
            {"id": row[0], "name": row[1], "href": routes.url("user.detail", id=row[0])}
            for row in rows
        ]
        await respond(send, 200, body)

    return handler


def get_user(db: sqlite3.Connection) -> ASGIHTTPHandler:
    async def handler(_scope: HTTPScope, _receive: HTTPReceive, send: HTTPSend) -> None:
        try:
            user_id = int(path_params.get()["id"])
        except ValueError:
            await respond(send, 404, {"error": "not found"})
            return
        row = (
            db.cursor()
            .execute("SELECT id, name FROM user WHERE id = ?", (user_id,))
            .fetchone()
        )
        if row is None:
            await respond(send, 404, {"error": "not found"})
            return
        await respond(send, 200, {"id": row[0], "name": row[1]})

    return handler


if __name__ == "__main__":
    asyncio.run(main())
