"""Finalized route name -> path registry and its per-request lookup view.

The registry is built once by ``NamedRouter.finalize()`` and never mutated
afterwards, so the same instance is shared by every request without locks.
The router installs it into ``route_registry`` for the duration of each
request; handlers get at it through ``RouteLookup.current()``.
"""

import re
from collections.abc import Callable, Iterator, Mapping
from contextvars import ContextVar
from dataclasses import dataclass
from urllib.parse import quote

from namedmux.errors import RegistryNotInstalled, RouteLookupFault
from namedmux.tree import FrozenDict

_PARAM = re.compile(r"\{(?P<name>[^{}/]+?)(?P<rest>\.\.\.)?\}")


class RouteRegistry(Mapping[str, str]):
    """Immutable mapping of qualified route names to their paths."""

    __slots__ = ("_routes",)
    _routes: FrozenDict[str, str]

    def __init__(self, routes: Mapping[str, str] | None = None) -> None:
        self._routes = FrozenDict(routes or {})

    def __getitem__(self, name: str) -> str:
        return self._routes[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __hash__(self) -> int:
        return hash(self._routes)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self._routes)!r})"

    def get[D](self, name: str, default: D | None = None) -> str | D | None:
        """Returns the path for name, or default if there is no such route."""
        return self._routes.get(name, default)

    def has(self, name: str) -> str:
        """Returns the path for name.

        Raises RouteLookupFault if the route does not exist; use ``get`` when
        a missing route is an expected outcome.
        """
        try:
            return self._routes[name]
        except KeyError:
            raise RouteLookupFault(name) from None

    def get_or(self, name: str, error: BaseException) -> str:
        """Returns the path for name, raising error if it does not exist."""
        path = self._routes.get(name)
        if path is None:
            raise error
        return path

    def get_or_else(self, name: str, error: Callable[[], BaseException]) -> str:
        """Like get_or, but only builds the error when the route is missing."""
        path = self._routes.get(name)
        if path is None:
            raise error()
        return path

    def url(self, name: str, /, **params: object) -> str:
        """Builds a concrete path for name by filling in its path params.

        ``{id}`` params are percent-encoded including ``/``; catchall
        ``{path...}`` params keep their ``/`` separators.
        """
        path = self.has(name)
        missing: list[str] = []
        used: set[str] = set()

        def substitute(m: re.Match[str]) -> str:
            key = m["name"]
            if key not in params:
                missing.append(key)
                return m[0]
            used.add(key)
            return quote(str(params[key]), safe="/" if m["rest"] else "")

        result = _PARAM.sub(substitute, path)
        if missing:
            msg = f"missing path params for route {name!r}: {', '.join(missing)}"
            raise ValueError(msg)
        if unknown := sorted(params.keys() - used):
            msg = f"unknown path params for route {name!r}: {', '.join(unknown)}"
            raise ValueError(msg)
        return result


route_registry: ContextVar[RouteRegistry] = ContextVar("route_registry")


@dataclass(frozen=True, slots=True)
class RouteLookup:
    """Read-only view of the registry for the request being handled.

    Usage::

        async def handler(scope, receive, send):
            routes = RouteLookup.current()
            index = routes.has("ui.index")
    """

    registry: RouteRegistry

    def __post_init__(self) -> None:
        if not isinstance(self.registry, RouteRegistry):
            msg = f"expected a RouteRegistry, got {type(self.registry).__name__}"
            raise RegistryNotInstalled(msg)

    @classmethod
    def current(cls) -> RouteLookup:
        """Returns the lookup for the current request.

        Raises RegistryNotInstalled when called outside a request served by a
        router that carries a registry, which is a wiring fault rather than
        something to recover from.
        """
        try:
            registry = route_registry.get()
        except LookupError:
            msg = (
                "no route registry installed for this request, serve the "
                "router returned by NamedRouter.finalize()"
            )
            raise RegistryNotInstalled(msg) from None
        return cls(registry)

    def get[D](self, name: str, default: D | None = None) -> str | D | None:
        return self.registry.get(name, default)

    def has(self, name: str) -> str:
        return self.registry.has(name)

    def get_or(self, name: str, error: BaseException) -> str:
        return self.registry.get_or(name, error)

    def get_or_else(self, name: str, error: Callable[[], BaseException]) -> str:
        return self.registry.get_or_else(name, error)

    def url(self, name: str, /, **params: object) -> str:
        return self.registry.url(name, **params)
