from importlib.metadata import version

from .builder import NamedRouter
from .errors import (
    BuilderConsumed,
    DuplicateRouteName,
    InvalidNameSegment,
    NamedMuxError,
    RegistryNotInstalled,
    RouteLookupFault,
)
from .names import compose_name, compose_path
from .registry import RouteLookup, RouteRegistry
from .router import Router
from .tree import http_route, path_params, route_name

__all__ = [
    "BuilderConsumed",
    "DuplicateRouteName",
    "InvalidNameSegment",
    "NamedMuxError",
    "NamedRouter",
    "RegistryNotInstalled",
    "RouteLookup",
    "RouteLookupFault",
    "RouteRegistry",
    "Router",
    "__version__",
    "compose_name",
    "compose_path",
    "http_route",
    "path_params",
    "route_name",
]

__version__ = version("namedmux")
