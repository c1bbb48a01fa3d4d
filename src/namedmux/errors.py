"""Exceptions raised while building and querying named routes."""


class NamedMuxError(Exception):
    """Base for all namedmux errors."""


class InvalidNameSegment(NamedMuxError, ValueError):  # noqa: N818
    """A route name segment is empty or contains the name separator.

    Nesting is expressed with ``NamedRouter.nest``, never by embedding the
    separator in a segment.
    """

    def __init__(self, segment: str, separator: str) -> None:
        self.segment = segment
        self.separator = separator
        if not segment:
            msg = "route name segment cannot be empty"
        else:
            msg = f"route name segment {segment!r} cannot contain {separator!r}"
        super().__init__(msg)


class DuplicateRouteName(NamedMuxError, ValueError):  # noqa: N818
    """Two routes resolve to the same qualified name."""

    def __init__(self, name: str, first_path: str, second_path: str) -> None:
        self.name = name
        self.first_path = first_path
        self.second_path = second_path
        msg = (
            f"route name {name!r} is registered more than once "
            f"(paths {first_path!r} and {second_path!r})"
        )
        super().__init__(msg)


class RouteLookupFault(NamedMuxError, RuntimeError):
    """``has()`` was called for a name that is not in the registry.

    This is a programming error, not a 404: the handler assumed a route
    that the route table does not contain.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"called `has` for a route that does not exist: {name!r}")


class RegistryNotInstalled(NamedMuxError, RuntimeError):  # noqa: N818
    """Route lookup requested where no registry was installed."""


class BuilderConsumed(NamedMuxError, RuntimeError):  # noqa: N818
    """A NamedRouter was used after it was nested, merged or finalized."""
