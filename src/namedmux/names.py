"""Composition of route paths and hierarchical route names."""

from namedmux.errors import InvalidNameSegment

NAME_SEPARATOR = "."


def compose_path(prefix: str, suffix: str) -> str:
    """Join a path prefix and a relative path into a normalized absolute path.

    Empty segments are dropped, so the result always starts with exactly one
    ``/`` and never contains ``//``. A trailing ``/`` survives only when the
    suffix ends with one:

        compose_path("/ui/", "/other") == "/ui/other"
        compose_path("/ui", "/")       == "/ui/"
        compose_path("", "")           == "/"
    """
    segments = [seg for seg in f"{prefix}/{suffix}".split("/") if seg]
    path = "/" + "/".join(segments)
    if suffix.endswith("/") and path != "/":
        path += "/"
    return path


def validate_segment(segment: str, separator: str = NAME_SEPARATOR) -> str:
    if not segment or separator in segment:
        raise InvalidNameSegment(segment, separator)
    return segment


def compose_name(
    prefix: str | None, leaf: str, separator: str = NAME_SEPARATOR
) -> str:
    """Qualify leaf with prefix, e.g. ``("ui", "index") -> "ui.index"``."""
    validate_segment(leaf, separator)
    if prefix is None:
        return leaf
    return f"{prefix}{separator}{leaf}"
