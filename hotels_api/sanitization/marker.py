"""The ``SanitizeHTML`` field marker.

Marks a string field as carrying untrusted HTML::

    class HotelInput(BaseModel):
        description: Annotated[str | None, SanitizeHTML()] = None

The marker has no parameters.  Its presence is the only thing that makes a
field a sanitization candidate; field names are never inspected.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Annotated, Any, get_args, get_origin


@dataclass(frozen=True)
class SanitizeHTML:
    """Field-level opt-in for HTML sanitization."""


def has_marker(metadata: Iterable[Any]) -> bool:
    """Return ``True`` if *metadata* contains a ``SanitizeHTML`` marker."""
    return any(isinstance(item, SanitizeHTML) or item is SanitizeHTML for item in metadata)


def split_annotated(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    """Split ``Annotated[T, *meta]`` into ``(T, meta)``.

    Non-annotated types come back unchanged with empty metadata.
    """
    if get_origin(annotation) is Annotated:
        base, *meta = get_args(annotation)
        return base, tuple(meta)
    return annotation, ()


SanitizedHtml = Annotated[str, SanitizeHTML()]
"""Shorthand for a marked string field."""
