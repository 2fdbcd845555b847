"""Object graph walker.

Walks a payload in place: collections are walked element by element,
pydantic models and dataclasses property by property, and every marked
string field holding markup is replaced with its sanitized form.  Terminal
values (strings, numbers, booleans, bytes, enums, ``None`` and any other
non-structured object) end the descent.

Each structured object and collection is visited at most once per walk, so
back-references (``facility.hotel.facilities``) do not recurse forever.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any

from hotels_api.core.errors import SanitizationConfigError
from hotels_api.sanitization.discard import DiscardTracker, SanitizationContext
from hotels_api.sanitization.schema import PropertyKind, is_structured
from hotels_api.sanitization.scope import CallSite
from hotels_api.sanitization.service import HtmlSanitizer

_TERMINALS = (str, bytes, bytearray, memoryview, int, float, complex, bool, enum.Enum)
_SEQUENCES = (list, tuple, set, frozenset)


def type_name(owner: type) -> str:
    return f"{owner.__module__}.{owner.__qualname__}"


class ObjectGraphWalker:
    """Sanitizes every eligible field reachable from a payload root."""

    def __init__(self, sanitizer: HtmlSanitizer) -> None:
        self.sanitizer = sanitizer

    def walk(self, root: Any, call_site: CallSite, tracker: DiscardTracker) -> None:
        """Mutate *root* in place; discards are recorded on *tracker*.

        Raises:
            SanitizationConfigError: If a marked field is misdeclared or
                cannot be written back.
        """
        self._walk(root, call_site, tracker, set())

    def _walk(self, node: Any, call_site: CallSite, tracker: DiscardTracker, seen: set[int]) -> None:
        if node is None or isinstance(node, _TERMINALS):
            return

        if isinstance(node, Mapping) or isinstance(node, _SEQUENCES):
            if id(node) in seen:
                return
            seen.add(id(node))
            items = node.values() if isinstance(node, Mapping) else node
            for item in list(items):
                if item is not None:
                    self._walk(item, call_site, tracker, seen)
            return

        if not is_structured(node) or id(node) in seen:
            return
        seen.add(id(node))
        self._walk_object(node, call_site, tracker, seen)

    def _walk_object(self, node: Any, call_site: CallSite, tracker: DiscardTracker, seen: set[int]) -> None:
        owner = type(node)
        schemas = self.sanitizer.schemas
        for prop in schemas.schema_for(owner).properties:
            if prop.kind is PropertyKind.PLAIN:
                continue

            value = getattr(node, prop.name, None)
            if value is None:
                continue

            if prop.kind is PropertyKind.NESTED:
                self._walk(value, call_site, tracker, seen)
                continue

            if not schemas.is_eligible(owner, prop.name, value):
                continue

            context = SanitizationContext(
                model_class_name=type_name(owner),
                controller_class_name=call_site.controller_class_name,
                controller_method_name=call_site.controller_method_name,
                field_name=prop.name,
            )
            sanitized = self.sanitizer.sanitize_text(value, context, tracker)
            if sanitized != value:
                self._write(node, prop.name, sanitized)

    @staticmethod
    def _write(node: Any, name: str, value: str) -> None:
        try:
            setattr(node, name, value)
        except (AttributeError, TypeError, ValueError) as exc:
            raise SanitizationConfigError(type(node).__qualname__, name, f"cannot write sanitized value: {exc}") from exc
