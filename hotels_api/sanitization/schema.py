"""Per-type sanitization schemas and the eligibility check.

A ``TypeSchema`` lists every declared property of a payload type together
with how the walker must treat it:

* ``HTML``: string field carrying the ``SanitizeHTML`` marker;
* ``NESTED``: model, dataclass, collection, mapping or ``Any``; walked,
  never sanitized directly;
* ``PLAIN``: anything else; skipped.

Schemas are built once per type from declared annotations and memoized in a
compute-once map, so the per-request cost of classification is a table
lookup.  Only the content check (non-empty, contains ``<``) runs per value.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import enum
import functools
import types
import typing
from dataclasses import dataclass
from typing import Any, Union, get_args, get_origin

from pydantic import BaseModel

from hotels_api.core.errors import SanitizationConfigError
from hotels_api.sanitization.cache import ResultCache
from hotels_api.sanitization.marker import has_marker, split_annotated

# Reflective names that are never payload properties
_SYNTHETIC_PROPERTIES = frozenset({"__class__", "__dict__", "model_config", "model_fields"})

_COLLECTION_TYPES: tuple[type, ...] = (
    list,
    tuple,
    set,
    frozenset,
    dict,
    collections.abc.Iterable,
    collections.abc.Collection,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
)


class PropertyKind(enum.Enum):
    HTML = "html"
    NESTED = "nested"
    PLAIN = "plain"


@dataclass(frozen=True)
class PropertySpec:
    name: str
    kind: PropertyKind


@dataclass(frozen=True)
class TypeSchema:
    """Declared properties of one payload type."""

    owner: type
    properties: tuple[PropertySpec, ...] = ()

    @property
    def html_fields(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.properties if p.kind is PropertyKind.HTML)

    @functools.cached_property
    def _kinds(self) -> dict[str, PropertyKind]:
        return {p.name: p.kind for p in self.properties}

    def kind_of(self, name: str) -> PropertyKind:
        return self._kinds.get(name, PropertyKind.PLAIN)


def is_structured(value: Any) -> bool:
    """``True`` for pydantic model and dataclass instances."""
    if isinstance(value, BaseModel):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def contains_markup(value: Any) -> bool:
    return isinstance(value, str) and bool(value) and "<" in value


# ── Annotation classification ──────────────────────────────────────────


def _strip(annotation: Any) -> tuple[Any, bool]:
    """Remove ``Annotated`` and ``Optional`` layers, noting any marker."""
    marked = False
    while True:
        annotation, meta = split_annotated(annotation)
        marked = marked or has_marker(meta)
        origin = get_origin(annotation)
        if origin is Union or origin is types.UnionType:
            args = [a for a in get_args(annotation) if a is not type(None)]
            if len(args) == 1:
                annotation = args[0]
                continue
        return annotation, marked


def _is_traversable(annotation: Any) -> bool:
    annotation, _ = _strip(annotation)
    if annotation is Any or annotation is object:
        return True
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return any(_is_traversable(arg) for arg in get_args(annotation))
    target = origin or annotation
    if not isinstance(target, type):
        return False
    if issubclass(target, (str, bytes, bytearray)):
        return False
    if issubclass(target, BaseModel) or dataclasses.is_dataclass(target):
        return True
    return issubclass(target, _COLLECTION_TYPES)


def _contains_marker(annotation: Any) -> bool:
    base, meta = split_annotated(annotation)
    if has_marker(meta):
        return True
    return any(_contains_marker(arg) for arg in get_args(base))


def classify(owner: type, name: str, annotation: Any, metadata: tuple[Any, ...] = ()) -> PropertyKind:
    """Decide how the walker treats one declared property.

    Raises:
        SanitizationConfigError: If the marker sits on a non-string field,
            including a marker buried in a type argument such as
            ``list[SanitizedHtml]``.
    """
    base, marked = _strip(annotation)
    marked = marked or has_marker(metadata)
    if marked:
        if base is not str:
            raise SanitizationConfigError(
                owner.__qualname__, name, f"SanitizeHTML requires a str field, got {annotation!r}"
            )
        return PropertyKind.HTML
    if _contains_marker(base):
        raise SanitizationConfigError(
            owner.__qualname__, name, f"SanitizeHTML must mark the str field itself, got {annotation!r}"
        )
    if _is_traversable(annotation):
        return PropertyKind.NESTED
    return PropertyKind.PLAIN


# ── Schema construction ─────────────────────────────────────────────────


def _model_properties(owner: type[BaseModel]) -> list[PropertySpec]:
    frozen_model = bool(owner.model_config.get("frozen"))
    props = []
    for name, info in owner.model_fields.items():
        if name in _SYNTHETIC_PROPERTIES:
            continue
        kind = classify(owner, name, info.annotation, tuple(info.metadata))
        if kind is PropertyKind.HTML and (frozen_model or info.frozen):
            raise SanitizationConfigError(owner.__qualname__, name, "marked field is frozen and cannot be written back")
        props.append(PropertySpec(name, kind))
    return props


def _dataclass_properties(owner: type) -> list[PropertySpec]:
    try:
        hints = typing.get_type_hints(owner, include_extras=True)
    except Exception as exc:
        raise SanitizationConfigError(owner.__qualname__, detail=f"cannot resolve field types: {exc}") from exc

    frozen = owner.__dataclass_params__.frozen
    props = []
    for dc_field in dataclasses.fields(owner):
        if dc_field.name in _SYNTHETIC_PROPERTIES:
            continue
        kind = classify(owner, dc_field.name, hints.get(dc_field.name, Any))
        if kind is PropertyKind.HTML and frozen:
            raise SanitizationConfigError(
                owner.__qualname__, dc_field.name, "marked field is frozen and cannot be written back"
            )
        props.append(PropertySpec(dc_field.name, kind))
    return props


def build_schema(owner: type) -> TypeSchema:
    """Build the ``TypeSchema`` for *owner* (uncached)."""
    if isinstance(owner, type) and issubclass(owner, BaseModel):
        props = _model_properties(owner)
    elif dataclasses.is_dataclass(owner):
        props = _dataclass_properties(owner)
    else:
        props = []
    return TypeSchema(owner=owner, properties=tuple(props))


class SchemaRegistry:
    """Memoized schemas keyed by owning type (compute-once)."""

    def __init__(self) -> None:
        self._schemas: ResultCache[type, TypeSchema] = ResultCache()

    def schema_for(self, owner: type) -> TypeSchema:
        return self._schemas.get_or_compute(owner, lambda: build_schema(owner))

    def register(self, *owners: type) -> None:
        """Build schemas up front so misapplied markers fail at startup."""
        for owner in owners:
            self.schema_for(owner)

    def is_eligible(self, owner: type, name: str, value: Any) -> bool:
        """``True`` iff *name* is a marked string field and *value* holds markup."""
        if self.schema_for(owner).kind_of(name) is not PropertyKind.HTML:
            return False
        return contains_markup(value)

    def __len__(self) -> int:
        return len(self._schemas)
