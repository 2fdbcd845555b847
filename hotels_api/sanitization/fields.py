"""Field-level integration: models that sanitize themselves.

``HtmlSanitizedModel`` is the fast path for payload types known up front.
Marked fields are sanitized when an instance is validated (request bodies,
``model_validate``) and again when it is serialized (responses,
``model_dump``), through the same ``HtmlSanitizer`` as the payload walker, so
both paths produce identical text and share one cache.  There is no generic
walk and no scope check: opting in is declaring the base class::

    class Review(HtmlSanitizedModel):
        body: SanitizedHtml
"""

from __future__ import annotations

import threading
from typing import Any

from pydantic import BaseModel, SerializationInfo, SerializerFunctionWrapHandler, model_serializer, model_validator

from hotels_api.core.config import Settings
from hotels_api.sanitization.discard import DiscardTracker, SanitizationContext
from hotels_api.sanitization.service import HtmlSanitizer, build_html_sanitizer
from hotels_api.sanitization.walker import type_name

VALIDATION_CONTROLLER = "HtmlSanitizedModel"
VALIDATION_METHOD = "validate"
SERIALIZATION_METHOD = "serialize"

_sanitizer: HtmlSanitizer | None = None
_sanitizer_lock = threading.Lock()


def configure_field_sanitizer(sanitizer: HtmlSanitizer | None) -> None:
    """Install the process-wide sanitizer (``None`` resets to the lazy default)."""
    global _sanitizer
    with _sanitizer_lock:
        _sanitizer = sanitizer


def get_field_sanitizer() -> HtmlSanitizer:
    global _sanitizer
    if _sanitizer is None:
        with _sanitizer_lock:
            if _sanitizer is None:
                _sanitizer = build_html_sanitizer(Settings())
    return _sanitizer


def _context(owner: type, method: str, field_name: str) -> SanitizationContext:
    return SanitizationContext(
        model_class_name=type_name(owner),
        controller_class_name=VALIDATION_CONTROLLER,
        controller_method_name=method,
        field_name=field_name,
    )


def _output_key(owner: type[BaseModel], name: str, info: SerializationInfo) -> str:
    if not info.by_alias:
        return name
    field_info = owner.model_fields[name]
    return field_info.serialization_alias or field_info.alias or name


class HtmlSanitizedModel(BaseModel):
    """Base model whose ``SanitizeHTML`` fields are cleaned on the way in and out."""

    @model_validator(mode="after")
    def _sanitize_marked_fields(self) -> HtmlSanitizedModel:
        sanitizer = get_field_sanitizer()
        owner = type(self)
        tracker = DiscardTracker()
        for name in sanitizer.schemas.schema_for(owner).html_fields:
            value = self.__dict__.get(name)
            if not sanitizer.schemas.is_eligible(owner, name, value):
                continue
            # Bypasses validate_assignment, which would re-enter this validator
            self.__dict__[name] = sanitizer.sanitize_text(value, _context(owner, VALIDATION_METHOD, name), tracker)
        sanitizer.flush(tracker)
        return self

    @model_serializer(mode="wrap")
    def _serialize_marked_fields(self, handler: SerializerFunctionWrapHandler, info: SerializationInfo):
        data = handler(self)
        if not isinstance(data, dict):
            return data

        sanitizer = get_field_sanitizer()
        owner = type(self)
        tracker = DiscardTracker()
        for name in sanitizer.schemas.schema_for(owner).html_fields:
            key = _output_key(owner, name, info)
            value: Any = data.get(key)
            if not sanitizer.schemas.is_eligible(owner, name, value):
                continue
            data[key] = sanitizer.sanitize_text(value, _context(owner, SERIALIZATION_METHOD, name), tracker)
        sanitizer.flush(tracker)
        return data
