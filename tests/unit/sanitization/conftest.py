"""Shared fixtures for the sanitization tests."""

import pytest

from hotels_api.sanitization.audit import DiscardMessageFormatter, SanitizationAuditSink
from hotels_api.sanitization.cache import ResultCache
from hotels_api.sanitization.policy import PolicyConfig, SanitizationPolicy
from hotels_api.sanitization.schema import SchemaRegistry
from hotels_api.sanitization.service import HtmlSanitizer

TEMPLATE = "{modelClassName}.{fieldName} via {controllerClassName}.{controllerMethodName}: {rejectedTags} {rejectedAttributes}"


class RecordingSink(SanitizationAuditSink):
    """Audit sink that keeps emitted messages in memory."""

    def __init__(self) -> None:
        super().__init__()
        self.messages: list[str] = []
        self.entries: list = []

    def emit(self, message, entries=()) -> None:
        self.messages.append(message)
        self.entries.extend(entries)


@pytest.fixture
def formatter():
    return DiscardMessageFormatter(TEMPLATE)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def sanitizer(sink, formatter):
    """Sanitizer allowing only ``<b>`` and ``<p>`` (no attributes)."""
    return HtmlSanitizer(
        policy=SanitizationPolicy(PolicyConfig.build(tags=["b", "p"])),
        formatter=formatter,
        sink=sink,
        cache=ResultCache(),
        schemas=SchemaRegistry(),
    )
