"""Discard tracking for the sanitization audit trail.

``DiscardRecord`` collects what the policy removed while sanitizing one
field.  ``DiscardTracker`` groups records by ``SanitizationContext`` for a
single handler invocation (inbound or outbound side) and flushes them to the
audit sink exactly once.  A tracker is created per invocation and is never
shared between requests.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hotels_api.sanitization.audit import DiscardMessageFormatter, SanitizationAuditSink


@dataclass(frozen=True)
class SanitizationContext:
    """Where a sanitized value came from.  Used only for audit messages."""

    model_class_name: str
    controller_class_name: str
    controller_method_name: str
    field_name: str


@dataclass(frozen=True)
class DiscardSnapshot:
    """Immutable copy of a ``DiscardRecord``, safe to cache and replay."""

    tags: tuple[str, ...] = ()
    attributes: tuple[tuple[str, tuple[str, ...]], ...] = ()

    def __bool__(self) -> bool:
        return bool(self.tags or self.attributes)


EMPTY_SNAPSHOT = DiscardSnapshot()


class DiscardRecord:
    """Ordered set of discarded tags plus tag → discarded attribute names.

    Implements the policy's change-observer protocol.
    """

    def __init__(self) -> None:
        self._tags: dict[str, None] = {}
        self._attributes: dict[str, dict[str, None]] = {}

    # ── Change observer ─────────────────────────────────────────────

    def on_tag_discarded(self, caller: Any, tag_name: str) -> None:
        self.record_tag(tag_name)

    def on_attributes_discarded(self, caller: Any, tag_name: str, *attribute_names: str) -> None:
        self.record_attributes(tag_name, attribute_names)

    # ── Recording ───────────────────────────────────────────────────

    def record_tag(self, tag_name: str) -> None:
        self._tags[tag_name] = None

    def record_attributes(self, tag_name: str, attribute_names: Iterable[str]) -> None:
        names = self._attributes.setdefault(tag_name, {})
        for name in attribute_names:
            names[name] = None

    def merge(self, snapshot: DiscardSnapshot) -> None:
        for tag in snapshot.tags:
            self.record_tag(tag)
        for tag, names in snapshot.attributes:
            self.record_attributes(tag, names)

    # ── Access ──────────────────────────────────────────────────────

    @property
    def tags(self) -> list[str]:
        return list(self._tags)

    @property
    def attributes(self) -> dict[str, list[str]]:
        return {tag: list(names) for tag, names in self._attributes.items()}

    @property
    def is_empty(self) -> bool:
        return not self._tags and not self._attributes

    def snapshot(self) -> DiscardSnapshot:
        if self.is_empty:
            return EMPTY_SNAPSHOT
        return DiscardSnapshot(
            tags=tuple(self._tags),
            attributes=tuple((tag, tuple(names)) for tag, names in self._attributes.items()),
        )

    def clear(self) -> None:
        self._tags = {}
        self._attributes = {}


class DiscardTracker:
    """Call-scoped accumulation of discard records, keyed by context."""

    def __init__(self) -> None:
        self._records: dict[SanitizationContext, DiscardRecord] = {}

    def observer_for(self, context: SanitizationContext) -> DiscardRecord:
        """Return the record for *context*, creating it on first use."""
        record = self._records.get(context)
        if record is None:
            record = self._records[context] = DiscardRecord()
        return record

    def record_tag(self, context: SanitizationContext, tag_name: str) -> None:
        self.observer_for(context).record_tag(tag_name)

    def record_attributes(self, context: SanitizationContext, tag_name: str, attribute_names: Iterable[str]) -> None:
        self.observer_for(context).record_attributes(tag_name, attribute_names)

    def merge(self, context: SanitizationContext, snapshot: DiscardSnapshot) -> None:
        """Replay a cached snapshot; empty snapshots leave no trace."""
        if snapshot:
            self.observer_for(context).merge(snapshot)

    @property
    def is_empty(self) -> bool:
        return all(record.is_empty for record in self._records.values())

    def items(self) -> list[tuple[SanitizationContext, DiscardRecord]]:
        return [(ctx, record) for ctx, record in self._records.items() if not record.is_empty]

    def flush_if_non_empty(
        self,
        formatter: DiscardMessageFormatter,
        sink: SanitizationAuditSink,
    ) -> str | None:
        """Emit one audit message for everything recorded, then clear.

        Returns the emitted message, or ``None`` when nothing was recorded
        (the sink is not touched in that case).
        """
        pending = self.items()
        if not pending:
            self.clear()
            return None

        lines = [formatter.format(ctx, record) for ctx, record in pending]
        message = "\n".join(lines)
        entries = [formatter.entry(ctx, record) for ctx, record in pending]
        self.clear()
        sink.emit(message, entries)
        return message

    def clear(self) -> None:
        self._records = {}
