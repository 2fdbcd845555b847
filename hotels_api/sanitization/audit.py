"""Audit trail for discarded HTML.

Provides ``DiscardMessageFormatter`` (template substitution for the
warning message), ``DiscardAuditEntry`` (JSONL record), and
``SanitizationAuditSink`` which logs the message and appends JSONL entries
in the background.  Sink failures never reach the request: they are logged
at debug level and dropped.

Template placeholders, substituted verbatim::

    {fieldName} {modelClassName} {controllerClassName} {controllerMethodName}
    {rejectedTags}        -> "[script, iframe]"
    {rejectedAttributes}  -> "{a=[onclick], img=[onerror, style]}"
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import aiofiles

from hotels_api.core.logging import AUDIT_LOGGER_NAME
from hotels_api.sanitization.discard import DiscardRecord, SanitizationContext

_sink_logger = logging.getLogger("hotels_api.audit")


def render_tags(tags: Sequence[str]) -> str:
    if not tags:
        return ""
    return "[" + ", ".join(tags) + "]"


def render_attributes(attributes: Mapping[str, Sequence[str]]) -> str:
    if not attributes:
        return ""
    return "{" + ", ".join(f"{tag}=[{', '.join(names)}]" for tag, names in attributes.items()) + "}"


# ── DiscardAuditEntry ───────────────────────────────────────────────────


@dataclass
class DiscardAuditEntry:
    """One sanitized field's discards, as written to the JSONL trail."""

    timestamp: str = ""
    field_name: str = ""
    model_class_name: str = ""
    controller_class_name: str = ""
    controller_method_name: str = ""
    rejected_tags: list[str] = field(default_factory=list)
    rejected_attributes: dict[str, list[str]] = field(default_factory=dict)

    def to_json(self) -> str:
        """Serialize to a single-line JSON string (JSONL-safe)."""
        return json.dumps(asdict(self), separators=(",", ":"), default=str)


# ── Formatter ───────────────────────────────────────────────────────────


class DiscardMessageFormatter:
    """Renders discard records through the configured message template."""

    def __init__(self, template: str) -> None:
        self.template = template

    def format(self, context: SanitizationContext, record: DiscardRecord) -> str:
        return (
            self.template.replace("{fieldName}", context.field_name)
            .replace("{modelClassName}", context.model_class_name)
            .replace("{controllerClassName}", context.controller_class_name)
            .replace("{controllerMethodName}", context.controller_method_name)
            .replace("{rejectedTags}", render_tags(record.tags))
            .replace("{rejectedAttributes}", render_attributes(record.attributes))
        )

    def entry(self, context: SanitizationContext, record: DiscardRecord) -> DiscardAuditEntry:
        return DiscardAuditEntry(
            timestamp=datetime.now(UTC).isoformat(),
            field_name=context.field_name,
            model_class_name=context.model_class_name,
            controller_class_name=context.controller_class_name,
            controller_method_name=context.controller_method_name,
            rejected_tags=record.tags,
            rejected_attributes=record.attributes,
        )


# ── Sink ────────────────────────────────────────────────────────────────


class SanitizationAuditSink:
    """Fire-and-forget destination for flushed discard messages.

    Args:
        jsonl_path: Optional JSONL file for structured entries.  Appends
                    run as background tasks on the running (or bound) event
                    loop; with no loop available the JSONL write is skipped.
        logger:     Logger receiving the formatted warning.
    """

    def __init__(self, jsonl_path: str = "", logger: logging.Logger | None = None) -> None:
        self.jsonl_path = jsonl_path
        self.logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: set[asyncio.Future | concurrent.futures.Future] = set()

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Event loop used for JSONL writes issued from worker threads."""
        self._loop = loop

    def emit(self, message: str, entries: Sequence[DiscardAuditEntry] = ()) -> None:
        try:
            self.logger.warning(message)
            if self.jsonl_path and entries:
                self._schedule_jsonl(list(entries))
        except Exception:
            _sink_logger.debug("Sanitization audit sink failed, message dropped", exc_info=True)

    async def drain(self) -> None:
        """Wait for pending JSONL writes (used at shutdown and in tests)."""
        futures = [f if isinstance(f, asyncio.Future) else asyncio.wrap_future(f) for f in list(self._pending)]
        if futures:
            await asyncio.gather(*futures, return_exceptions=True)

    def _schedule_jsonl(self, entries: list[DiscardAuditEntry]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self._append(entries))
            self._track(task)
        elif self._loop is not None and self._loop.is_running():
            future = asyncio.run_coroutine_threadsafe(self._append(entries), self._loop)
            self._track(future)
        else:
            _sink_logger.debug("No event loop for audit JSONL write, %d entries dropped", len(entries))

    def _track(self, future: asyncio.Future | concurrent.futures.Future) -> None:
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)

    async def _append(self, entries: list[DiscardAuditEntry]) -> None:
        try:
            path = Path(self.jsonl_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "a") as f:
                await f.write("".join(entry.to_json() + "\n" for entry in entries))
        except Exception:
            _sink_logger.debug("Audit JSONL write to %s failed", self.jsonl_path, exc_info=True)
