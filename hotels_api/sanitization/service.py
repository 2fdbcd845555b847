"""Policy and cache integration.

``HtmlSanitizer`` is the process-wide entry point shared by both integration
strategies.  It owns the policy, the result cache, the schema registry, and
the audit formatter and sink.  It keeps no per-call state: callers pass the
``SanitizationContext`` and their own ``DiscardTracker``.

Cache entries store the sanitized text together with a snapshot of the
discards reported while computing it, so a cache hit records the same audit
trail as the first miss.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NamedTuple

from hotels_api.core.config import DEFAULT_WARNING_MESSAGE, Settings
from hotels_api.sanitization.audit import DiscardMessageFormatter, SanitizationAuditSink
from hotels_api.sanitization.cache import ResultCache
from hotels_api.sanitization.discard import DiscardRecord, DiscardSnapshot, DiscardTracker, SanitizationContext
from hotels_api.sanitization.policy import DEFAULT_POLICY_CONFIG, PolicyConfig, SanitizationPolicy
from hotels_api.sanitization.schema import SchemaRegistry

logger = logging.getLogger(__name__)


class SanitizedText(NamedTuple):
    text: str
    discards: DiscardSnapshot


class HtmlSanitizer:
    """Lookup-or-sanitize with discard accounting.

    Args:
        policy:      Allow-list policy.
        formatter:   Audit message formatter.
        sink:        Audit sink receiving flushed messages.
        cache:       Result cache (raw text → ``SanitizedText``).
        schemas:     Schema registry for payload types.
        second_pass: Re-apply the policy to a freshly computed value so the
                     cached text is a fixed point of the policy.
    """

    def __init__(
        self,
        policy: SanitizationPolicy | None = None,
        formatter: DiscardMessageFormatter | None = None,
        sink: SanitizationAuditSink | None = None,
        cache: ResultCache[str, SanitizedText] | None = None,
        schemas: SchemaRegistry | None = None,
        second_pass: bool = True,
    ) -> None:
        self.policy = policy or SanitizationPolicy()
        self.formatter = formatter or DiscardMessageFormatter(DEFAULT_WARNING_MESSAGE)
        self.sink = sink or SanitizationAuditSink()
        self.cache: ResultCache[str, SanitizedText] = cache if cache is not None else ResultCache()
        self.schemas = schemas or SchemaRegistry()
        self.second_pass = second_pass

    # ── Core operation ──────────────────────────────────────────────

    def sanitize_text(self, raw: str, context: SanitizationContext, tracker: DiscardTracker) -> str:
        """Return the sanitized form of *raw*, recording discards under *context*."""
        result = self.cache.get_or_compute(raw, lambda: self._compute(raw))
        tracker.merge(context, result.discards)
        return result.text

    def flush(self, tracker: DiscardTracker) -> str | None:
        """Flush *tracker* to the audit sink (no-op when empty)."""
        return tracker.flush_if_non_empty(self.formatter, self.sink)

    def _compute(self, raw: str) -> SanitizedText:
        record = DiscardRecord()
        text = self.policy.sanitize(raw, record, type(self))
        if self.second_pass and text != raw:
            # Discards of the second pass belong to the same value
            text = self.policy.sanitize(text, record, type(self))
        return SanitizedText(text, record.snapshot())


def build_html_sanitizer(settings: Settings) -> HtmlSanitizer:
    """Assemble an ``HtmlSanitizer`` from settings.

    The allow-list comes from ``SANITIZE_POLICY_PATH`` when that file exists,
    otherwise the built-in rich-text allow-list is used.
    """
    policy_path = Path(settings.SANITIZE_POLICY_PATH) if settings.SANITIZE_POLICY_PATH else None
    if policy_path is not None and policy_path.exists():
        config = PolicyConfig.from_yaml(policy_path)
        logger.info("Loaded sanitize policy from %s (%d tags)", policy_path, len(config.tags))
    else:
        config = DEFAULT_POLICY_CONFIG
        logger.info("Using built-in sanitize policy (%d tags)", len(config.tags))

    return HtmlSanitizer(
        policy=SanitizationPolicy(config),
        formatter=DiscardMessageFormatter(settings.SANITIZE_WARNING_MESSAGE),
        sink=SanitizationAuditSink(jsonl_path=settings.AUDIT_LOG_PATH),
        cache=ResultCache(max_entries=settings.SANITIZE_CACHE_MAX_ENTRIES),
        second_pass=settings.SANITIZE_SECOND_PASS,
    )
