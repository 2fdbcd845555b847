"""Tests for HtmlSanitizer (policy + cache + discard replay)."""

import logging
from concurrent.futures import ThreadPoolExecutor

from hotels_api.core.config import Settings
from hotels_api.sanitization.discard import DiscardTracker, SanitizationContext
from hotels_api.sanitization.policy import DEFAULT_POLICY_CONFIG
from hotels_api.sanitization.service import build_html_sanitizer

CTX = SanitizationContext("m.Hotel", "m.HotelsController", "get_hotel", "description")
SAMPLE = "<script>alert(1)</script><b onclick='x'>ok</b>"


class TestSanitizeText:
    def test_example_value(self, sanitizer, sink):
        tracker = DiscardTracker()
        assert sanitizer.sanitize_text(SAMPLE, CTX, tracker) == "alert(1)<b>ok</b>"

        message = sanitizer.flush(tracker)

        assert "[script]" in message
        assert "{b=[onclick]}" in message
        assert sink.messages == [message]
        assert sanitizer.flush(tracker) is None
        assert sink.messages == [message]

    def test_cached_text_is_fixed_point(self, sanitizer):
        raw = "<p><scr<script>ipt>alert(1)</script></p>"
        once = sanitizer.sanitize_text(raw, CTX, DiscardTracker())
        assert sanitizer.policy.sanitize(once) == once
        assert sanitizer.sanitize_text(once, CTX, DiscardTracker()) == once

    def test_clean_value_is_returned_unchanged(self, sanitizer, sink):
        tracker = DiscardTracker()
        assert sanitizer.sanitize_text("<b>fine</b>", CTX, tracker) == "<b>fine</b>"
        assert sanitizer.flush(tracker) is None
        assert sink.messages == []

    def test_concurrent_first_access_computes_once(self, sanitizer):
        calls = []
        original = sanitizer._compute

        def counting(raw):
            calls.append(raw)
            return original(raw)

        sanitizer._compute = counting

        def worker(_):
            tracker = DiscardTracker()
            text = sanitizer.sanitize_text(SAMPLE, CTX, tracker)
            return text, [r.tags for _, r in tracker.items()]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(worker, range(32)))

        assert len(calls) == 1
        assert all(result == ("alert(1)<b>ok</b>", [["script"]]) for result in results)

    def test_second_pass_can_be_disabled(self, sanitizer):
        sanitizer.second_pass = False
        calls = []
        original = sanitizer.policy.sanitize

        def counting(raw, observer=None, caller=None):
            calls.append(raw)
            return original(raw, observer, caller)

        sanitizer.policy.sanitize = counting
        sanitizer.sanitize_text("<i>x</i>", CTX, DiscardTracker())
        assert calls == ["<i>x</i>"]


class TestBuildHtmlSanitizer:
    def test_falls_back_to_builtin_policy(self, tmp_path, caplog):
        settings = Settings(SANITIZE_POLICY_PATH=str(tmp_path / "missing.yaml"))
        with caplog.at_level(logging.INFO):
            sanitizer = build_html_sanitizer(settings)
        assert sanitizer.policy.config is DEFAULT_POLICY_CONFIG
        assert "built-in" in caplog.text

    def test_loads_policy_file(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("tags: [em]\n")
        sanitizer = build_html_sanitizer(Settings(SANITIZE_POLICY_PATH=str(path)))
        assert sanitizer.sanitize_text("<em>a</em><b>b</b>", CTX, DiscardTracker()) == "<em>a</em>b"

    def test_applies_cache_bound_and_template(self, tmp_path):
        settings = Settings(
            SANITIZE_POLICY_PATH=str(tmp_path / "missing.yaml"),
            SANITIZE_CACHE_MAX_ENTRIES=5,
            SANITIZE_WARNING_MESSAGE="{fieldName}: {rejectedTags}",
            SANITIZE_SECOND_PASS=False,
        )
        sanitizer = build_html_sanitizer(settings)
        assert sanitizer.cache.max_entries == 5
        assert sanitizer.formatter.template == "{fieldName}: {rejectedTags}"
        assert sanitizer.second_pass is False
