"""Tests for the allow-list policy and its YAML configuration."""

import pytest

from hotels_api.sanitization.discard import DiscardRecord
from hotels_api.sanitization.policy import DEFAULT_POLICY_CONFIG, PolicyConfig, SanitizationPolicy

SAMPLE = "<script>alert(1)</script><b onclick='x'>ok</b>"


@pytest.fixture
def bold_only():
    return SanitizationPolicy(PolicyConfig.build(tags=["b"]))


class TestSanitize:
    def test_strips_disallowed_tag_and_attribute(self, bold_only):
        assert bold_only.sanitize(SAMPLE) == "alert(1)<b>ok</b>"

    def test_text_without_markup_is_unchanged(self, bold_only):
        record = DiscardRecord()
        raw = "Sea view & quiet rooms"
        assert bold_only.sanitize(raw, record) is raw
        assert record.is_empty

    def test_allowed_markup_survives(self, bold_only):
        assert bold_only.sanitize("<b>bold</b> text") == "<b>bold</b> text"

    def test_idempotent(self):
        policy = SanitizationPolicy()
        raw = '<p class="x" style="color:red">a <a href="javascript:x()" onclick="y">link</a><iframe src="e"></iframe></p>'
        once = policy.sanitize(raw)
        assert policy.sanitize(once) == once

    def test_default_policy_keeps_links(self):
        policy = SanitizationPolicy(DEFAULT_POLICY_CONFIG)
        cleaned = policy.sanitize('<a href="https://example.com" title="t">x</a>')
        assert 'href="https://example.com"' in cleaned
        assert 'title="t"' in cleaned

    def test_wildcard_attributes_apply_to_every_tag(self):
        policy = SanitizationPolicy(PolicyConfig.build(tags=["p"], attributes={"*": ["class"]}))
        assert policy.sanitize('<p class="lead" id="x">t</p>') == '<p class="lead">t</p>'


class TestDiscardReporting:
    def test_reports_tag_and_attribute(self, bold_only):
        record = DiscardRecord()
        bold_only.sanitize(SAMPLE, record, caller="test")
        assert record.tags == ["script"]
        assert record.attributes == {"b": ["onclick"]}

    def test_tags_reported_once_in_order(self, bold_only):
        record = DiscardRecord()
        bold_only.sanitize("<i>a</i><script>b</script><I>c</I>", record)
        assert record.tags == ["i", "script"]

    def test_closing_tags_and_comments_not_reported(self, bold_only):
        record = DiscardRecord()
        bold_only.sanitize("<b>x</b><!-- note -->", record)
        assert record.is_empty

    def test_markup_inside_attribute_value_not_reported(self):
        policy = SanitizationPolicy(PolicyConfig.build(tags=["b"], attributes={"b": ["title"]}))
        record = DiscardRecord()
        policy.sanitize('<b title="<script>">x</b>', record)
        assert record.tags == []
        assert record.attributes == {}

    def test_markup_inside_comment_not_reported(self, bold_only):
        record = DiscardRecord()
        assert bold_only.sanitize("<b>x</b><!-- <iframe> -->", record) == "<b>x</b>"
        assert record.tags == []

    def test_tag_nested_in_stripped_tag_reported(self, bold_only):
        record = DiscardRecord()
        bold_only.sanitize("<div><iframe src='e'></iframe><b>x</b></div>", record)
        assert record.tags == ["div", "iframe"]

    def test_observer_receives_caller(self, bold_only):
        calls = []

        class Observer:
            def on_tag_discarded(self, caller, tag_name):
                calls.append(("tag", caller, tag_name))

            def on_attributes_discarded(self, caller, tag_name, *names):
                calls.append(("attrs", caller, tag_name, names))

        bold_only.sanitize(SAMPLE, Observer(), caller="me")
        assert calls == [("tag", "me", "script"), ("attrs", "me", "b", ("onclick",))]

    def test_deterministic_notifications(self, bold_only):
        first, second = DiscardRecord(), DiscardRecord()
        bold_only.sanitize(SAMPLE, first)
        bold_only.sanitize(SAMPLE, second)
        assert first.snapshot() == second.snapshot()


class TestPolicyConfigFromYaml:
    def test_loads_valid_file(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("tags: [P, b]\nattributes:\n  a: [HREF]\nprotocols: [https]\nstrip_comments: false\n")
        config = PolicyConfig.from_yaml(path)
        assert config.tags == frozenset({"p", "b"})
        assert config.attributes == {"a": frozenset({"href"})}
        assert config.protocols == frozenset({"https"})
        assert config.strip_comments is False

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PolicyConfig.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("tags: [b\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            PolicyConfig.from_yaml(path)

    def test_missing_tags_key_raises(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("attributes: {}\n")
        with pytest.raises(ValueError, match="'tags'"):
            PolicyConfig.from_yaml(path)

    def test_malformed_attributes_raise(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("tags: [a]\nattributes:\n  a: href\n")
        with pytest.raises(ValueError, match="Attributes for 'a'"):
            PolicyConfig.from_yaml(path)

    def test_shipped_policy_file_loads(self):
        config = PolicyConfig.from_yaml("config/sanitize_policy.yaml")
        assert "p" in config.tags
        assert "script" not in config.tags
