"""Tests for the field-level strategy (HtmlSanitizedModel)."""

import json
from typing import Annotated

import pytest
from pydantic import BaseModel, ConfigDict, Field

from hotels_api.sanitization.discard import DiscardTracker
from hotels_api.sanitization.fields import HtmlSanitizedModel, configure_field_sanitizer, get_field_sanitizer
from hotels_api.sanitization.marker import SanitizeHTML, SanitizedHtml
from hotels_api.sanitization.scope import CallSite
from hotels_api.sanitization.walker import ObjectGraphWalker

SAMPLE = "<script>alert(1)</script><b onclick='x'>ok</b>"


class Comment(HtmlSanitizedModel):
    body: SanitizedHtml = ""
    author: str = ""


class Thread(HtmlSanitizedModel):
    title: Annotated[str | None, SanitizeHTML(), Field(alias="headline")] = None
    comments: list[Comment] = []


class Editable(HtmlSanitizedModel):
    model_config = ConfigDict(validate_assignment=True)
    body: SanitizedHtml = ""


class PlainComment(BaseModel):
    body: SanitizedHtml = ""
    author: str = ""


@pytest.fixture(autouse=True)
def field_sanitizer(sanitizer):
    configure_field_sanitizer(sanitizer)
    yield sanitizer
    configure_field_sanitizer(None)


class TestDeserialization:
    def test_marked_field_sanitized_on_validate(self, sink):
        comment = Comment.model_validate({"body": SAMPLE, "author": "<i>bob</i>"})

        assert comment.body == "alert(1)<b>ok</b>"
        assert comment.author == "<i>bob</i>"
        assert len(sink.messages) == 1
        assert "HtmlSanitizedModel.validate" in sink.messages[0]
        assert "[script]" in sink.messages[0]

    def test_clean_input_is_silent(self, sink, sanitizer):
        Comment(body="just text")
        assert sink.messages == []
        assert len(sanitizer.cache) == 0

    def test_nested_models_sanitize_themselves(self):
        thread = Thread.model_validate({"headline": "<i>t</i>", "comments": [{"body": "<i>c</i>"}]})
        assert thread.title == "t"
        assert thread.comments[0].body == "c"

    def test_assignment_with_validate_assignment(self):
        item = Editable(body="<b>a</b>")
        item.body = "<script>x</script>"
        assert item.body == "x"


class TestSerialization:
    def test_dirty_instance_sanitized_on_dump(self, sink):
        comment = Comment.model_construct(body="<i>raw</i>", author="a")

        assert comment.model_dump() == {"body": "raw", "author": "a"}
        assert comment.body == "<i>raw</i>"
        assert "HtmlSanitizedModel.serialize" in sink.messages[-1]

    def test_json_dump(self):
        comment = Comment.model_construct(body="<script>x</script>", author="a")
        assert json.loads(comment.model_dump_json())["body"] == "x"

    def test_alias_keys(self):
        thread = Thread(headline="t0")
        thread.__dict__["title"] = "<i>t</i>"
        assert thread.model_dump(by_alias=True)["headline"] == "t"
        assert thread.model_dump()["title"] == "t"


class TestStrategyEquivalence:
    @pytest.mark.parametrize(
        "raw",
        [SAMPLE, "<p>para <i>it</i></p>", "<img src=x onerror=alert(1)>", "no markup", ""],
    )
    def test_same_text_as_payload_walking(self, raw, sanitizer):
        walked = PlainComment(body=raw)
        ObjectGraphWalker(sanitizer).walk(
            walked, CallSite("hotels_api.api.x", "hotels_api.api.x.C", "m"), DiscardTracker()
        )
        assert Comment(body=raw).body == walked.body


class TestFieldSanitizerRegistry:
    def test_configured_sanitizer_is_used(self, sanitizer):
        assert get_field_sanitizer() is sanitizer

    def test_default_built_lazily(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOTELS_API_SANITIZE_POLICY_PATH", str(tmp_path / "missing.yaml"))
        configure_field_sanitizer(None)
        first = get_field_sanitizer()
        assert get_field_sanitizer() is first
