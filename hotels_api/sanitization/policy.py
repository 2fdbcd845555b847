"""Allow-list HTML sanitization policy.

Wraps ``bleach`` with a configurable allow-list and reports everything it
removes to an optional change observer:

* ``on_tag_discarded(caller, tag)`` once per distinct removed tag, in order
  of first appearance;
* ``on_attributes_discarded(caller, tag, *names)`` once per surviving tag
  that lost attributes.

Text without ``<`` is returned untouched, so clean values never change and
never produce discard events.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import bleach
import yaml
from bleach import html5lib_shim

# "</x>" closes an element; only openings count as removed tags
_OPENING_TAG_TYPES = html5lib_shim.TAG_TOKEN_TYPES - {html5lib_shim.TAG_TOKEN_TYPE_END}

_DEFAULT_PROTOCOLS = frozenset({"http", "https", "mailto"})


class ChangeObserver(Protocol):
    """Receives discard notifications from ``SanitizationPolicy.sanitize``."""

    def on_tag_discarded(self, caller: Any, tag_name: str) -> None: ...

    def on_attributes_discarded(self, caller: Any, tag_name: str, *attribute_names: str) -> None: ...


# ── Configuration ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class PolicyConfig:
    """Allow-list for the sanitization policy.

    Attributes:
        tags:           Element names kept in the output.
        attributes:     Tag name → allowed attribute names.  The ``"*"`` key
                        applies to every allowed tag.
        protocols:      URI schemes allowed in ``href``/``src`` style values.
        strip_comments: Drop HTML comments.
    """

    tags: frozenset[str]
    attributes: Mapping[str, frozenset[str]] = field(default_factory=dict)
    protocols: frozenset[str] = _DEFAULT_PROTOCOLS
    strip_comments: bool = True

    def allows_attribute(self, tag: str, name: str) -> bool:
        return name in self.attributes.get(tag, ()) or name in self.attributes.get("*", ())

    @classmethod
    def build(
        cls,
        tags: Iterable[str],
        attributes: Mapping[str, Iterable[str]] | None = None,
        protocols: Iterable[str] | None = None,
        strip_comments: bool = True,
    ) -> PolicyConfig:
        """Normalize plain iterables into an immutable config."""
        attrs = {tag.lower(): frozenset(a.lower() for a in names) for tag, names in (attributes or {}).items()}
        return cls(
            tags=frozenset(t.lower() for t in tags),
            attributes=attrs,
            protocols=frozenset(protocols) if protocols is not None else _DEFAULT_PROTOCOLS,
            strip_comments=strip_comments,
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> PolicyConfig:
        """Load an allow-list from a YAML file.

        Expected shape::

            tags: [p, b, a]
            attributes:
              a: [href, title]
            protocols: [http, https]
            strip_comments: true

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the YAML is invalid or malformed.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Sanitize policy not found: {path}")

        try:
            data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

        if not isinstance(data, dict) or "tags" not in data:
            raise ValueError(f"YAML must contain a top-level 'tags' key in {path}")

        tags = data["tags"] or []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValueError(f"'tags' must be a list of tag names in {path}")

        attributes = data.get("attributes") or {}
        if not isinstance(attributes, dict):
            raise ValueError(f"'attributes' must map tag names to attribute lists in {path}")
        for tag, names in attributes.items():
            if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
                raise ValueError(f"Attributes for '{tag}' must be a list of names in {path}")

        protocols = data.get("protocols")
        if protocols is not None and not isinstance(protocols, list):
            raise ValueError(f"'protocols' must be a list in {path}")

        return cls.build(
            tags=tags,
            attributes=attributes,
            protocols=protocols,
            strip_comments=bool(data.get("strip_comments", True)),
        )


# Rich-text editor output: formatting, lists, tables, links and images
DEFAULT_POLICY_CONFIG = PolicyConfig.build(
    tags=[
        "a", "b", "blockquote", "br", "caption", "code", "div", "em",
        "h1", "h2", "h3", "h4", "h5", "h6", "hr", "i", "img", "li", "ol",
        "p", "pre", "s", "span", "strong", "sub", "sup", "table", "tbody",
        "td", "tfoot", "th", "thead", "tr", "u", "ul",
    ],
    attributes={
        "a": ["href", "title", "target", "rel"],
        "img": ["src", "alt", "title", "width", "height"],
        "td": ["colspan", "rowspan"],
        "th": ["colspan", "rowspan", "scope"],
        "*": ["class"],
    },
    protocols=["http", "https", "mailto"],
)


# ── bleach extension ────────────────────────────────────────────────────


class _DiscardRecordingTokenizer(html5lib_shim.BleachHTMLTokenizer):
    """Notes each opening tag that the allow-list turns into empty text.

    bleach drops disallowed tags in the tokenizer, before the sanitizer
    filter ever sees them, so this is the only place removals are visible.
    Markup inside attribute values, comments and raw text never reaches
    here as a tag token.
    """

    def emitCurrentToken(self):
        token = self.currentToken
        allowed = self.parser.tags
        if allowed is not None and token["type"] in _OPENING_TAG_TYPES:
            name = token["name"].lower()
            if name not in allowed:
                self.parser.discarded_tags.setdefault(name, None)
        super().emitCurrentToken()


class _DiscardRecordingParser(html5lib_shim.BleachHTMLParser):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.discarded_tags: dict[str, None] = {}

    def _parse(self, stream, innerHTML=False, container="div", scripting=True, **kwargs):
        # Same flow as BleachHTMLParser._parse with the recording tokenizer
        self.innerHTMLMode = innerHTML
        self.container = container
        self.scripting = scripting
        self.tokenizer = _DiscardRecordingTokenizer(
            stream=stream, consume_entities=self.consume_entities, parser=self, **kwargs
        )
        self.reset()

        try:
            self.mainLoop()
        except html5lib_shim.ReparseException:
            self.reset()
            self.mainLoop()


class _DiscardReportingCleaner(bleach.Cleaner):
    """``bleach.Cleaner`` that remembers which tags it stripped."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.parser = _DiscardRecordingParser(
            tags=self.tags,
            strip=self.strip,
            consume_entities=False,
            namespaceHTMLElements=False,
        )

    @property
    def discarded_tags(self) -> list[str]:
        return list(self.parser.discarded_tags)


# ── Policy ──────────────────────────────────────────────────────────────


class SanitizationPolicy:
    """Deterministic allow-list cleaner.

    A fresh ``bleach.Cleaner`` is built per call because cleaners keep
    parser state and are not safe to share between threads.
    """

    def __init__(self, config: PolicyConfig = DEFAULT_POLICY_CONFIG) -> None:
        self.config = config

    def sanitize(self, raw: str, observer: ChangeObserver | None = None, caller: Any = None) -> str:
        """Return *raw* reduced to allow-listed tags and attributes."""
        if "<" not in raw:
            return raw

        rejected_attrs: dict[str, dict[str, None]] = {}
        cleaner = _DiscardReportingCleaner(
            tags=self.config.tags,
            attributes=self._attribute_filter(rejected_attrs),
            protocols=self.config.protocols,
            strip=True,
            strip_comments=self.config.strip_comments,
        )
        cleaned = cleaner.clean(raw)

        if observer is not None:
            for tag in cleaner.discarded_tags:
                observer.on_tag_discarded(caller, tag)
            for tag, names in rejected_attrs.items():
                observer.on_attributes_discarded(caller, tag, *names)
        return cleaned

    def _attribute_filter(self, rejected: dict[str, dict[str, None]]) -> Callable[[str, str, str], bool]:
        config = self.config

        def check(tag: str, name: str, value: str) -> bool:
            if config.allows_attribute(tag, name):
                return True
            rejected.setdefault(tag, {})[name] = None
            return False

        return check
