"""Declarative HTML sanitization for API payloads.

Mark untrusted string fields with ``SanitizeHTML`` and plug
``PayloadSanitizationHooks.route_class`` into a router (payload walking), or
derive payload models from ``HtmlSanitizedModel`` (field level).
"""

from hotels_api.sanitization.discard import DiscardTracker, SanitizationContext
from hotels_api.sanitization.fields import HtmlSanitizedModel, configure_field_sanitizer, get_field_sanitizer
from hotels_api.sanitization.hooks import PayloadSanitizationHooks
from hotels_api.sanitization.marker import SanitizedHtml, SanitizeHTML
from hotels_api.sanitization.policy import DEFAULT_POLICY_CONFIG, PolicyConfig, SanitizationPolicy
from hotels_api.sanitization.scope import CallSite, ScopeFilter
from hotels_api.sanitization.service import HtmlSanitizer, build_html_sanitizer

__all__ = [
    "DEFAULT_POLICY_CONFIG",
    "CallSite",
    "DiscardTracker",
    "HtmlSanitizedModel",
    "HtmlSanitizer",
    "PayloadSanitizationHooks",
    "PolicyConfig",
    "SanitizationContext",
    "SanitizationPolicy",
    "SanitizeHTML",
    "SanitizedHtml",
    "ScopeFilter",
    "build_html_sanitizer",
    "configure_field_sanitizer",
    "get_field_sanitizer",
]
