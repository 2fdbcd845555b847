"""Payload-walking integration with FastAPI.

``PayloadSanitizationHooks`` runs the walker at two points of a handler
invocation:

* ``before_handler``: over the validated handler arguments;
* ``before_serialization``: over the handler's return value, before
  FastAPI serializes it.

Both check the scope filter first and flush one ``DiscardTracker`` per
side.  ``route_class`` plugs the hooks into every route of a router::

    router = APIRouter(route_class=hooks.route_class)
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Iterable
from typing import Any

from fastapi.routing import APIRoute

from hotels_api.sanitization.discard import DiscardTracker
from hotels_api.sanitization.scope import CallSite, ScopeFilter
from hotels_api.sanitization.service import HtmlSanitizer
from hotels_api.sanitization.walker import ObjectGraphWalker


class PayloadSanitizationHooks:
    """Registered once, shared by every request; holds no per-call state.

    Args:
        sanitizer: Shared policy/cache/audit entry point.
        scope:     Filter deciding which handlers are sanitized.
        enabled:   Master switch; ``False`` turns both hooks into no-ops.
    """

    def __init__(self, sanitizer: HtmlSanitizer, scope: ScopeFilter, enabled: bool = True) -> None:
        self.sanitizer = sanitizer
        self.scope = scope
        self.enabled = enabled
        self.walker = ObjectGraphWalker(sanitizer)
        self.route_class = self._make_route_class()

    def active_for(self, call_site: CallSite) -> bool:
        return self.enabled and self.scope.in_scope(call_site)

    # ── Hooks ───────────────────────────────────────────────────────

    def before_handler(self, arguments: Iterable[Any], call_site: CallSite) -> None:
        """Sanitize handler arguments in place."""
        if not self.active_for(call_site):
            return
        tracker = DiscardTracker()
        for value in arguments:
            if value is not None:
                self.walker.walk(value, call_site, tracker)
        self.sanitizer.flush(tracker)

    def before_serialization(self, body: Any, call_site: CallSite) -> Any:
        """Sanitize a response body in place and return it."""
        if body is None or not self.active_for(call_site):
            return body
        tracker = DiscardTracker()
        self.walker.walk(body, call_site, tracker)
        self.sanitizer.flush(tracker)
        return body

    # ── FastAPI wiring ──────────────────────────────────────────────

    def wrap_endpoint(self, endpoint: Callable[..., Any]) -> Callable[..., Any]:
        """Wrap a sync or async handler with both hooks.

        The wrapper keeps the handler's signature (``functools.wraps``) so
        FastAPI resolves parameters and the response model from it.
        """
        call_site = CallSite.from_callable(endpoint)

        if inspect.iscoroutinefunction(endpoint):

            @functools.wraps(endpoint)
            async def async_endpoint(*args: Any, **kwargs: Any) -> Any:
                self.before_handler([*args, *kwargs.values()], call_site)
                result = await endpoint(*args, **kwargs)
                return self.before_serialization(result, call_site)

            return async_endpoint

        @functools.wraps(endpoint)
        def sync_endpoint(*args: Any, **kwargs: Any) -> Any:
            self.before_handler([*args, *kwargs.values()], call_site)
            result = endpoint(*args, **kwargs)
            return self.before_serialization(result, call_site)

        return sync_endpoint

    def _make_route_class(self) -> type[APIRoute]:
        hooks = self

        class SanitizingRoute(APIRoute):
            def __init__(self, path: str, endpoint: Callable[..., Any], **kwargs: Any) -> None:
                super().__init__(path, hooks.wrap_endpoint(endpoint), **kwargs)

        return SanitizingRoute
