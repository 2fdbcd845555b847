"""Call sites and the scope filter.

The payload-walking hooks only run for handlers whose module path matches
the configured scope pattern, e.g. externally facing ``...api...`` modules
but not internal ones.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CallSite:
    """The handler that consumes or produces a payload."""

    module: str
    controller_class_name: str
    controller_method_name: str

    @classmethod
    def from_callable(cls, endpoint: Callable[..., Any]) -> CallSite:
        """Describe a function, bound method or method-like callable.

        ``HotelsController.get_hotel`` in ``hotels_api.api.v1.hotels`` gives
        controller ``hotels_api.api.v1.hotels.HotelsController`` and method
        ``get_hotel``; a module-level function uses the module as controller.
        """
        func = getattr(endpoint, "__func__", endpoint)
        module = getattr(func, "__module__", None) or type(endpoint).__module__
        qualname = getattr(func, "__qualname__", None) or type(endpoint).__qualname__
        qualname = qualname.replace(".<locals>", "")
        owner, _, method = qualname.rpartition(".")
        controller = f"{module}.{owner}" if owner else module
        return cls(module=module, controller_class_name=controller, controller_method_name=method)


class ScopeFilter:
    """Decides from the call site whether the pipeline runs at all."""

    def __init__(self, pattern: str) -> None:
        self.pattern = re.compile(pattern)

    def in_scope(self, call_site: CallSite) -> bool:
        return self.pattern.fullmatch(call_site.module) is not None
