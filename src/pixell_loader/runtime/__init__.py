"""Runtime call implementations: in-process and HTTP target agents."""

from typing import Optional

from pixell_loader.core.config import Settings
from pixell_loader.runtime.base import Operation, RemoteRuntime, RoutingRuntime
from pixell_loader.runtime.http import HttpRuntime
from pixell_loader.runtime.local import LocalRuntime, get_local_runtime


def get_default_runtime(settings: Optional[Settings] = None) -> RoutingRuntime:
    """Local targets run in-process, targets with a URL go over HTTP."""
    settings = settings or Settings()
    return RoutingRuntime(
        local=get_local_runtime(settings),
        remote=HttpRuntime(
            timeout_seconds=settings.call_timeout_seconds,
            secret=settings.agent_secret,
        ),
    )


__all__ = [
    "Operation",
    "RemoteRuntime",
    "RoutingRuntime",
    "HttpRuntime",
    "LocalRuntime",
    "get_local_runtime",
    "get_default_runtime",
]
