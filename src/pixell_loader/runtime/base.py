"""Remote runtime call contract."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Protocol

from pixell_loader.core.models import Target


class Operation(str, Enum):
    """Operations a target runtime understands."""

    WRITE_FILE = "write_file"
    EXPAND = "expand"
    READ_MANIFEST = "read_manifest"
    LIST_CODE_PATHS = "list_code_paths"
    ADD_PATHS = "add_paths"
    LOAD_CONFIG = "load_config"
    LOAD_MODULE = "load_module"
    START_APP = "start_app"


class RemoteRuntime(Protocol):
    """Synchronous call primitive into a target's runtime.

    `invoke` blocks until the target replies. A rejected call raises
    RemoteCallError; an unreachable target raises TargetUnreachableError.
    """

    def invoke(self, target: Target, operation: Operation, args: Dict[str, Any]) -> Any:
        ...


class RoutingRuntime:
    """Send local targets to the in-process runtime and the rest over HTTP."""

    def __init__(self, local: RemoteRuntime, remote: RemoteRuntime):
        self.local = local
        self.remote = remote

    def invoke(self, target: Target, operation: Operation, args: Dict[str, Any]) -> Any:
        runtime = self.local if target.is_local else self.remote
        return runtime.invoke(target, operation, args)
