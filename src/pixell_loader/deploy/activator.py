"""Load a single transferred module image into the target's code table."""

from __future__ import annotations

import structlog

from pixell_loader.core.exceptions import ActivationError, RemoteCallError
from pixell_loader.core.models import Target
from pixell_loader.runtime.base import Operation, RemoteRuntime
from pixell_loader.utils.files import MODULE_SUFFIXES

logger = structlog.get_logger()


def strip_module_suffix(path: str) -> str:
    """The load_module operation takes the image path without its suffix."""
    for suffix in MODULE_SUFFIXES:
        if path.endswith(suffix):
            return path[: -len(suffix)]
    return path


class ModuleActivator:
    def __init__(self, runtime: RemoteRuntime):
        self.runtime = runtime

    def activate(self, target: Target, path: str) -> str:
        """Load the module image at path on target and return its name.

        Raises:
            ActivationError: the target rejected the load or was unreachable
        """
        file = strip_module_suffix(path)
        try:
            module = self.runtime.invoke(target, Operation.LOAD_MODULE, {"path": file})
        except RemoteCallError as e:
            raise ActivationError(
                f"Cannot load the file from remote node {target}. Reason: {e.reason}",
                target=str(target),
                cause=e,
            ) from e

        logger.info("Module activated", module=module, target=str(target))
        return module
