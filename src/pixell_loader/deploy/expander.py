"""Unpack a transferred package on the target."""

from __future__ import annotations

import structlog

from pixell_loader.core.exceptions import ExpansionError, RemoteCallError
from pixell_loader.core.models import Target
from pixell_loader.runtime.base import Operation, RemoteRuntime

logger = structlog.get_logger()


class ArchiveExpander:
    """Expands packages in place, next to the staged archive.

    The package root is `package_root(path)`; expanding the same archive
    twice overwrites the same tree.
    """

    def __init__(self, runtime: RemoteRuntime):
        self.runtime = runtime

    def expand(self, target: Target, path: str) -> None:
        try:
            self.runtime.invoke(target, Operation.EXPAND, {"path": path})
        except RemoteCallError as e:
            raise ExpansionError(
                f"Cannot expand {path} on {target}: {e}",
                target=str(target),
                cause=e,
            ) from e
        logger.info("Package expanded", path=path, target=str(target))
