"""Register code paths, load configuration and start applications."""

from __future__ import annotations

from typing import List

import structlog

from pixell_loader.core.exceptions import (
    ApplicationStartError,
    ConfigLoadError,
    PathRegistrationError,
    RemoteCallError,
)
from pixell_loader.core.models import LoadPlan, Manifest, Target
from pixell_loader.runtime.base import Operation, RemoteRuntime

logger = structlog.get_logger()


class ApplicationActivator:
    """Activates an expanded release on a target.

    Steps run strictly in order: code paths, configuration, then one start
    call per planned application. A failure stops everything after it.
    Applications already started stay started.
    """

    def __init__(self, runtime: RemoteRuntime):
        self.runtime = runtime

    def activate(self, target: Target, root: str, manifest: Manifest, plan: LoadPlan) -> List[str]:
        """Return the names of the started applications, in start order."""
        self._register_paths(target, root)
        self._load_config(target, manifest)

        started: List[str] = []
        for application in plan:
            try:
                self.runtime.invoke(target, Operation.START_APP, {"application": application})
            except RemoteCallError as e:
                raise ApplicationStartError(
                    f"Cannot start application {application} on {target}: {e}",
                    target=str(target),
                    application=application,
                    started=started,
                    cause=e,
                ) from e
            started.append(application)
            logger.info("Application started", application=application, target=str(target))
        return started

    def _register_paths(self, target: Target, root: str) -> None:
        try:
            paths = self.runtime.invoke(target, Operation.LIST_CODE_PATHS, {"root": root})
            if paths:
                self.runtime.invoke(target, Operation.ADD_PATHS, {"paths": list(paths)})
        except RemoteCallError as e:
            raise PathRegistrationError(
                f"Cannot register code paths under {root} on {target}: {e}",
                target=str(target),
                cause=e,
            ) from e
        logger.info("Code paths registered", root=root, count=len(paths or []))

    def _load_config(self, target: Target, manifest: Manifest) -> None:
        try:
            self.runtime.invoke(target, Operation.LOAD_CONFIG, {"config": dict(manifest.config)})
        except RemoteCallError as e:
            raise ConfigLoadError(
                f"Cannot load configuration of {manifest.name} on {target}: {e}",
                target=str(target),
                cause=e,
            ) from e
