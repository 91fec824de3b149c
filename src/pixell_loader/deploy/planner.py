"""Resolve which applications of a release to start, and in what order."""

from __future__ import annotations

from typing import Optional, Sequence

import structlog
from pydantic import ValidationError

from pixell_loader.core.exceptions import ExpansionError, PlanningError, RemoteCallError
from pixell_loader.core.models import LoadPlan, Manifest, Target
from pixell_loader.runtime.base import Operation, RemoteRuntime

logger = structlog.get_logger()


class ReleasePlanner:
    """Reads release manifests and turns application requests into load plans."""

    def __init__(self, runtime: RemoteRuntime):
        self.runtime = runtime

    def load_manifest(self, target: Target, root: str) -> Manifest:
        """Read and validate the manifest of a package expanded at root.

        Raises:
            ExpansionError: manifest missing or not a valid release manifest
        """
        try:
            data = self.runtime.invoke(target, Operation.READ_MANIFEST, {"root": root})
        except RemoteCallError as e:
            raise ExpansionError(
                f"Cannot read release manifest under {root} on {target}: {e}",
                target=str(target),
                cause=e,
            ) from e

        try:
            manifest = Manifest(**data)
        except (ValidationError, TypeError) as e:
            raise ExpansionError(
                f"Invalid release manifest under {root}: {e}",
                target=str(target),
                cause=e,
                reason="manifest_invalid",
            ) from e

        logger.info(
            "Manifest loaded",
            release=manifest.name,
            version=manifest.version,
            applications=manifest.application_names,
        )
        return manifest

    def plan(
        self,
        manifest: Manifest,
        applications: Optional[Sequence[str]] = None,
        *,
        target: Optional[Target] = None,
    ) -> LoadPlan:
        """Build the load plan.

        No applications means the full release in declaration order.
        Otherwise the caller's order is kept and every name is checked
        against the manifest before anything is started.

        Raises:
            PlanningError: some requested names are not in the manifest
        """
        if applications is None:
            return LoadPlan(tuple(manifest.application_names))

        if isinstance(applications, str):
            applications = [applications]

        requested = list(dict.fromkeys(applications))
        known = set(manifest.application_names)
        missing = [name for name in requested if name not in known]
        if missing:
            raise PlanningError(
                f"Applications not found in release {manifest.name}: {', '.join(missing)}",
                target=str(target) if target is not None else "",
                missing=missing,
            )
        return LoadPlan(tuple(requested))
