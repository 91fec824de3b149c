"""Deployment orchestrator: the public deploy_module/deploy_apps/deploy_release API."""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import structlog
from prometheus_client import Counter
from structlog.contextvars import bound_contextvars

from pixell_loader.core.config import Settings
from pixell_loader.core.exceptions import DeploymentError
from pixell_loader.core.models import ActivationOutcome, Artifact, ArtifactKind, Target
from pixell_loader.deploy.activator import ModuleActivator
from pixell_loader.deploy.applications import ApplicationActivator
from pixell_loader.deploy.expander import ArchiveExpander
from pixell_loader.deploy.planner import ReleasePlanner
from pixell_loader.deploy.transfer import ArtifactTransfer
from pixell_loader.runtime import get_default_runtime
from pixell_loader.runtime.base import RemoteRuntime
from pixell_loader.utils.files import package_root

logger = structlog.get_logger()

DEPLOYMENT_COUNT = Counter(
    "pixell_loader_deployments_total",
    "Deployments by operation and outcome",
    ["operation", "outcome", "stage"],
)

PathArg = Union[str, Path]


class DeploymentOrchestrator:
    """Sequences transfer, expansion, planning and activation.

    Every operation is a linear pipeline: the first stage error ends it
    and is returned inside the outcome unchanged. Nothing is retried and
    nothing is rolled back.
    """

    def __init__(self, runtime: Optional[RemoteRuntime] = None, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.runtime = runtime if runtime is not None else get_default_runtime(self.settings)
        self.transfer = ArtifactTransfer(self.runtime)
        self.module_activator = ModuleActivator(self.runtime)
        self.expander = ArchiveExpander(self.runtime)
        self.planner = ReleasePlanner(self.runtime)
        self.app_activator = ApplicationActivator(self.runtime)

    def deploy_module(self, path: PathArg, target: Optional[Target] = None) -> ActivationOutcome:
        """Load a single module image into target (default: this process)."""
        target = target or Target.local()
        artifact = Artifact(path=str(path), kind=ArtifactKind.SINGLE_MODULE)

        def pipeline() -> ActivationOutcome:
            dst = self.transfer.copy(target, artifact.path)
            module = self.module_activator.activate(target, dst)
            return ActivationOutcome(target=str(target), modules=[module])

        return self._run("deploy_module", artifact, target, pipeline)

    def deploy_apps(
        self,
        path: PathArg,
        applications: Optional[Sequence[str]],
        target: Optional[Target] = None,
    ) -> ActivationOutcome:
        """Deploy a release package and start the given applications.

        applications=None starts every application the manifest declares.
        """
        target = target or Target.local()
        artifact = Artifact(path=str(path), kind=ArtifactKind.PACKAGE)

        def pipeline() -> ActivationOutcome:
            dst = self.transfer.copy(target, artifact.path)
            self.expander.expand(target, dst)
            root = package_root(dst)
            manifest = self.planner.load_manifest(target, root)
            plan = self.planner.plan(manifest, applications, target=target)
            started = self.app_activator.activate(target, root, manifest, plan)
            return ActivationOutcome(target=str(target), applications=started)

        operation = "deploy_apps" if applications is not None else "deploy_release"
        return self._run(operation, artifact, target, pipeline)

    def deploy_release(self, path: PathArg, target: Optional[Target] = None) -> ActivationOutcome:
        """Deploy a release package and start all of its applications."""
        return self.deploy_apps(path, None, target)

    def _run(
        self,
        operation: str,
        artifact: Artifact,
        target: Target,
        pipeline: Callable[[], ActivationOutcome],
    ) -> ActivationOutcome:
        with bound_contextvars(deployment_id=str(uuid.uuid4()), target=str(target)):
            logger.info("Deployment started", operation=operation, artifact=artifact.path, kind=artifact.kind.value)
            try:
                outcome = pipeline()
            except DeploymentError as e:
                logger.warning(
                    "Deployment failed",
                    operation=operation,
                    stage=e.stage.value,
                    reason=e.reason,
                    error=str(e),
                )
                DEPLOYMENT_COUNT.labels(operation=operation, outcome="failure", stage=e.stage.value).inc()
                return ActivationOutcome(target=str(target), error=e)

            logger.info(
                "Deployment succeeded",
                operation=operation,
                modules=outcome.modules,
                applications=outcome.applications,
            )
            DEPLOYMENT_COUNT.labels(operation=operation, outcome="success", stage="").inc()
            return outcome


_default_orchestrator: Optional[DeploymentOrchestrator] = None


def get_orchestrator() -> DeploymentOrchestrator:
    global _default_orchestrator
    if _default_orchestrator is None:
        _default_orchestrator = DeploymentOrchestrator()
    return _default_orchestrator


def deploy_module(path: PathArg, target: Optional[Target] = None) -> ActivationOutcome:
    """Load a single module image; see DeploymentOrchestrator.deploy_module."""
    return get_orchestrator().deploy_module(path, target)


def deploy_apps(
    path: PathArg,
    applications: Optional[Sequence[str]],
    target: Optional[Target] = None,
) -> ActivationOutcome:
    """Deploy a package and start some of its applications."""
    return get_orchestrator().deploy_apps(path, applications, target)


def deploy_release(path: PathArg, target: Optional[Target] = None) -> ActivationOutcome:
    """Deploy a package and start all of its applications."""
    return get_orchestrator().deploy_release(path, target)


__all__: List[str] = [
    "DeploymentOrchestrator",
    "deploy_module",
    "deploy_apps",
    "deploy_release",
    "get_orchestrator",
]
