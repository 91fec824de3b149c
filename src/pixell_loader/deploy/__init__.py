"""
Deployment pipeline.

- ArtifactTransfer: stage an artifact on the target
- ArchiveExpander: unpack a staged package
- ModuleActivator: load one module image
- ReleasePlanner: read the manifest and build the load plan
- ApplicationActivator: code paths, configuration, application starts
- DeploymentOrchestrator: deploy_module / deploy_apps / deploy_release
"""

from .activator import ModuleActivator, strip_module_suffix
from .applications import ApplicationActivator
from .expander import ArchiveExpander
from .orchestrator import (
    DeploymentOrchestrator,
    deploy_apps,
    deploy_module,
    deploy_release,
    get_orchestrator,
)
from .planner import ReleasePlanner
from .transfer import ArtifactTransfer

__all__ = [
    "ArtifactTransfer",
    "ArchiveExpander",
    "ModuleActivator",
    "ReleasePlanner",
    "ApplicationActivator",
    "DeploymentOrchestrator",
    "deploy_module",
    "deploy_apps",
    "deploy_release",
    "get_orchestrator",
    "strip_module_suffix",
]
