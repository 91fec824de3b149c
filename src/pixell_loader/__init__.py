"""Pixell Loader - hot deployment of modules and releases into running processes."""

__version__ = "0.1.0"
__author__ = "Pixell Core Team"

from pixell_loader.core.config import Settings
from pixell_loader.core.models import ActivationOutcome, Artifact, ArtifactKind, LoadPlan, Manifest, Target
from pixell_loader.deploy import DeploymentOrchestrator, deploy_apps, deploy_module, deploy_release
from pixell_loader.utils.files import valid_artifact

__all__ = [
    "Settings",
    "Target",
    "Artifact",
    "ArtifactKind",
    "Manifest",
    "LoadPlan",
    "ActivationOutcome",
    "DeploymentOrchestrator",
    "deploy_module",
    "deploy_apps",
    "deploy_release",
    "valid_artifact",
    "__version__",
]
