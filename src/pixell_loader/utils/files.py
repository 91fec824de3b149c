"""Artifact path helpers shared by the orchestrator and the runtimes."""

import os
from pathlib import Path
from typing import Optional, Union

from pixell_loader.core.models import ArtifactKind

MODULE_SUFFIXES = (".py", ".pyc")
PACKAGE_SUFFIXES = (".tar.gz", ".tgz", ".tar", ".zip")

PathLike = Union[str, "os.PathLike[str]"]


def artifact_kind(path: PathLike) -> Optional[ArtifactKind]:
    """Infer the artifact kind from its file name, None if unknown."""
    name = os.fspath(path)
    if name.endswith(PACKAGE_SUFFIXES):
        return ArtifactKind.PACKAGE
    if name.endswith(MODULE_SUFFIXES):
        return ArtifactKind.SINGLE_MODULE
    return None


def valid_artifact(path: PathLike) -> bool:
    """Check if given file is a readable module image or package."""
    p = Path(path)
    return p.is_file() and os.access(p, os.R_OK) and artifact_kind(p) is not None


def artifact_name(path: PathLike) -> str:
    """Name an artifact is staged under on the target."""
    return Path(path).name


def package_root(archive_path: PathLike) -> str:
    """Directory a package is expanded into: the archive path minus its suffix."""
    name = os.fspath(archive_path)
    for suffix in PACKAGE_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name + ".d"
