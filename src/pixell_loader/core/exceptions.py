"""Custom exceptions for Pixell Loader."""

from typing import Any, Dict, List, Optional, Sequence

from pixell_loader.core.models import DeploymentStage


class LoaderError(Exception):
    """Base exception for all loader errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConfigurationError(LoaderError):
    """Configuration error."""
    pass


class ArchiveError(LoaderError):
    """Archive could not be unpacked (corrupt, unsupported or unsafe)."""
    pass


class RemoteCallError(LoaderError):
    """A runtime operation was rejected by the target."""

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or reason, code=reason)
        self.reason = reason


class TargetUnreachableError(RemoteCallError):
    """The target did not answer (connection refused, timeout)."""
    pass


class DeploymentError(LoaderError):
    """Failure of one deployment pipeline stage.

    Carries the target identity and the underlying cause so the
    orchestrator can hand it back to the caller untouched.
    """

    stage: DeploymentStage

    def __init__(
        self,
        message: str,
        *,
        target: str,
        cause: Optional[BaseException] = None,
        reason: Optional[str] = None,
    ):
        if reason is None:
            reason = getattr(cause, "reason", None) or getattr(cause, "code", None)
        super().__init__(message, code=reason)
        self.target = target
        self.cause = cause
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "error": self.__class__.__name__,
            "target": self.target,
            "message": str(self),
            "reason": self.reason,
            "cause": repr(self.cause) if self.cause is not None else None,
        }


class TransferError(DeploymentError):
    """Artifact could not be copied to the target."""

    stage = DeploymentStage.TRANSFER

    LOCAL_UNREADABLE = "local_unreadable"
    REMOTE_UNWRITABLE = "remote_unwritable"
    TARGET_UNREACHABLE = "target_unreachable"


class ExpansionError(DeploymentError):
    """Package could not be unpacked or its manifest is unusable."""

    stage = DeploymentStage.EXPANSION


class PlanningError(DeploymentError):
    """Requested applications are not declared by the manifest."""

    stage = DeploymentStage.PLANNING

    def __init__(self, message: str, *, target: str, missing: Sequence[str]):
        super().__init__(message, target=target, reason="unknown_application")
        self.missing: List[str] = list(missing)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["missing"] = list(self.missing)
        return data


class PathRegistrationError(DeploymentError):
    """Code directories could not be added to the target's code path."""

    stage = DeploymentStage.PATH_REGISTRATION


class ConfigLoadError(DeploymentError):
    """Manifest configuration could not be applied on the target."""

    stage = DeploymentStage.CONFIG_LOAD


class ApplicationStartError(DeploymentError):
    """An application in the load plan failed to start."""

    stage = DeploymentStage.APPLICATION_START

    def __init__(
        self,
        message: str,
        *,
        target: str,
        application: str,
        started: Sequence[str] = (),
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, target=target, cause=cause)
        self.application = application
        self.started: List[str] = list(started)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["application"] = self.application
        data["started"] = list(self.started)
        return data


class ActivationError(DeploymentError):
    """A single module image could not be loaded on the target."""

    stage = DeploymentStage.ACTIVATION
