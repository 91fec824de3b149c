"""Copy local artifacts to a location the target's runtime can see."""

from __future__ import annotations

from pathlib import Path
from typing import Union

import structlog

from pixell_loader.core.exceptions import RemoteCallError, TargetUnreachableError, TransferError
from pixell_loader.core.models import Target
from pixell_loader.runtime.base import Operation, RemoteRuntime
from pixell_loader.utils.files import artifact_name

logger = structlog.get_logger()


class ArtifactTransfer:
    """Stages artifacts on a target under their own file name.

    The destination depends only on the artifact name, so transferring the
    same artifact again overwrites the earlier copy. No retries.
    """

    def __init__(self, runtime: RemoteRuntime):
        self.runtime = runtime

    def copy(self, target: Target, local_path: Union[str, Path]) -> str:
        """Transfer local_path to target and return the destination path.

        Raises:
            TransferError: reason is local_unreadable, remote_unwritable or
                target_unreachable
        """
        path = Path(local_path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise TransferError(
                f"Cannot read artifact {path}: {e}",
                target=str(target),
                cause=e,
                reason=TransferError.LOCAL_UNREADABLE,
            ) from e

        name = artifact_name(path)
        try:
            dst = self.runtime.invoke(target, Operation.WRITE_FILE, {"name": name, "content": content})
        except TargetUnreachableError as e:
            raise TransferError(
                f"Target {target} unreachable while transferring {name}: {e}",
                target=str(target),
                cause=e,
                reason=TransferError.TARGET_UNREACHABLE,
            ) from e
        except RemoteCallError as e:
            raise TransferError(
                f"Target {target} could not store {name}: {e}",
                target=str(target),
                cause=e,
                reason=TransferError.REMOTE_UNWRITABLE,
            ) from e

        logger.info("Artifact transferred", artifact=name, dest=dst, bytes=len(content))
        return dst
