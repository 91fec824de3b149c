"""Safe extraction of release archives."""

import gzip
import shutil
import tarfile
import zipfile
import zlib
from pathlib import Path
from typing import Union

import structlog

from pixell_loader.core.exceptions import ArchiveError

logger = structlog.get_logger()

CORRUPT_ARCHIVE = "corrupt_archive"
UNSUPPORTED_FORMAT = "unsupported_format"
UNSAFE_PATH = "unsafe_path"


def _checked_target(base: Path, member_name: str) -> Path:
    """Resolve an archive member below base, rejecting path traversal."""
    member_path = Path(member_name)
    if member_path.is_absolute() or ".." in member_path.parts:
        raise ArchiveError(f"Archive contains unsafe path: {member_name}", code=UNSAFE_PATH)
    target = (base / member_path).resolve()
    if target != base and base not in target.parents:
        raise ArchiveError(f"Archive extraction escaped destination: {member_name}", code=UNSAFE_PATH)
    return target


def _extract_zip(archive: Path, dest_dir: Path) -> None:
    base = dest_dir.resolve()
    with zipfile.ZipFile(archive, "r") as zf:
        for member in zf.infolist():
            target = _checked_target(base, member.filename)
            if member.is_dir():
                target.mkdir(parents=True, exist_ok=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(member, "r") as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)


def _extract_tar(archive: Path, dest_dir: Path) -> None:
    base = dest_dir.resolve()
    with tarfile.open(archive, "r:*") as tf:
        for member in tf.getmembers():
            target = _checked_target(base, member.name)
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
            elif member.isfile():
                target.parent.mkdir(parents=True, exist_ok=True)
                src = tf.extractfile(member)
                if src is None:
                    raise ArchiveError(f"Cannot read archive member: {member.name}", code=CORRUPT_ARCHIVE)
                with src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
            else:
                # Links and device nodes could point outside the destination
                raise ArchiveError(f"Archive contains unsupported member: {member.name}", code=UNSAFE_PATH)


def safe_extract(archive: Union[str, Path], dest_dir: Union[str, Path]) -> Path:
    """Unpack a .zip/.tar/.tar.gz/.tgz archive into dest_dir.

    Existing files are overwritten, so extracting the same archive twice
    leaves the same tree behind.

    Raises:
        ArchiveError: corrupt archive, unsupported format or unsafe member path
    """
    archive = Path(archive)
    dest_dir = Path(dest_dir)
    name = archive.name

    if name.endswith(".zip"):
        extract = _extract_zip
        corrupt = (zipfile.BadZipFile, zlib.error, EOFError)
    elif name.endswith((".tar.gz", ".tgz", ".tar")):
        extract = _extract_tar
        corrupt = (tarfile.TarError, gzip.BadGzipFile, zlib.error, EOFError)
    else:
        raise ArchiveError(f"Unsupported archive format: {name}", code=UNSUPPORTED_FORMAT)

    dest_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Extracting archive", archive=str(archive), dest=str(dest_dir))
    try:
        extract(archive, dest_dir)
    except corrupt as e:
        raise ArchiveError(f"Corrupt archive {name}: {e}", code=CORRUPT_ARCHIVE) from e
    return dest_dir
