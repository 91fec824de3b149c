"""
Pytest configuration and fixtures for loader tests.
"""

import io
import sys
import tarfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pytest

from pixell_loader.core.exceptions import RemoteCallError
from pixell_loader.core.models import Target
from pixell_loader.runtime.base import Operation
from pixell_loader.runtime.local import LocalRuntime


class FakeRuntime:
    """Records every call; answers from canned results or raises canned errors.

    failures maps an operation (or (operation, application) for start_app)
    to the exception to raise.
    """

    def __init__(self, manifest: Optional[Dict[str, Any]] = None, staging_dir: str = "/staging"):
        self.calls: List[Tuple[Operation, Dict[str, Any]]] = []
        self.failures: Dict[Any, Exception] = {}
        self.manifest = manifest or {
            "name": "app",
            "version": "0.1.0",
            "applications": ["a", "b"],
            "config": {"a": {"port": 8888}},
        }
        self.staging_dir = staging_dir

    def invoke(self, target: Target, operation: Operation, args: Dict[str, Any]) -> Any:
        self.calls.append((operation, dict(args)))
        key = (operation, args.get("application")) if operation == Operation.START_APP else operation
        if key in self.failures:
            raise self.failures[key]
        if operation in self.failures:
            raise self.failures[operation]

        if operation == Operation.WRITE_FILE:
            return f"{self.staging_dir}/{args['name']}"
        if operation == Operation.LOAD_MODULE:
            return Path(args["path"]).name
        if operation == Operation.READ_MANIFEST:
            return self.manifest
        if operation == Operation.LIST_CODE_PATHS:
            return [f"{args['root']}/lib/a-0.1.0", f"{args['root']}/lib/b-0.1.0"]
        return None

    def operations(self) -> List[Operation]:
        return [op for op, _ in self.calls]

    def started(self) -> List[str]:
        return [args["application"] for op, args in self.calls if op == Operation.START_APP]


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def target() -> Target:
    return Target(name="node1@example")


@pytest.fixture
def undefined_module_error() -> RemoteCallError:
    return RemoteCallError("undef", "module undefined")


@pytest.fixture
def local_runtime(tmp_path: Path):
    """A LocalRuntime whose sys.path and sys.modules changes are undone."""
    saved_path = list(sys.path)
    runtime = LocalRuntime(tmp_path / "staging")
    yield runtime
    sys.path[:] = saved_path
    root = str(tmp_path)
    for name, module in list(sys.modules.items()):
        if str(getattr(module, "__file__", None) or "").startswith(root):
            del sys.modules[name]


def write_module(directory: Path, name: str, body: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.py"
    path.write_text(body)
    return path


def make_release(
    directory: Path,
    filename: str,
    manifest: Union[str, bytes],
    apps: Dict[str, str],
) -> Path:
    """Build a release tarball: release.yaml plus lib/<app>-0.1.0/<app>/__init__.py."""
    directory.mkdir(parents=True, exist_ok=True)
    archive = directory / filename
    files = {"release.yaml": manifest.encode() if isinstance(manifest, str) else manifest}
    for app, source in apps.items():
        files[f"lib/{app}-0.1.0/{app}/__init__.py"] = source.encode()

    with tarfile.open(archive, "w:gz") as tf:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return archive
