"""In-process runtime: executes loader operations inside the current interpreter.

The code table is `sys.modules`, the code path is `sys.path` and the
application environment is a per-runtime mapping of application name to
configuration. A target agent exposes one of these over HTTP.
"""

from __future__ import annotations

import errno
import importlib
import importlib.util
import os
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import structlog
import yaml

from pixell_loader.core.config import Settings
from pixell_loader.core.exceptions import ArchiveError, RemoteCallError
from pixell_loader.core.models import Target
from pixell_loader.runtime.base import Operation
from pixell_loader.utils.archive import safe_extract
from pixell_loader.utils.files import MODULE_SUFFIXES, package_root

logger = structlog.get_logger()


class LocalRuntime:
    """Runs loader operations against this process."""

    def __init__(self, staging_dir: Path, manifest_name: str = "release.yaml"):
        self.staging_dir = Path(staging_dir)
        self.manifest_name = manifest_name
        self._env: Dict[str, Dict[str, Any]] = {}
        self._started: List[str] = []
        self._lock = threading.RLock()
        self._handlers: Dict[Operation, Callable[..., Any]] = {
            Operation.WRITE_FILE: self.write_file,
            Operation.EXPAND: self.expand,
            Operation.READ_MANIFEST: self.read_manifest,
            Operation.LIST_CODE_PATHS: self.list_code_paths,
            Operation.ADD_PATHS: self.add_paths,
            Operation.LOAD_CONFIG: self.load_config,
            Operation.LOAD_MODULE: self.load_module,
            Operation.START_APP: self.start_app,
        }

    def invoke(self, target: Target, operation: Operation, args: Dict[str, Any]) -> Any:
        try:
            op = Operation(operation)
        except ValueError as e:
            raise RemoteCallError("undef", f"Unknown operation: {operation}") from e
        handler = self._handlers[op]
        logger.debug("Runtime call", target=str(target), operation=op.value)
        try:
            return handler(**args)
        except TypeError as e:
            raise RemoteCallError("badarg", f"Invalid arguments for {operation}: {e}") from e

    # Files

    def write_file(self, name: str, content: bytes) -> str:
        """Write bytes to <staging_dir>/<name>, replacing any previous copy."""
        if not name or os.path.basename(name) != name or name in (".", ".."):
            raise RemoteCallError("invalid_name", f"Invalid artifact name: {name!r}")
        dest = self.staging_dir / name
        tmp = dest.with_name(dest.name + ".uploading")
        try:
            self.staging_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(content)
            os.replace(tmp, dest)
            # load_module prefers .py, so a stale sibling image would shadow this one
            for sibling in _sibling_images(dest):
                sibling.unlink(missing_ok=True)
        except OSError as e:
            raise RemoteCallError(_os_reason(e), f"Cannot write {dest}: {e}") from e
        logger.info("Artifact staged", path=str(dest), bytes=len(content))
        return str(dest)

    def expand(self, path: str) -> str:
        root = package_root(path)
        try:
            safe_extract(path, root)
        except ArchiveError as e:
            raise RemoteCallError(e.code or "corrupt_archive", str(e)) from e
        except OSError as e:
            raise RemoteCallError(_os_reason(e), f"Cannot expand {path}: {e}") from e
        return root

    def read_manifest(self, root: str) -> Dict[str, Any]:
        manifest_path = Path(root) / self.manifest_name
        if not manifest_path.is_file():
            raise RemoteCallError("manifest_missing", f"Missing {self.manifest_name} in {root}")
        try:
            with open(manifest_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            raise RemoteCallError("manifest_invalid", f"Cannot parse {manifest_path}: {e}") from e
        except OSError as e:
            raise RemoteCallError(_os_reason(e), f"Cannot read {manifest_path}: {e}") from e
        if not isinstance(data, dict):
            raise RemoteCallError("manifest_invalid", f"{manifest_path} must contain a mapping")
        return data

    # Code path and configuration

    def list_code_paths(self, root: str) -> List[str]:
        """Code directories of an expanded package: <root>/lib/*/."""
        lib = Path(root) / "lib"
        if not lib.is_dir():
            return []
        try:
            return [str(p) for p in sorted(lib.iterdir()) if p.is_dir()]
        except OSError as e:
            raise RemoteCallError(_os_reason(e), f"Cannot list {lib}: {e}") from e

    def add_paths(self, paths: List[str]) -> None:
        for path in paths:
            if not Path(path).is_dir():
                raise RemoteCallError("bad_directory", f"Not a directory: {path}")
        with self._lock:
            for path in paths:
                if path not in sys.path:
                    sys.path.append(path)
        importlib.invalidate_caches()
        logger.info("Code paths added", paths=paths)

    def load_config(self, config: Dict[str, Dict[str, Any]]) -> None:
        if not isinstance(config, dict):
            raise RemoteCallError("badarg", "Configuration must be a mapping")
        for app, values in config.items():
            if not isinstance(values, dict):
                raise RemoteCallError("badarg", f"Configuration for {app} must be a mapping")
        with self._lock:
            for app, values in config.items():
                self._env.setdefault(app, {}).update(values)
        logger.info("Configuration loaded", applications=sorted(config))

    def get_env(self, application: str, key: Optional[str] = None, default: Any = None) -> Any:
        with self._lock:
            env = self._env.get(application, {})
            if key is None:
                return dict(env)
            return env.get(key, default)

    # Activation

    def load_module(self, path: str) -> str:
        """Load <path>.py or <path>.pyc into sys.modules, replacing an older copy."""
        source = next((path + s for s in MODULE_SUFFIXES if Path(path + s).is_file()), None)
        if source is None:
            raise RemoteCallError("nofile", f"No module image at {path}")

        if source.endswith(".py"):
            # pyc validation is by mtime seconds and size; a quick same-size rewrite would hit the cache
            Path(importlib.util.cache_from_source(source)).unlink(missing_ok=True)

        name = Path(path).name
        spec = importlib.util.spec_from_file_location(name, source)
        if spec is None or spec.loader is None:
            raise RemoteCallError("badfile", f"Cannot load module image {source}")
        module = importlib.util.module_from_spec(spec)

        with self._lock:
            previous = sys.modules.get(name)
            sys.modules[name] = module
            try:
                spec.loader.exec_module(module)
            except Exception as e:
                if previous is not None:
                    sys.modules[name] = previous
                else:
                    sys.modules.pop(name, None)
                raise RemoteCallError("badfile", f"Loading {source} failed: {e}") from e

        logger.info("Module loaded", module=name, path=source, replaced=previous is not None)
        return name

    def start_app(self, application: str) -> None:
        """Import an application package and call its start(env) hook once."""
        with self._lock:
            if application in self._started:
                logger.info("Application already started", application=application)
                return
            try:
                module = importlib.import_module(application)
            except ModuleNotFoundError as e:
                raise RemoteCallError("app_not_found", f"Application {application} not found on code path") from e
            except Exception as e:
                raise RemoteCallError("start_failed", f"Importing {application} failed: {e}") from e

            start = getattr(module, "start", None)
            if callable(start):
                try:
                    start(dict(self._env.get(application, {})))
                except Exception as e:
                    raise RemoteCallError("start_failed", f"Application {application} failed to start: {e}") from e
            self._started.append(application)
        logger.info("Application started", application=application)

    @property
    def started_applications(self) -> List[str]:
        with self._lock:
            return list(self._started)


def _sibling_images(dest: Path) -> List[Path]:
    if dest.suffix not in MODULE_SUFFIXES:
        return []
    return [dest.with_suffix(s) for s in MODULE_SUFFIXES if s != dest.suffix]


def _os_reason(e: OSError) -> str:
    if e.errno == errno.ENOSPC:
        return "insufficient_space"
    if e.errno in (errno.EACCES, errno.EPERM, errno.EROFS):
        return "eacces"
    return "io_error"


_local_runtime: Optional[LocalRuntime] = None


def get_local_runtime(settings: Optional[Settings] = None) -> LocalRuntime:
    """Process-wide runtime; created on first use."""
    global _local_runtime
    if _local_runtime is None:
        settings = settings or Settings()
        _local_runtime = LocalRuntime(Path(settings.staging_dir), settings.manifest_name)
    return _local_runtime
