import os
import socket
from pathlib import Path

import pytest
from pydantic import ValidationError

from pixell_loader import valid_artifact
from pixell_loader.core.config import Settings
from pixell_loader.core.models import ActivationOutcome, ArtifactKind, Target
from pixell_loader.utils.files import artifact_kind, package_root
from pixell_loader.utils.logging import _redact_sensitive


class TestTarget:
    def test_local_identity(self):
        target = Target.local()
        assert target.name == f"{os.getpid()}@{socket.gethostname()}"
        assert target.is_local
        assert str(target) == target.name

    def test_remote_target(self):
        target = Target(name="agent", url="http://10.0.0.5:8470")
        assert not target.is_local

    def test_frozen(self):
        target = Target.local()
        with pytest.raises(ValidationError):
            target.name = "other"


class TestFiles:
    @pytest.mark.parametrize(
        "name, kind",
        [
            ("hello.py", ArtifactKind.SINGLE_MODULE),
            ("hello.pyc", ArtifactKind.SINGLE_MODULE),
            ("app.tar.gz", ArtifactKind.PACKAGE),
            ("app.tgz", ArtifactKind.PACKAGE),
            ("app.zip", ArtifactKind.PACKAGE),
            ("notes.txt", None),
        ],
    )
    def test_artifact_kind(self, name, kind):
        assert artifact_kind(name) == kind

    def test_valid_artifact(self, tmp_path: Path):
        module = tmp_path / "hello.py"
        module.write_text("")
        other = tmp_path / "notes.txt"
        other.write_text("")

        assert valid_artifact(module)
        assert not valid_artifact(other)
        assert not valid_artifact(tmp_path / "missing.py")
        assert not valid_artifact(tmp_path)

    @pytest.mark.parametrize(
        "archive, root",
        [
            ("/s/app.tar.gz", "/s/app"),
            ("/s/app.tgz", "/s/app"),
            ("/s/app.zip", "/s/app"),
            ("/s/app", "/s/app.d"),
        ],
    )
    def test_package_root(self, archive, root):
        assert package_root(archive) == root


def test_successful_outcome():
    outcome = ActivationOutcome(target="t", modules=["hello"])
    assert outcome.ok
    assert outcome.stage is None
    assert outcome.unwrap() is outcome
    assert outcome.to_dict() == {
        "ok": True,
        "target": "t",
        "modules": ["hello"],
        "applications": [],
        "error": None,
    }


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("PIXELL_LOADER_STAGING_DIR", "/var/lib/loader")
        monkeypatch.setenv("PIXELL_LOADER_CALL_TIMEOUT_SECONDS", "5")
        settings = Settings()
        assert settings.staging_dir == "/var/lib/loader"
        assert settings.call_timeout_seconds == 5.0

    def test_rejects_bad_values(self):
        with pytest.raises(ValidationError):
            Settings(call_timeout_seconds=0)
        with pytest.raises(ValidationError):
            Settings(log_format="xml")


def test_log_redaction_hides_secrets_and_artifact_bytes():
    event = _redact_sensitive(None, None, {"event": "Artifact staged", "content": b"x = 1", "Authorization": "Bearer s"})
    assert event == {"event": "Artifact staged", "content": "[REDACTED]", "Authorization": "[REDACTED]"}
