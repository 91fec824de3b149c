"""Target agent API, and orchestrator deployments over HTTP against it."""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from conftest import make_release, write_module
from pixell_loader.core.config import Settings
from pixell_loader.core.models import DeploymentStage, Target
from pixell_loader.deploy.orchestrator import DeploymentOrchestrator
from pixell_loader.main import create_app
from pixell_loader.runtime.base import Operation
from pixell_loader.runtime.http import HttpRuntime


AGENT = Target(name="agent@testserver", url="http://testserver")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(staging_dir=str(tmp_path / "staging"), log_format="console")


@pytest.fixture
def app(settings, local_runtime):
    return create_app(settings, runtime=local_runtime)


@pytest.fixture
def client(app):
    return TestClient(app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_put_file_stages_artifact(client, local_runtime):
    r = client.put("/runtime/files/hello.py", content=b"x = 1\n")
    assert r.status_code == 200, r.text
    staged = Path(r.json()["result"])
    assert staged == local_runtime.staging_dir / "hello.py"
    assert staged.read_bytes() == b"x = 1\n"


def test_invoke_rejection_is_422_with_reason(client, tmp_path: Path):
    r = client.post("/runtime/invoke/load_module", json={"path": str(tmp_path / "missing")})
    assert r.status_code == 422
    assert r.json()["reason"] == "nofile"


def test_unknown_operation_is_validation_error(client):
    r = client.post("/runtime/invoke/reboot", json={})
    assert r.status_code == 422
    assert r.json()["error"] == "ValidationError"


def test_write_file_not_accepted_as_json(client):
    r = client.post("/runtime/invoke/write_file", json={"name": "a.py", "content": "x"})
    assert r.status_code == 400


def test_secret_required_when_configured(tmp_path: Path, local_runtime):
    settings = Settings(staging_dir=str(tmp_path / "staging"), agent_secret="s3cret")
    client = TestClient(create_app(settings, runtime=local_runtime))

    assert client.put("/runtime/files/a.py", content=b"").status_code == 401
    bad = client.put("/runtime/files/a.py", content=b"", headers={"Authorization": "Bearer nope"})
    assert bad.status_code == 403
    ok = client.put("/runtime/files/a.py", content=b"", headers={"Authorization": "Bearer s3cret"})
    assert ok.status_code == 200


def test_metrics_endpoint(client):
    client.get("/health")
    r = client.get("/metrics/")
    assert r.status_code == 200
    assert "pixell_loader_http_requests_total" in r.text


class TestOverHttp:
    @pytest.fixture
    def orchestrator(self, app):
        runtime = HttpRuntime(client_factory=lambda: TestClient(app))
        return DeploymentOrchestrator(runtime=runtime)

    def test_deploy_module(self, orchestrator, tmp_path: Path):
        src = write_module(tmp_path / "build", "pl_remote_hello", "def say(name):\n    return 'hello ' + name\n")

        outcome = orchestrator.deploy_module(src, AGENT)

        assert outcome.ok, outcome.error
        assert outcome.module == "pl_remote_hello"
        assert sys.modules["pl_remote_hello"].say("world") == "hello world"

    def test_deploy_module_failure_keeps_reason(self, orchestrator, tmp_path: Path):
        src = write_module(tmp_path / "build", "pl_remote_broken", "raise ImportError('nope')\n")

        outcome = orchestrator.deploy_module(src, AGENT)

        assert outcome.stage == DeploymentStage.ACTIVATION
        assert outcome.error.reason == "badfile"
        assert outcome.error.target == "agent@testserver"

    def test_deploy_release(self, orchestrator, client, tmp_path: Path):
        archive = make_release(
            tmp_path / "build",
            "remote_app.tar.gz",
            "name: remote_app\nversion: 1.0.0\napplications: [pl_remote_a, pl_remote_b]\n",
            {"pl_remote_a": "", "pl_remote_b": ""},
        )

        outcome = orchestrator.deploy_release(archive, AGENT)

        assert outcome.ok, outcome.error
        assert outcome.applications == ["pl_remote_a", "pl_remote_b"]
        assert client.get("/runtime/applications").json() == {"applications": ["pl_remote_a", "pl_remote_b"]}

    def test_deploy_apps_unknown_application(self, orchestrator, client, tmp_path: Path):
        archive = make_release(
            tmp_path / "build",
            "remote_app.tar.gz",
            "name: remote_app\nversion: 1.0.0\napplications: [pl_remote_a]\n",
            {"pl_remote_a": ""},
        )

        outcome = orchestrator.deploy_apps(archive, ["pl_remote_zzz"], AGENT)

        assert outcome.stage == DeploymentStage.PLANNING
        assert client.get("/runtime/applications").json() == {"applications": []}

    def test_artifact_name_survives_url(self, app, local_runtime):
        runtime = HttpRuntime(client_factory=lambda: TestClient(app))

        staged = runtime.invoke(AGENT, Operation.WRITE_FILE, {"name": "a#b.py", "content": b"x = 1\n"})

        assert Path(staged) == local_runtime.staging_dir / "a#b.py"
        assert (local_runtime.staging_dir / "a#b.py").read_bytes() == b"x = 1\n"
