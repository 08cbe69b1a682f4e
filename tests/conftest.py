#tests\conftest.py

"""Pytest configuration and fixtures."""

import os

# Must be set before control_panel modules build the global engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Any, Dict, List, Optional
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from control_panel.api.dependencies import get_services
from control_panel.api.main import app
from control_panel.config import PanelSettings
from control_panel.container import build_services
from control_panel.core.errors import NotFoundError, UpstreamError
from control_panel.core.security import create_access_token, hash_password
from control_panel.host.commands import AllowedCommand
from control_panel.host.dns_lookup import TxtResolver
from control_panel.host.mail_config import MailConfigWriter
from control_panel.host.runner import CommandResult, HostCommandRunner
from control_panel.infrastructure.postgres.database import Base, get_session_factory
from control_panel.infrastructure.postgres import models  # noqa: F401
from control_panel.registry.models import Role, UserAccount
from control_panel.runtime.docker_runtime import ContainerRuntime, ContainerSpec


# ============================================
# FAKES
# ============================================

class FakeRuntime(ContainerRuntime):
    """In-memory container runtime. Put an operation name in fail_on to make it raise."""

    def __init__(self):
        self.containers: Dict[str, Dict[str, Any]] = {}
        self.pulled: List[str] = []
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, str] = {}
        self.pull_progress = [{"status": "Pulling fs layer", "id": "abc"}, {"status": "Download complete"}]

    def _check(self, operation: str, *args):
        self.calls.append((operation, *args))
        if operation in self.fail_on:
            raise UpstreamError(f"{operation} failed", details=self.fail_on[operation])

    def _get(self, container_id: str) -> Dict[str, Any]:
        if container_id not in self.containers:
            raise NotFoundError(f"No such container: {container_id}")
        return self.containers[container_id]

    def pull(self, image_ref, on_progress=None):
        self._check("pull", image_ref)
        for line in self.pull_progress:
            if on_progress:
                on_progress(line)
        self.pulled.append(image_ref)

    def create_container(self, spec: ContainerSpec) -> str:
        self._check("create_container", spec)
        container_id = uuid4().hex
        self.containers[container_id] = {"spec": spec, "running": False}
        return container_id

    def start(self, container_id):
        self._check("start", container_id)
        self._get(container_id)["running"] = True

    def stop(self, container_id):
        self._check("stop", container_id)
        self._get(container_id)["running"] = False

    def restart(self, container_id):
        self._check("restart", container_id)
        self._get(container_id)["running"] = True

    def remove(self, container_id, force=False):
        self._check("remove", container_id, force)
        self._get(container_id)
        del self.containers[container_id]

    def inspect(self, container_id):
        self._check("inspect", container_id)
        container = self._get(container_id)
        return {
            "Id": container_id,
            "Name": f"/{container['spec'].name}",
            "State": {
                "Running": container["running"],
                "Status": "running" if container["running"] else "exited",
            },
        }

    def stats(self, container_id):
        self._check("stats", container_id)
        self._get(container_id)
        return {
            "cpu_stats": {"cpu_usage": {"total_usage": 200}, "system_cpu_usage": 2000, "online_cpus": 2},
            "precpu_stats": {"cpu_usage": {"total_usage": 100}, "system_cpu_usage": 1000},
            "memory_stats": {"usage": 1024, "limit": 4096},
            "networks": {},
        }

    def logs(self, container_id, tail=100, timestamps=True):
        self._check("logs", container_id)
        self._get(container_id)
        return "2024-01-01T00:00:00Z started\n"

    def exec(self, container_id, command):
        self._check("exec", container_id, command)
        return {"exit_code": 0, "output": " ".join(command)}

    def info(self):
        return {"Containers": len(self.containers), "ContainersRunning": 0, "ContainersStopped": 0,
                "Images": len(self.pulled), "MemTotal": 1024, "NCPU": 2}

    def version(self):
        return {"Version": "24.0.0", "ApiVersion": "1.43"}

    def list_containers(self, all=True):
        return [{"Id": cid, "Names": [f"/{c['spec'].name}"]} for cid, c in self.containers.items()]

    def list_images(self):
        return [{"RepoTags": [ref]} for ref in self.pulled]

    def remove_image(self, image, force=False):
        self._check("remove_image", image, force)

    def list_networks(self):
        return [{"Name": "bridge"}]

    def create_network(self, name, driver="bridge"):
        self._check("create_network", name, driver)
        return f"net-{name}"

    def list_volumes(self):
        return []

    def create_volume(self, name, driver="local"):
        self._check("create_volume", name, driver)
        return name


class FakeRunner(HostCommandRunner):
    """Records commands; results are looked up by command name (default: exit 0)."""

    def __init__(self):
        self.commands: List[AllowedCommand] = []
        self.results: Dict[str, CommandResult] = {}

    def run(self, command: AllowedCommand) -> CommandResult:
        self.commands.append(command)
        return self.results.get(command.name, CommandResult(exit_code=0, stdout="ok"))

    @property
    def names(self) -> List[str]:
        return [command.name for command in self.commands]


class FakeTxtResolver(TxtResolver):
    def __init__(self):
        self.records: Dict[str, List[str]] = {}
        self.lookups: List[str] = []

    def resolve_txt(self, name: str) -> List[str]:
        self.lookups.append(name)
        return list(self.records.get(name, []))


# ============================================
# DATABASE / SERVICES
# ============================================

@pytest.fixture
def test_engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_session_factory(test_engine):
    return get_session_factory(test_engine)


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def txt_resolver():
    return FakeTxtResolver()


@pytest.fixture
def panel_settings(tmp_path):
    return PanelSettings(
        jwt_secret="test-secret",
        server_ip="203.0.113.10",
        backup_dir=str(tmp_path / "backups"),
        backup_sources=[str(tmp_path / "data")],
        mail_root=str(tmp_path / "vmail"),
        release_repo="example/control-panel",
        panel_version="1.2.0",
    )


@pytest.fixture
def mail_config(tmp_path):
    return MailConfigWriter(
        str(tmp_path / "postfix" / "vhosts"),
        str(tmp_path / "postfix" / "vmailbox"),
        str(tmp_path / "dovecot" / "users"),
    )


@pytest.fixture
def services(test_session_factory, panel_settings, runtime, runner, txt_resolver, mail_config):
    return build_services(
        session_factory=test_session_factory,
        settings=panel_settings,
        runtime=runtime,
        runner=runner,
        txt_resolver=txt_resolver,
        mail_config=mail_config,
    )


# ============================================
# USERS
# ============================================

def _make_user(services, email: str, role: Role) -> UserAccount:
    user = UserAccount(
        email=email,
        password_hash=hash_password("password123"),
        name=email.split("@")[0],
        role=role,
    )
    services.users._user_repo.create(user)
    return user


@pytest.fixture
def admin(services):
    return _make_user(services, "admin@example.com", Role.ADMIN)


@pytest.fixture
def user(services):
    return _make_user(services, "alice@example.com", Role.USER)


@pytest.fixture
def other_user(services):
    return _make_user(services, "bob@example.com", Role.USER)


# ============================================
# CATALOG
# ============================================

@pytest.fixture
def catalog_entry(services, admin):
    """Seeded wordpress entry (has required environment variables)."""
    services.catalog.seed_defaults(admin)
    return services.catalog.get_by_slug("wordpress")


@pytest.fixture
def simple_entry(services, admin):
    """Seeded nginx entry (no required environment)."""
    services.catalog.seed_defaults(admin)
    return services.catalog.get_by_slug("nginx")


# ============================================
# HTTP
# ============================================

@pytest.fixture
def client(services, panel_settings, monkeypatch):
    # Tokens are signed with the module-level settings
    monkeypatch.setattr("control_panel.core.security.settings", panel_settings)
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user: UserAccount) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.user_id)}"}


@pytest.fixture
def admin_headers(client, admin):
    return auth_headers(admin)


@pytest.fixture
def user_headers(client, user):
    return auth_headers(user)
