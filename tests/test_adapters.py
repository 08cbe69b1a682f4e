"""Test the real runtime, command runner and DNS adapters against mocked libraries."""

import subprocess
from unittest.mock import MagicMock

import dns.exception
import dns.resolver
import pytest
import requests
from docker.errors import DockerException, NotFound

from control_panel.container import build_services
from control_panel.core.errors import NotFoundError, UpstreamError
from control_panel.host.commands import AllowedCommand
from control_panel.host.dns_lookup import DnsTxtResolver
from control_panel.host.runner import SubprocessCommandRunner
from control_panel.registry.models import InstalledInstance, InstanceStatus
from control_panel.runtime.docker_runtime import DockerRuntime


# ============================================
# DOCKER
# ============================================

@pytest.fixture
def docker_client():
    return MagicMock()


@pytest.fixture
def docker_runtime(docker_client):
    return DockerRuntime(client=docker_client)


class TestDockerRuntime:

    def test_pull_relays_progress(self, docker_runtime, docker_client):
        docker_client.api.pull.return_value = iter([{"status": "Pulling fs layer"}, {"status": "Download complete"}])
        seen = []

        docker_runtime.pull("grafana/grafana:10.2", on_progress=seen.append)

        docker_client.api.pull.assert_called_once_with("grafana/grafana", tag="10.2", stream=True, decode=True)
        assert [line["status"] for line in seen] == ["Pulling fs layer", "Download complete"]

    def test_pull_error_in_stream(self, docker_runtime, docker_client):
        docker_client.api.pull.return_value = iter([{"status": "Pulling"}, {"error": "manifest unknown"}])

        with pytest.raises(UpstreamError) as exc:
            docker_runtime.pull("nginx:nope")
        assert exc.value.details == "manifest unknown"

    def test_not_found(self, docker_runtime, docker_client):
        docker_client.containers.get.side_effect = NotFound("No such container: abc")

        with pytest.raises(NotFoundError):
            docker_runtime.start("abc")

    def test_docker_exception(self, docker_runtime, docker_client):
        docker_client.containers.get.return_value.stop.side_effect = DockerException("container is restarting")

        with pytest.raises(UpstreamError) as exc:
            docker_runtime.stop("abc")
        assert exc.value.status_code == 500
        assert "restarting" in exc.value.details

    def test_daemon_connection_lost(self, docker_runtime, docker_client):
        docker_client.api.inspect_container.side_effect = requests.exceptions.ConnectionError("Connection aborted")

        with pytest.raises(UpstreamError) as exc:
            docker_runtime.inspect("abc")
        assert "Connection aborted" in exc.value.details

    def test_logs_are_decoded(self, docker_runtime, docker_client):
        docker_client.containers.get.return_value.logs.return_value = b"2024-01-01T00:00:00Z ready\n"

        assert docker_runtime.logs("abc", tail=5) == "2024-01-01T00:00:00Z ready\n"
        docker_client.containers.get.return_value.logs.assert_called_once_with(tail=5, timestamps=True)


class TestOrchestratorWithUnreachableDaemon:
    """Daemon failures after connecting must not leave stale records behind."""

    @pytest.fixture
    def docker_services(self, test_session_factory, panel_settings, docker_runtime, runner, txt_resolver, mail_config):
        return build_services(
            session_factory=test_session_factory,
            settings=panel_settings,
            runtime=docker_runtime,
            runner=runner,
            txt_resolver=txt_resolver,
            mail_config=mail_config,
        )

    @pytest.fixture
    def instance(self, docker_services, admin):
        docker_services.catalog.seed_defaults(admin)
        entry = docker_services.catalog.get_by_slug("nginx")
        instance = InstalledInstance(
            entry_id=entry.entry_id,
            owner_id=admin.user_id,
            container_name="web1",
            container_id="0123456789abcdef",
            status=InstanceStatus.RUNNING,
        )
        docker_services.orchestrator._instance_repo.create(instance)
        return instance

    def test_uninstall_deletes_record(self, docker_services, docker_client, admin, instance):
        docker_client.containers.get.side_effect = requests.exceptions.ConnectionError("Connection aborted")

        docker_services.orchestrator.uninstall(admin, instance.instance_id)

        assert docker_services.orchestrator._instance_repo.get(instance.instance_id) is None

    def test_listing_marks_error(self, docker_services, docker_client, admin, instance):
        docker_client.api.inspect_container.side_effect = requests.exceptions.ReadTimeout("read timed out")

        [listed] = docker_services.orchestrator.list_instances(admin)

        assert listed.status == InstanceStatus.ERROR


# ============================================
# HOST COMMANDS
# ============================================

class TestSubprocessCommandRunner:

    def test_runs_argv_without_shell(self, monkeypatch):
        calls = []

        def fake_run(argv, **kwargs):
            calls.append((argv, kwargs))
            return subprocess.CompletedProcess(argv, 0, stdout="active\n", stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)

        result = SubprocessCommandRunner().run(AllowedCommand.service_status("nginx"))

        assert result.ok and result.stdout == "active\n"
        argv, kwargs = calls[0]
        assert argv == ["systemctl", "is-active", "nginx"]
        assert not kwargs.get("shell")
        assert kwargs["timeout"] == 10

    def test_non_zero_exit(self, monkeypatch):
        monkeypatch.setattr(
            subprocess, "run",
            lambda argv, **kwargs: subprocess.CompletedProcess(argv, 3, stdout="", stderr="inactive"),
        )

        result = SubprocessCommandRunner().run(AllowedCommand.service_status("nginx"))

        assert result.exit_code == 3
        assert result.output == "inactive"

    def test_missing_binary(self, monkeypatch):
        def fake_run(argv, **kwargs):
            raise FileNotFoundError(argv[0])

        monkeypatch.setattr(subprocess, "run", fake_run)

        result = SubprocessCommandRunner().run(AllowedCommand.ufw_status())

        assert result.exit_code == 127
        assert "ufw" in result.stderr

    def test_timeout(self, monkeypatch):
        def fake_run(argv, **kwargs):
            raise subprocess.TimeoutExpired(argv, kwargs["timeout"])

        monkeypatch.setattr(subprocess, "run", fake_run)

        result = SubprocessCommandRunner().run(AllowedCommand.apt_update())

        assert result.exit_code == 124
        assert not result.ok


# ============================================
# DNS
# ============================================

class FakeRdata:
    def __init__(self, *strings):
        self.strings = strings


def resolver_returning(answer=None, error=None):
    class FakeResolver:
        nameservers = []
        lifetime = None

        def resolve(self, name, rdtype):
            assert rdtype == "TXT"
            if error is not None:
                raise error
            return answer

    return FakeResolver


class TestDnsTxtResolver:

    def test_chunks_are_joined(self, monkeypatch):
        monkeypatch.setattr(
            dns.resolver, "Resolver",
            resolver_returning([FakeRdata(b"abc-", b"def"), FakeRdata(b"v=spf1 mx ~all")]),
        )

        values = DnsTxtResolver().resolve_txt("_panel-verify.example.com")

        assert values == ["abc-def", "v=spf1 mx ~all"]

    @pytest.mark.parametrize("error", [dns.resolver.NXDOMAIN(), dns.resolver.NoAnswer(), dns.exception.Timeout()])
    def test_lookup_errors_mean_no_records(self, monkeypatch, error):
        monkeypatch.setattr(dns.resolver, "Resolver", resolver_returning(error=error))

        assert DnsTxtResolver().resolve_txt("_panel-verify.example.com") == []
