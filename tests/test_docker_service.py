"""Test the docker administration service."""

import pytest

from control_panel.core.errors import AuthorizationError, UpstreamError, ValidationError
from control_panel.runtime.docker_runtime import ContainerSpec, cpu_percent, split_image_ref


@pytest.fixture
def events(services):
    received = []
    services.relay.subscribe("docker", received.append)
    return received


@pytest.fixture
def container_id(services, admin):
    return services.docker.create_container(admin, ContainerSpec(name="scratch", image="busybox:latest"))


class TestHelpers:

    @pytest.mark.parametrize("ref,expected", [
        ("nginx", ("nginx", "latest")),
        ("nginx:alpine", ("nginx", "alpine")),
        ("registry.local:5000/team/app", ("registry.local:5000/team/app", "latest")),
        ("registry.local:5000/team/app:1.2", ("registry.local:5000/team/app", "1.2")),
    ])
    def test_split_image_ref(self, ref, expected):
        assert split_image_ref(ref) == expected

    def test_cpu_percent(self, runtime, container_id):
        stats = runtime.stats(container_id)
        # (200-100)/(2000-1000) * 2 cpus * 100
        assert cpu_percent(stats) == 20.0

    def test_cpu_percent_without_samples(self):
        assert cpu_percent({}) == 0.0


class TestDockerAdmin:

    def test_admin_only(self, services, user):
        with pytest.raises(AuthorizationError):
            services.docker.status(user)
        with pytest.raises(AuthorizationError):
            services.docker.list_containers(user)

    def test_status(self, services, admin):
        status = services.docker.status(admin)
        assert status["running"] is True
        assert status["version"] == "24.0.0"

    def test_create_starts_container(self, services, runtime, container_id):
        assert runtime.containers[container_id]["running"] is True

    def test_get_running_container_includes_stats(self, services, admin, container_id):
        details = services.docker.get_container(admin, container_id)
        assert details["Stats"]["memory_usage"] == 1024
        assert details["Stats"]["cpu_percent"] == 20.0

    def test_remove_stops_first(self, services, admin, runtime, container_id):
        services.docker.remove_container(admin, container_id)

        operations = [call[0] for call in runtime.calls]
        assert operations[-2:] == ["stop", "remove"]
        assert container_id not in runtime.containers

    def test_exec_requires_command(self, services, admin, container_id):
        with pytest.raises(ValidationError):
            services.docker.exec(admin, container_id, [])
        assert services.docker.exec(admin, container_id, ["ls", "/"])["output"] == "ls /"

    def test_pull_emits_events(self, services, admin, runtime, events):
        services.docker.pull_image(admin, "redis:7")

        assert runtime.pulled == ["redis:7"]
        types = [e.event_type for e in events]
        assert types[0] == "docker:pull:start"
        assert types.count("docker:pull:progress") == 2
        assert types[-1] == "docker:pull:complete"

    def test_pull_failure_emits_error(self, services, admin, runtime, events):
        runtime.fail_on["pull"] = "pull access denied"

        with pytest.raises(UpstreamError):
            services.docker.pull_image(admin, "private/app")

        assert events[-1].event_type == "docker:pull:error"
        assert events[-1].payload["error"] == "pull access denied"
