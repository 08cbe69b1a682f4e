"""Test host metrics, release checks and the self-update workflow."""

import pytest
import requests

from control_panel.core.errors import UpstreamError
from control_panel.host.runner import CommandResult
from control_panel.host.system_service import SystemService, compare_versions


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    def get(self, url, **kwargs):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def events(services):
    received = []
    services.relay.subscribe("system", received.append)
    return received


def system_with(services, panel_settings, session):
    return SystemService(services.gateway, panel_settings, services.emitter, http=session)


class TestVersions:

    @pytest.mark.parametrize("left,right,expected", [
        ("1.2.0", "1.2.0", 0),
        ("1.10.0", "1.9.9", 1),
        ("v2.0", "1.99.99", 1),
        ("1.2", "1.2.1", -1),
        ("1.2.0-beta", "1.2.0", 0),
    ])
    def test_compare(self, left, right, expected):
        assert compare_versions(left, right) == expected


class TestMetrics:

    def test_info(self, services):
        info = services.system.info()
        assert info["version"] == "1.2.0"
        assert info["cpus"] >= 1
        assert info["memory"]["total"] > 0

    def test_stats(self, services):
        stats = services.system.stats()
        assert set(stats) == {"cpu", "memory", "disk"}
        assert 0 <= stats["disk"]["percent"] <= 100


class TestCheckUpdate:

    def test_newer_release(self, services, panel_settings):
        session = FakeSession(FakeResponse({"tag_name": "v1.3.0", "body": "Fixes", "zipball_url": "https://x"}))

        result = system_with(services, panel_settings, session).check_update()

        assert result["update_available"] is True
        assert result["latest_version"] == "1.3.0"
        assert result["release_notes"] == "Fixes"
        assert session.urls == ["https://api.github.com/repos/example/control-panel/releases/latest"]

    def test_same_release(self, services, panel_settings):
        session = FakeSession(FakeResponse({"tag_name": "v1.2.0"}))
        assert system_with(services, panel_settings, session).check_update()["update_available"] is False

    def test_network_failure_means_no_update(self, services, panel_settings):
        session = FakeSession(error=requests.ConnectionError("offline"))

        result = system_with(services, panel_settings, session).check_update()

        assert result["update_available"] is False
        assert result["latest_version"] == "1.2.0"

    def test_http_error_means_no_update(self, services, panel_settings):
        session = FakeSession(FakeResponse({}, status_code=404))
        assert system_with(services, panel_settings, session).check_update()["update_available"] is False


class TestPerformUpdate:

    def test_steps_and_events(self, services, runner, events):
        result = services.system.perform_update()

        assert runner.names == ["git_pull", "pip_install", "service_control"]
        assert runner.commands[-1].argv[-1] == services.settings.panel_service_name
        assert [e.event_type for e in events] == [
            "system:update:start",
            "system:update:progress",
            "system:update:progress",
            "system:update:progress",
            "system:update:complete",
        ]
        assert "restarting" in result["message"]

    def test_failure_emits_error_and_stops(self, services, runner, events):
        runner.results["pip_install"] = CommandResult(exit_code=1, stderr="resolution failed")

        with pytest.raises(UpstreamError):
            services.system.perform_update()

        assert runner.names == ["git_pull", "pip_install"]
        assert events[-1].event_type == "system:update:error"
        assert "resolution failed" in events[-1].payload["error"]
