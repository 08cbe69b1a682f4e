"""Test the HTTP API end to end with fake runtime and host runner."""

import time
from uuid import UUID

import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import auth_headers
from control_panel.api.main import warn_default_secret
from control_panel.config import PanelSettings
from control_panel.core.events_model import PanelEvent
from control_panel.host.runner import CommandResult
from control_panel.registry.models import InstalledInstance


@pytest.fixture
def nginx_id(client, services, admin):
    services.catalog.seed_defaults(admin)
    return str(services.catalog.get_by_slug("nginx").entry_id)


def install(client, headers, entry_id, name="web-1", **body):
    return client.post(f"/api/apps/{entry_id}/install", json={"containerName": name, **body}, headers=headers)


class TestHealthAndErrors:

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}

    def test_requires_authentication(self, client):
        response = client.get("/api/apps")
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}

    def test_invalid_token(self, client):
        response = client.get("/api/apps", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_validation_error_shape(self, client, admin_headers, nginx_id):
        response = client.post(f"/api/apps/{nginx_id}/install", json={}, headers=admin_headers)
        assert response.status_code == 400
        assert "error" in response.json()

    def test_unknown_route(self, client):
        assert client.get("/api/nothing").json() == {"error": "Not Found"}

    def test_default_secret_warning(self, panel_settings, caplog):
        assert warn_default_secret(panel_settings) is False
        assert warn_default_secret(PanelSettings(jwt_secret="change-me")) is True
        assert "PANEL_JWT_SECRET" in caplog.text


class TestAuthRoutes:

    def test_login_sets_cookie(self, client, user):
        response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "password123"})

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["email"] == "alice@example.com"
        assert "password_hash" not in body["user"]
        assert response.cookies.get("panel_token") == body["token"]

        # TestClient keeps the cookie for later requests
        me = client.get("/api/auth/me")
        assert me.json()["email"] == "alice@example.com"

    def test_login_failure(self, client, user):
        response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "bad"})
        assert response.status_code == 401

    def test_user_admin_routes(self, client, admin_headers, user_headers):
        assert client.get("/api/auth/users", headers=user_headers).status_code == 403

        created = client.post(
            "/api/auth/users",
            json={"email": "dave@example.com", "password": "secret1", "name": "Dave"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        assert created.json()["role"] == "user"
        assert len(client.get("/api/auth/users", headers=admin_headers).json()) == 3


class TestAppRoutes:

    def test_catalog_listing(self, client, user_headers, nginx_id):
        response = client.get("/api/apps", params={"category": "web"}, headers=user_headers)

        assert response.status_code == 200
        assert {app["slug"] for app in response.json()} == {"nginx", "wordpress"}
        assert client.get(f"/api/apps/{nginx_id}", headers=user_headers).json()["image_ref"] == "nginx:alpine"

    def test_create_duplicate_slug(self, client, admin_headers, nginx_id):
        response = client.post(
            "/api/apps",
            json={"slug": "nginx", "name": "Nginx 2", "dockerImage": "nginx"},
            headers=admin_headers,
        )
        assert response.status_code == 409

    def test_install_lifecycle(self, client, admin_headers, nginx_id, runtime):
        response = install(client, admin_headers, nginx_id, ports=[{"container": 80, "host": 8088}])
        assert response.status_code == 201
        instance = response.json()
        assert instance["status"] == "running"
        assert instance["ports"] == [{"container": 80, "host": 8088, "protocol": "tcp"}]
        instance_id = instance["instance_id"]

        for action in ("stop", "start", "restart"):
            result = client.post(f"/api/apps/installed/{instance_id}/{action}", headers=admin_headers)
            assert result.status_code == 200
            assert "message" in result.json()

        detail = client.get(f"/api/apps/installed/{instance_id}", headers=admin_headers).json()
        assert detail["container_info"]["state"]["Running"] is True

        logs = client.get(f"/api/apps/installed/{instance_id}/logs", params={"tail": 10}, headers=admin_headers)
        assert set(logs.json()) == {"appLogs", "containerLogs"}

        deleted = client.delete(f"/api/apps/installed/{instance_id}", headers=admin_headers)
        assert deleted.status_code == 200
        assert client.get("/api/apps/installed", headers=admin_headers).json() == []

    def test_install_conflict(self, client, admin_headers, nginx_id):
        install(client, admin_headers, nginx_id)
        response = install(client, admin_headers, nginx_id)

        assert response.status_code == 409
        assert len(client.get("/api/apps/installed", headers=admin_headers).json()) == 1

    def test_install_pull_failure(self, client, admin_headers, nginx_id, runtime):
        runtime.fail_on["pull"] = "manifest unknown"

        response = install(client, admin_headers, nginx_id)

        assert response.status_code == 500
        assert "manifest unknown" in response.json()["details"]
        installed = client.get("/api/apps/installed", headers=admin_headers).json()
        assert installed[0]["status"] == "error"
        assert installed[0]["container_id"] is None

    def test_non_owner_gets_403(self, client, services, user, other_user, nginx_id):
        theirs = InstalledInstance(entry_id=UUID(nginx_id), owner_id=other_user.user_id, container_name="theirs")
        services.orchestrator._instance_repo.create(theirs)

        headers = auth_headers(user)
        assert client.get(f"/api/apps/installed/{theirs.instance_id}", headers=headers).status_code == 403
        assert client.post(f"/api/apps/installed/{theirs.instance_id}/stop", headers=headers).status_code == 403
        assert client.delete(f"/api/apps/installed/{theirs.instance_id}", headers=headers).status_code == 403

    def test_logs_tail_validation(self, client, admin_headers, nginx_id):
        instance_id = install(client, admin_headers, nginx_id).json()["instance_id"]
        response = client.get(f"/api/apps/installed/{instance_id}/logs", params={"tail": 0}, headers=admin_headers)
        assert response.status_code == 400


class TestDomainAndMailRoutes:

    def test_domain_flow(self, client, user_headers, txt_resolver, runner):
        created = client.post("/api/domains", json={"name": "Example.com"}, headers=user_headers)
        assert created.status_code == 201
        body = created.json()
        domain_id = body["domain"]["domain_id"]
        token = body["verification_record"]["value"]

        ssl_early = client.post(f"/api/domains/{domain_id}/ssl", headers=user_headers)
        assert ssl_early.status_code == 400
        assert runner.commands == []

        assert client.post(f"/api/domains/{domain_id}/verify", headers=user_headers).status_code == 400

        txt_resolver.records["_panel-verify.example.com"] = [token]
        verified = client.post(f"/api/domains/{domain_id}/verify", headers=user_headers)
        assert verified.json()["is_verified"] is True

        issued = client.post(f"/api/domains/{domain_id}/ssl", headers=user_headers)
        assert issued.json()["ssl_enabled"] is True
        renewed = client.post(f"/api/domains/{domain_id}/ssl/renew", headers=user_headers)
        assert renewed.status_code == 200

    def test_domain_owner_isolation(self, client, user_headers, other_user):
        domain_id = client.post("/api/domains", json={"name": "example.com"}, headers=user_headers).json()["domain"]["domain_id"]

        other = auth_headers(other_user)
        assert client.get(f"/api/domains/{domain_id}", headers=other).status_code == 403
        assert client.get("/api/domains", headers=other).json() == []

    def test_mail_flow(self, client, user_headers, other_user):
        domain_id = client.post("/api/domains", json={"name": "example.com"}, headers=user_headers).json()["domain"]["domain_id"]

        refused = client.post(
            "/api/mail",
            json={"domainId": domain_id, "username": "info", "password": "mailpass123"},
            headers=user_headers,
        )
        assert refused.status_code == 400

        enabled = client.post(f"/api/mail/enable/{domain_id}", headers=user_headers)
        assert enabled.status_code == 200
        assert enabled.json()["domain"]["mail_enabled"] is True

        created = client.post(
            "/api/mail",
            json={"domainId": domain_id, "username": "info", "password": "mailpass123"},
            headers=user_headers,
        )
        assert created.status_code == 201
        account_id = created.json()["account_id"]
        assert created.json()["email"] == "info@example.com"

        assert client.get(f"/api/mail/{account_id}", headers=auth_headers(other_user)).status_code == 403

        password = client.put(f"/api/mail/{account_id}/password", json={"password": "anotherpass"}, headers=user_headers)
        assert password.status_code == 200

        assert client.delete(f"/api/mail/{account_id}", headers=user_headers).status_code == 200
        assert client.get(f"/api/mail/domain/{domain_id}", headers=user_headers).json() == []


class TestSystemAndDockerRoutes:

    def test_admin_only_operations(self, client, user_headers):
        assert client.post("/api/system/services/nginx/restart", headers=user_headers).status_code == 403
        assert client.post("/api/system/firewall", json={"port": 80}, headers=user_headers).status_code == 403
        assert client.get("/api/docker/containers", headers=user_headers).status_code == 403

    def test_service_control(self, client, admin_headers, runner):
        response = client.post("/api/system/services/nginx/reload", headers=admin_headers)
        assert response.status_code == 200
        assert runner.commands[-1].argv == ("systemctl", "reload", "nginx")

        rejected = client.post("/api/system/services/sshd/stop", headers=admin_headers)
        assert rejected.status_code == 400

    def test_restart_panel(self, client, admin_headers, user_headers, runner):
        assert client.post("/api/system/restart", headers=user_headers).status_code == 403
        assert runner.commands == []

        response = client.post("/api/system/restart", headers=admin_headers)
        assert response.status_code == 200
        assert runner.names == ["service_restart_detached"]

    def test_firewall(self, client, admin_headers, runner):
        assert client.post("/api/system/firewall", json={"port": "abc"}, headers=admin_headers).status_code == 400
        assert runner.commands == []

        added = client.post("/api/system/firewall", json={"port": 443, "protocol": "tcp"}, headers=admin_headers)
        assert added.status_code == 200
        assert runner.commands[-1].argv == ("ufw", "allow", "443/tcp")

    def test_command_failure_is_500(self, client, admin_headers, runner):
        runner.results["apt_update"] = CommandResult(exit_code=100, stderr="Could not resolve host")

        response = client.post("/api/system/apt/update", headers=admin_headers)

        assert response.status_code == 500
        assert response.json()["details"] == "Could not resolve host"

    def test_services_status_for_any_user(self, client, user_headers):
        response = client.get("/api/system/services", headers=user_headers)
        assert response.status_code == 200
        assert "nginx" in response.json()

    def test_docker_images(self, client, admin_headers, runtime):
        assert client.post("/api/docker/images/pull", json={"image": "redis:7"}, headers=admin_headers).status_code == 200
        assert client.get("/api/docker/images", headers=admin_headers).json() == [{"RepoTags": ["redis:7"]}]


class TestEventsSocket:

    def test_rejects_without_token(self, client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect("/api/events"):
                pass
        assert exc.value.code == 1008

    def test_forwards_matching_events(self, client, services, admin):
        token = auth_headers(admin)["Authorization"].split(" ", 1)[1]
        with client.websocket_connect(f"/api/events?topic=system&token={token}") as socket:
            # Subscription happens after accept; wait until it is registered
            for _ in range(100):
                if services.relay.subscriber_count:
                    break
                time.sleep(0.01)

            services.emitter.emit([PanelEvent.docker_pull_start("ignored:latest")])
            services.emitter.emit([PanelEvent.system_update_start("1.2.0")])

            message = socket.receive_json()
            assert message["event"] == "system:update:start"
            assert message["data"] == {"version": "1.2.0"}
