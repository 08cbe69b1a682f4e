"""Test mail account management."""

import pytest
from pathlib import Path

from control_panel.core.errors import AuthorizationError, ConflictError, UpstreamError, ValidationError
from control_panel.core.security import verify_password
from control_panel.host.mail_config import MailConfigWriter
from control_panel.host.runner import CommandResult


@pytest.fixture
def mail_domain(services, user):
    domain = services.domains.create_domain(user, "example.com")
    services.domains.enable_mail(user, domain.domain_id)
    return services.domains.get_domain(user, domain.domain_id)


@pytest.fixture
def account(services, user, mail_domain):
    return services.mail.create_account(user, mail_domain.domain_id, "Info", "mailpass123", display_name="Info")


class TestCreateAccount:

    def test_create(self, services, user, account, tmp_path):
        assert account.email == "info@example.com"
        assert account.owner_id == user.user_id
        assert account.quota == services.settings.default_mail_quota
        assert verify_password("mailpass123", account.password_hash)

        vmailbox = Path(tmp_path / "postfix" / "vmailbox").read_text()
        users = Path(tmp_path / "dovecot" / "users").read_text()
        assert "info@example.com example.com/info/" in vmailbox
        assert users.startswith("info@example.com:{BLF-CRYPT}")

    def test_requires_mail_enabled(self, services, user):
        domain = services.domains.create_domain(user, "nomail.org")
        with pytest.raises(ValidationError):
            services.mail.create_account(user, domain.domain_id, "info", "mailpass123")

    def test_duplicate_email(self, services, user, mail_domain, account):
        with pytest.raises(ConflictError):
            services.mail.create_account(user, mail_domain.domain_id, "info", "otherpass123")

    def test_invalid_username_and_password(self, services, user, mail_domain):
        with pytest.raises(ValidationError):
            services.mail.create_account(user, mail_domain.domain_id, "bad name", "mailpass123")
        with pytest.raises(ValidationError):
            services.mail.create_account(user, mail_domain.domain_id, "sales", "short")

    def test_non_owner_cannot_create(self, services, other_user, mail_domain):
        with pytest.raises(AuthorizationError):
            services.mail.create_account(other_user, mail_domain.domain_id, "sales", "mailpass123")


class TestManageAccount:

    def test_scoped_listing(self, services, admin, user, other_user, account, mail_domain):
        assert [a.email for a in services.mail.list_accounts(user)] == ["info@example.com"]
        assert services.mail.list_accounts(other_user) == []
        assert len(services.mail.list_by_domain(admin, mail_domain.domain_id)) == 1

    def test_non_owner_denied(self, services, other_user, account):
        with pytest.raises(AuthorizationError):
            services.mail.get_account(other_user, account.account_id)
        with pytest.raises(AuthorizationError):
            services.mail.delete_account(other_user, account.account_id)

    def test_update_forwarding(self, services, user, account):
        updated = services.mail.update_account(
            user, account.account_id, {"forwarding_enabled": True, "forwarding_address": "me@elsewhere.net"}
        )
        assert updated.forwarding_enabled is True

        with pytest.raises(ValidationError):
            services.mail.update_account(user, account.account_id, {"forwarding_address": "not-an-address"})

    def test_update_ignores_identity_fields(self, services, user, account):
        updated = services.mail.update_account(user, account.account_id, {"username": "root", "quota": 2048})
        assert updated.username == "info"
        assert updated.quota == 2048

    def test_change_password(self, services, user, account, tmp_path):
        services.mail.change_password(user, account.account_id, "newmailpass")

        stored = services.mail.get_account(user, account.account_id)
        assert verify_password("newmailpass", stored.password_hash)
        users = Path(tmp_path / "dovecot" / "users").read_text().splitlines()
        assert users == [f"info@example.com:{{BLF-CRYPT}}{stored.password_hash}"]

    def test_delete(self, services, user, account, tmp_path):
        services.mail.delete_account(user, account.account_id)

        assert services.mail.list_accounts(user) == []
        assert "info@example.com" not in Path(tmp_path / "postfix" / "vmailbox").read_text()

    def test_stats(self, services, user, account, runner):
        runner.results["du"] = CommandResult(exit_code=0, stdout=f"{512 * 1024}\t/var/vmail\n")

        stats = services.mail.account_stats(user, account.account_id)

        assert stats["used"] == 512 * 1024
        assert stats["quota"] == account.quota
        assert services.mail.get_account(user, account.account_id).used_space == 512 * 1024


class TestConfigFileFailures:
    """Mail files that cannot be written leave the registry untouched."""

    @pytest.fixture
    def broken_config(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        return MailConfigWriter(
            str(blocker / "postfix" / "vhosts"),
            str(blocker / "postfix" / "vmailbox"),
            str(blocker / "dovecot" / "users"),
        )

    def test_create_account(self, services, user, mail_domain, broken_config, monkeypatch):
        monkeypatch.setattr(services.mail, "_mail_config", broken_config)

        with pytest.raises(UpstreamError):
            services.mail.create_account(user, mail_domain.domain_id, "bob", "mailpass123")

        assert services.mail.list_accounts(user) == []

    def test_change_password(self, services, user, account, broken_config, monkeypatch):
        monkeypatch.setattr(services.mail, "_mail_config", broken_config)

        with pytest.raises(UpstreamError):
            services.mail.change_password(user, account.account_id, "newmailpass")

        stored = services.mail.get_account(user, account.account_id)
        assert verify_password("mailpass123", stored.password_hash)

    def test_enable_mail(self, services, user, broken_config, monkeypatch):
        domain = services.domains.create_domain(user, "example.org")
        monkeypatch.setattr(services.domains, "_mail_config", broken_config)

        with pytest.raises(UpstreamError):
            services.domains.enable_mail(user, domain.domain_id)

        assert services.domains.get_domain(user, domain.domain_id).mail_enabled is False
