"""Test authentication and user administration."""

import pytest

from control_panel.core.errors import (
    AuthenticationError, AuthorizationError, ConflictError, ValidationError
)
from control_panel.core.security import create_access_token
from control_panel.registry.models import Role


class TestAuthentication:

    def test_login(self, services, user):
        result = services.users.authenticate("ALICE@example.com", "password123")

        assert result["user"].user_id == user.user_id
        assert services.users.resolve_token(result["token"]).user_id == user.user_id
        assert services.users.get_user(user.user_id).last_login is not None

    def test_wrong_password(self, services, user):
        with pytest.raises(AuthenticationError):
            services.users.authenticate("alice@example.com", "nope")

    def test_disabled_account(self, services, user):
        user.is_active = False
        services.users._user_repo.update(user)

        with pytest.raises(AuthenticationError):
            services.users.authenticate("alice@example.com", "password123")
        with pytest.raises(AuthenticationError):
            services.users.resolve_token(create_access_token(user.user_id))

    @pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
    def test_bad_tokens(self, services, token):
        with pytest.raises(AuthenticationError):
            services.users.resolve_token(token)


class TestSelfService:

    def test_change_password(self, services, user):
        services.users.change_password(user, "password123", "newsecret")
        assert services.users.authenticate("alice@example.com", "newsecret")

    def test_change_password_requires_current(self, services, user):
        with pytest.raises(ValidationError):
            services.users.change_password(user, "wrong", "newsecret")

    def test_update_profile(self, services, user):
        services.users.update_profile(user, "  Alice Smith ")
        assert services.users.get_user(user.user_id).name == "Alice Smith"


class TestAdministration:

    def test_admin_creates_user(self, services, admin):
        created = services.users.create_user(admin, "Carol@Example.com", "secret1", "Carol", Role.ADMIN)

        assert created.email == "carol@example.com"
        assert created.is_admin
        with pytest.raises(ConflictError):
            services.users.create_user(admin, "carol@example.com", "secret1", "Carol")

    def test_non_admin_denied(self, services, user):
        with pytest.raises(AuthorizationError):
            services.users.list_users(user)
        with pytest.raises(AuthorizationError):
            services.users.create_user(user, "x@example.com", "secret1", "X")

    def test_cannot_delete_self(self, services, admin):
        with pytest.raises(ValidationError):
            services.users.delete_user(admin, admin.user_id)

    def test_delete_user(self, services, admin, user):
        services.users.delete_user(admin, user.user_id)
        assert [u.email for u in services.users.list_users(admin)] == ["admin@example.com"]

    def test_ensure_admin_only_when_empty(self, services):
        created = services.users.ensure_admin("root@example.com", "changeme123", "Root")
        assert created.role == Role.ADMIN
        assert services.users.ensure_admin("other@example.com", "changeme123", "Other") is None
