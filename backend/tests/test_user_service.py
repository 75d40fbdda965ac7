"""
Tests for profile updates and account administration.
"""

import pytest

from shared.config.constants import AccountStatus, Roles
from shared.utils.exceptions import ForbiddenError, NotFoundError, TokenRevokedError
from shared.utils.schemas import AdminUserUpdate, ProfileUpdate

from conftest import DEFAULT_PASSWORD


class TestProfile:

    def test_partial_update(self, container, user_factory):
        user = user_factory("alice")
        updated = container.user_service.update_profile(user.id, ProfileUpdate(phone="555-0100"))
        assert updated.phone == "555-0100"
        assert updated.major == "Computer Science"

    def test_real_name_cannot_be_cleared(self, container, user_factory):
        user = user_factory("alice")
        updated = container.user_service.update_profile(user.id, ProfileUpdate(real_name=None))
        assert updated.real_name == "Alice"

    def test_empty_update_returns_profile(self, container, user_factory):
        user = user_factory("alice")
        assert container.user_service.update_profile(user.id, ProfileUpdate()).id == user.id

    def test_unknown_user(self, container):
        with pytest.raises(NotFoundError):
            container.user_service.get_profile(999)


class TestAdminUpdate:

    def test_promote(self, container, user_factory):
        admin = user_factory("root", role=Roles.ADMIN)
        alice = user_factory("alice")
        updated = container.user_service.admin_update(admin.id, alice.id, AdminUserUpdate(role=Roles.COMMITTEE))
        assert updated.role == Roles.COMMITTEE

    def test_self_update_forbidden(self, container, user_factory):
        admin = user_factory("root", role=Roles.ADMIN)
        with pytest.raises(ForbiddenError):
            container.user_service.admin_update(admin.id, admin.id, AdminUserUpdate(status=AccountStatus.BANNED))

    def test_ban_cuts_sessions_when_enabled(self, container_factory, user_factory, clock):
        strict = container_factory(revoke_sessions_on_password_change=True)
        admin = user_factory("root", role=Roles.ADMIN, target=strict)
        alice = user_factory("alice", target=strict)
        session = strict.auth_service.login("alice", DEFAULT_PASSWORD, "10.0.0.1")
        clock.advance(0.2)

        strict.user_service.admin_update(admin.id, alice.id, AdminUserUpdate(status=AccountStatus.BANNED))

        with pytest.raises(TokenRevokedError):
            strict.access_gate.authenticate(f"Bearer {session.access_token}")

    def test_ban_keeps_sessions_by_default(self, container, user_factory):
        admin = user_factory("root", role=Roles.ADMIN)
        alice = user_factory("alice")
        session = container.auth_service.login("alice", DEFAULT_PASSWORD, "10.0.0.1")

        container.user_service.admin_update(admin.id, alice.id, AdminUserUpdate(status=AccountStatus.BANNED))

        # Access tokens live out their lifetime; refresh is refused
        container.access_gate.authenticate(f"Bearer {session.access_token}")


class TestListing:

    def test_filters(self, container, user_factory):
        user_factory("alice")
        user_factory("bob", status=AccountStatus.BANNED)
        user_factory("root", role=Roles.ADMIN)

        service = container.user_service
        assert {u.username for u in service.list_users()} == {"alice", "bob", "root"}
        assert [u.username for u in service.list_users(status=AccountStatus.BANNED)] == ["bob"]
        assert [u.username for u in service.list_users(role=Roles.ADMIN)] == ["root"]
        assert len(service.list_users(limit=2)) == 2
