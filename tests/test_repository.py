"""Test registry repositories against SQLite."""

import pytest
from datetime import datetime, timezone
from uuid import uuid4

from control_panel.core.errors import ConflictError, NotFoundError
from control_panel.infrastructure.postgres.repository import (
    CatalogRepository, DomainRepository, InstanceRepository, MailAccountRepository, UserRepository
)
from control_panel.registry.models import (
    AppCategory, CatalogEntry, DNSRecord, DomainRecord, DomainSettings, EnvVar, InstalledInstance,
    InstanceStatus, LogLevel, MailAccount, PortMapping, Role, UserAccount, VolumeMapping
)


@pytest.fixture
def repos(test_session_factory):
    return {
        "catalog": CatalogRepository(test_session_factory),
        "instances": InstanceRepository(test_session_factory),
        "domains": DomainRepository(test_session_factory),
        "mail": MailAccountRepository(test_session_factory),
        "users": UserRepository(test_session_factory),
    }


@pytest.fixture
def owner(repos):
    user = UserAccount(email="owner@example.com", password_hash="hash", name="Owner", role=Role.USER)
    repos["users"].create(user)
    return user


@pytest.fixture
def entry(repos):
    entry = CatalogEntry(
        slug="grafana",
        name="Grafana",
        image="grafana/grafana",
        category=AppCategory.MONITORING,
        ports=[PortMapping(container=3000, host=3000)],
        environment=[EnvVar(key="GF_SECURITY_ADMIN_PASSWORD", value="", required=True, description="Admin password")],
    )
    repos["catalog"].create(entry)
    return entry


class TestCatalogRepository:

    def test_round_trip(self, repos, entry):
        stored = repos["catalog"].get(entry.entry_id)

        assert stored.slug == "grafana"
        assert stored.category == AppCategory.MONITORING
        assert stored.ports == entry.ports
        assert stored.environment == entry.environment
        assert stored.created_at.tzinfo is not None

    def test_slug_unique(self, repos, entry):
        with pytest.raises(ConflictError):
            repos["catalog"].create(CatalogEntry(slug="grafana", name="Other", image="x"))

    def test_update_missing(self, repos):
        with pytest.raises(NotFoundError):
            repos["catalog"].update(CatalogEntry(slug="ghost", name="Ghost", image="ghost"))


class TestInstanceRepository:

    def test_round_trip_with_logs(self, repos, owner, entry):
        instance = InstalledInstance(
            entry_id=entry.entry_id,
            owner_id=owner.user_id,
            container_name="grafana-1",
            status=InstanceStatus.RUNNING,
            ports=[PortMapping(container=3000, host=3001, protocol="tcp")],
            volumes=[VolumeMapping(container="/var/lib/grafana", host="/data/grafana")],
        )
        instance.append_log("Application installed successfully")
        instance.append_log("disk almost full", LogLevel.WARN)
        repos["instances"].create(instance)

        stored = repos["instances"].get_by_container_name("grafana-1")

        assert stored.instance_id == instance.instance_id
        assert stored.status == InstanceStatus.RUNNING
        assert stored.volumes == instance.volumes
        assert [(log.message, log.level) for log in stored.logs] == [
            ("Application installed successfully", LogLevel.INFO),
            ("disk almost full", LogLevel.WARN),
        ]
        assert repos["instances"].count_by_entry(entry.entry_id) == 1

    def test_list_by_owner_and_delete(self, repos, owner, entry):
        mine = InstalledInstance(entry_id=entry.entry_id, owner_id=owner.user_id, container_name="a")
        theirs = InstalledInstance(entry_id=entry.entry_id, owner_id=uuid4(), container_name="b")
        repos["instances"].create(mine)
        repos["instances"].create(theirs)

        assert [i.container_name for i in repos["instances"].list(owner_id=owner.user_id)] == ["a"]
        assert repos["instances"].delete(mine.instance_id) is True
        assert repos["instances"].delete(mine.instance_id) is False


class TestDomainAndMailRepositories:

    def test_domain_round_trip(self, repos, owner):
        domain = DomainRecord(
            name="example.com",
            owner_id=owner.user_id,
            verification_token="abc123",
            dns_records=[DNSRecord(record_type="MX", name="@", value="mail.example.com", priority=10)],
            settings=DomainSettings(catch_all=True, catch_all_address="all@example.com"),
        )
        repos["domains"].create(domain)

        stored = repos["domains"].get_by_name("example.com")

        assert stored.dns_records == domain.dns_records
        assert stored.settings.catch_all_address == "all@example.com"
        assert stored.is_verified is False

    def test_mail_account_email_unique(self, repos, owner):
        domain = DomainRecord(name="example.com", owner_id=owner.user_id, verification_token="t")
        repos["domains"].create(domain)

        account = MailAccount(
            username="info",
            domain_id=domain.domain_id,
            domain_name="example.com",
            owner_id=owner.user_id,
            password_hash="hash",
            aliases=["hello@example.com"],
        )
        repos["mail"].create(account)

        stored = repos["mail"].get_by_email("info@example.com")
        assert stored.aliases == ["hello@example.com"]
        assert [a.email for a in repos["mail"].list(domain_id=domain.domain_id)] == ["info@example.com"]

        duplicate = MailAccount(
            username="info",
            domain_id=domain.domain_id,
            domain_name="example.com",
            owner_id=owner.user_id,
            password_hash="hash",
        )
        with pytest.raises(ConflictError):
            repos["mail"].create(duplicate)

    def test_user_timestamps_are_aware(self, repos, owner):
        owner.last_login = datetime(2024, 1, 1, tzinfo=timezone.utc)
        repos["users"].update(owner)

        stored = repos["users"].get_by_email("owner@example.com")
        assert stored.last_login == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert repos["users"].count() == 1
