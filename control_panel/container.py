# control_panel/container.py
"""Service wiring. Production singletons live in `services`; tests call build_services()."""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import sessionmaker

from control_panel.config import PanelSettings, settings as panel_settings
from control_panel.core.events import (
    EventEmitter, LoggingEventEmitter, MultiEventEmitter, NotificationRelay, RelayEventEmitter
)
from control_panel.host.dns_lookup import DnsTxtResolver, TxtResolver
from control_panel.host.gateway import HostOperationsGateway
from control_panel.host.mail_config import MailConfigWriter
from control_panel.host.runner import HostCommandRunner, SubprocessCommandRunner
from control_panel.host.system_service import SystemService
from control_panel.infrastructure.postgres.repository import (
    CatalogRepository, DomainRepository, InstanceRepository, MailAccountRepository, UserRepository
)
from control_panel.orchestrator.instance_orchestrator import InstanceOrchestrator
from control_panel.registry.catalog_service import CatalogService
from control_panel.registry.domain_service import DomainService
from control_panel.registry.mail_service import MailService
from control_panel.registry.user_service import UserService
from control_panel.runtime.docker_runtime import ContainerRuntime, DockerRuntime
from control_panel.runtime.docker_service import DockerAdminService


@dataclass
class PanelServices:
    settings: PanelSettings
    relay: NotificationRelay
    emitter: EventEmitter
    runtime: ContainerRuntime
    gateway: HostOperationsGateway
    catalog: CatalogService
    orchestrator: InstanceOrchestrator
    domains: DomainService
    mail: MailService
    users: UserService
    docker: DockerAdminService
    system: SystemService


def build_services(
    session_factory: Optional[sessionmaker] = None,
    settings: Optional[PanelSettings] = None,
    runtime: Optional[ContainerRuntime] = None,
    runner: Optional[HostCommandRunner] = None,
    txt_resolver: Optional[TxtResolver] = None,
    mail_config: Optional[MailConfigWriter] = None,
    relay: Optional[NotificationRelay] = None,
) -> PanelServices:
    """Wire repositories, adapters and services. Every external collaborator can be swapped."""
    settings = settings or panel_settings
    relay = relay or NotificationRelay()
    emitter = MultiEventEmitter([LoggingEventEmitter(), RelayEventEmitter(relay)])

    # Repositories
    catalog_repo = CatalogRepository(session_factory)
    instance_repo = InstanceRepository(session_factory)
    domain_repo = DomainRepository(session_factory)
    mail_repo = MailAccountRepository(session_factory)
    user_repo = UserRepository(session_factory)

    # External adapters
    runtime = runtime or DockerRuntime(base_url=settings.docker_base_url)
    gateway = HostOperationsGateway(runner or SubprocessCommandRunner(), settings)
    mail_config = mail_config or MailConfigWriter(
        settings.postfix_vhosts_file,
        settings.postfix_vmailbox_file,
        settings.dovecot_users_file,
    )
    txt_resolver = txt_resolver or DnsTxtResolver()

    return PanelServices(
        settings=settings,
        relay=relay,
        emitter=emitter,
        runtime=runtime,
        gateway=gateway,
        catalog=CatalogService(catalog_repo, instance_repo),
        orchestrator=InstanceOrchestrator(
            catalog_repo,
            instance_repo,
            domain_repo,
            runtime,
            emitter,
            default_memory_mb=settings.default_memory_mb,
            default_cpu=settings.default_cpu,
        ),
        domains=DomainService(domain_repo, mail_repo, gateway, mail_config, txt_resolver, settings),
        mail=MailService(
            mail_repo,
            domain_repo,
            mail_config,
            gateway,
            mail_root=settings.mail_root,
            default_quota=settings.default_mail_quota,
        ),
        users=UserService(user_repo),
        docker=DockerAdminService(runtime, emitter),
        system=SystemService(gateway, settings, emitter),
    )


# Singletons
services = build_services()
