# control_panel/registry/templates/gitlab.py
"""GitLab CE catalog entry."""

from control_panel.registry.models import (
    CatalogEntry, AppCategory, PortMapping, VolumeMapping, EnvVar
)


GITLAB_TEMPLATE = CatalogEntry(
    slug="gitlab",
    name="GitLab",
    description="DevOps platform and Git repository management",
    icon="gitlab",
    category=AppCategory.DEVELOPMENT,

    image="gitlab/gitlab-ce",
    tag="latest",

    ports=[
        PortMapping(container=80, host=8082),
        PortMapping(container=443, host=8443),
        PortMapping(container=22, host=2222),
    ],
    volumes=[
        VolumeMapping(container="/etc/gitlab", host="/data/gitlab/config"),
        VolumeMapping(container="/var/log/gitlab", host="/data/gitlab/logs"),
        VolumeMapping(container="/var/opt/gitlab", host="/data/gitlab/data"),
    ],
    environment=[
        EnvVar(key="GITLAB_OMNIBUS_CONFIG", value="", required=False, description="Omnibus configuration"),
    ],

    # GitLab will not boot with less
    min_memory=4096,
    min_cpu=2,
    website="https://gitlab.com",
    is_popular=True,
)
