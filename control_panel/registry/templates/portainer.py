# control_panel/registry/templates/portainer.py
"""Portainer catalog entry."""

from control_panel.registry.models import CatalogEntry, AppCategory, PortMapping, VolumeMapping


PORTAINER_TEMPLATE = CatalogEntry(
    slug="portainer",
    name="Portainer",
    description="Docker management UI",
    icon="portainer",
    category=AppCategory.MONITORING,

    image="portainer/portainer-ce",
    tag="latest",

    ports=[PortMapping(container=9000, host=9000)],
    volumes=[
        VolumeMapping(container="/data", host="/data/portainer"),
        VolumeMapping(container="/var/run/docker.sock", host="/var/run/docker.sock"),
    ],
    environment=[],

    min_memory=128,
    min_cpu=0.25,
    website="https://portainer.io",
    is_popular=True,
)
