# control_panel/registry/templates/grafana.py
"""Grafana catalog entry."""

from control_panel.registry.models import (
    CatalogEntry, AppCategory, PortMapping, VolumeMapping, EnvVar
)


GRAFANA_TEMPLATE = CatalogEntry(
    slug="grafana",
    name="Grafana",
    description="Metrics visualization platform",
    icon="grafana",
    category=AppCategory.MONITORING,

    image="grafana/grafana",
    tag="latest",

    ports=[PortMapping(container=3000, host=3001)],
    volumes=[VolumeMapping(container="/var/lib/grafana", host="/data/grafana")],
    environment=[
        EnvVar(key="GF_SECURITY_ADMIN_PASSWORD", value="", required=True, description="Admin password"),
    ],

    min_memory=256,
    min_cpu=0.5,
    website="https://grafana.com",
    is_popular=False,
)
