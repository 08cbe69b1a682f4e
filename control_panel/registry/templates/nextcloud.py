# control_panel/registry/templates/nextcloud.py
"""Nextcloud catalog entry - self-hosted file storage."""

from control_panel.registry.models import (
    CatalogEntry, AppCategory, PortMapping, VolumeMapping, EnvVar
)


NEXTCLOUD_TEMPLATE = CatalogEntry(
    slug="nextcloud",
    name="Nextcloud",
    description="Self-hosted cloud storage",
    icon="nextcloud",
    category=AppCategory.STORAGE,

    image="nextcloud",
    tag="latest",

    ports=[PortMapping(container=80, host=8081)],
    volumes=[VolumeMapping(container="/var/www/html", host="/data/nextcloud")],
    environment=[
        EnvVar(key="MYSQL_HOST", value="", required=True, description="MySQL host"),
        EnvVar(key="MYSQL_DATABASE", value="nextcloud", required=True, description="Database name"),
        EnvVar(key="MYSQL_USER", value="", required=True, description="MySQL user"),
        EnvVar(key="MYSQL_PASSWORD", value="", required=True, description="MySQL password"),
    ],

    min_memory=512,
    min_cpu=1,
    website="https://nextcloud.com",
    is_popular=True,
)
