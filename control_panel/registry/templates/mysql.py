# control_panel/registry/templates/mysql.py
"""MySQL catalog entry."""

from control_panel.registry.models import (
    CatalogEntry, AppCategory, PortMapping, VolumeMapping, EnvVar
)


MYSQL_TEMPLATE = CatalogEntry(
    slug="mysql",
    name="MySQL",
    description="Popular relational database",
    icon="mysql",
    category=AppCategory.DATABASE,

    image="mysql",
    tag="8.0",

    ports=[PortMapping(container=3306, host=3306)],
    volumes=[VolumeMapping(container="/var/lib/mysql", host="/data/mysql")],
    environment=[
        EnvVar(key="MYSQL_ROOT_PASSWORD", value="", required=True, description="Root password"),
        EnvVar(key="MYSQL_DATABASE", value="", required=False, description="Default database"),
    ],

    min_memory=512,
    min_cpu=1,
    website="https://mysql.com",
    is_popular=True,
)
