# control_panel/registry/templates/postgres.py
"""PostgreSQL catalog entry."""

from control_panel.registry.models import (
    CatalogEntry, AppCategory, PortMapping, VolumeMapping, EnvVar
)


POSTGRES_TEMPLATE = CatalogEntry(
    slug="postgresql",
    name="PostgreSQL",
    description="Powerful open source database",
    icon="postgresql",
    category=AppCategory.DATABASE,

    image="postgres",
    tag="15",

    ports=[PortMapping(container=5432, host=5432)],
    volumes=[VolumeMapping(container="/var/lib/postgresql/data", host="/data/postgres")],
    environment=[
        EnvVar(key="POSTGRES_PASSWORD", value="", required=True, description="Postgres password"),
        EnvVar(key="POSTGRES_USER", value="postgres", required=False, description="User name"),
        EnvVar(key="POSTGRES_DB", value="", required=False, description="Default database"),
    ],

    min_memory=512,
    min_cpu=1,
    website="https://postgresql.org",
    is_popular=True,
)
