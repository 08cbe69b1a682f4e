# control_panel/registry/templates/redis.py
"""Redis catalog entry."""

from control_panel.registry.models import CatalogEntry, AppCategory, PortMapping, VolumeMapping


REDIS_TEMPLATE = CatalogEntry(
    slug="redis",
    name="Redis",
    description="In-memory data structure store",
    icon="redis",
    category=AppCategory.DATABASE,

    image="redis",
    tag="7",

    ports=[PortMapping(container=6379, host=6379)],
    volumes=[VolumeMapping(container="/data", host="/data/redis")],
    environment=[],

    min_memory=128,
    min_cpu=0.25,
    website="https://redis.io",
    is_popular=True,
)
