# control_panel/registry/templates/nodejs.py
"""Node.js runtime catalog entry."""

from control_panel.registry.models import (
    CatalogEntry, AppCategory, PortMapping, VolumeMapping, EnvVar
)


NODEJS_TEMPLATE = CatalogEntry(
    slug="nodejs",
    name="Node.js",
    description="JavaScript runtime environment",
    icon="nodejs",
    category=AppCategory.DEVELOPMENT,

    image="node",
    tag="20-alpine",

    ports=[PortMapping(container=3000, host=3002)],
    volumes=[VolumeMapping(container="/app", host="/data/nodejs")],
    environment=[
        EnvVar(key="NODE_ENV", value="production", required=False, description="Environment"),
    ],

    min_memory=256,
    min_cpu=0.5,
    website="https://nodejs.org",
    is_popular=False,
)
