# control_panel/registry/templates/wordpress.py
"""WordPress catalog entry - blog and CMS, needs an external MySQL."""

from control_panel.registry.models import (
    CatalogEntry, AppCategory, PortMapping, VolumeMapping, EnvVar
)


WORDPRESS_TEMPLATE = CatalogEntry(
    slug="wordpress",
    name="WordPress",
    description="Popular blogging and CMS platform",
    icon="wordpress",
    category=AppCategory.WEB,

    image="wordpress",
    tag="latest",

    ports=[PortMapping(container=80, host=8080)],
    volumes=[VolumeMapping(container="/var/www/html", host="/data/wordpress")],
    environment=[
        EnvVar(key="WORDPRESS_DB_HOST", value="", required=True, description="MySQL host"),
        EnvVar(key="WORDPRESS_DB_USER", value="", required=True, description="MySQL user"),
        EnvVar(key="WORDPRESS_DB_PASSWORD", value="", required=True, description="MySQL password"),
        EnvVar(key="WORDPRESS_DB_NAME", value="wordpress", required=True, description="Database name"),
    ],

    min_memory=256,
    min_cpu=0.5,
    website="https://wordpress.org",
    is_popular=True,
)
