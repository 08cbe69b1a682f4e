# control_panel/registry/templates/nginx.py
"""Nginx catalog entry - lightweight static web server."""

from control_panel.registry.models import CatalogEntry, AppCategory, PortMapping, VolumeMapping


NGINX_TEMPLATE = CatalogEntry(
    slug="nginx",
    name="Nginx",
    description="High performance web server",
    icon="nginx",
    category=AppCategory.WEB,

    image="nginx",
    tag="alpine",

    ports=[
        PortMapping(container=80, host=80),
        PortMapping(container=443, host=443),
    ],
    volumes=[
        VolumeMapping(container="/usr/share/nginx/html", host="/data/nginx/html"),
        VolumeMapping(container="/etc/nginx/conf.d", host="/data/nginx/conf"),
    ],
    environment=[],

    min_memory=64,
    min_cpu=0.25,
    website="https://nginx.org",
    is_popular=True,
)
