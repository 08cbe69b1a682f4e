"""Default catalog entries."""

from .wordpress import WORDPRESS_TEMPLATE
from .mysql import MYSQL_TEMPLATE
from .postgres import POSTGRES_TEMPLATE
from .redis import REDIS_TEMPLATE
from .nginx import NGINX_TEMPLATE
from .nextcloud import NEXTCLOUD_TEMPLATE
from .gitlab import GITLAB_TEMPLATE
from .portainer import PORTAINER_TEMPLATE
from .grafana import GRAFANA_TEMPLATE
from .nodejs import NODEJS_TEMPLATE


DEFAULT_TEMPLATES = [
    WORDPRESS_TEMPLATE,
    MYSQL_TEMPLATE,
    POSTGRES_TEMPLATE,
    REDIS_TEMPLATE,
    NGINX_TEMPLATE,
    NEXTCLOUD_TEMPLATE,
    GITLAB_TEMPLATE,
    PORTAINER_TEMPLATE,
    GRAFANA_TEMPLATE,
    NODEJS_TEMPLATE,
]


__all__ = [
    "WORDPRESS_TEMPLATE", "MYSQL_TEMPLATE", "POSTGRES_TEMPLATE", "REDIS_TEMPLATE",
    "NGINX_TEMPLATE", "NEXTCLOUD_TEMPLATE", "GITLAB_TEMPLATE", "PORTAINER_TEMPLATE",
    "GRAFANA_TEMPLATE", "NODEJS_TEMPLATE", "DEFAULT_TEMPLATES",
]
