# control_panel/seed_catalog.py
"""Seed the app catalog with the bundled templates."""

import logging

from control_panel.container import services
from control_panel.infrastructure.postgres.database import init_db

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    init_db()
    added = services.catalog.seed_defaults()
    logger.info(f"Added {added} app(s)")

    entries = services.catalog.list_entries()
    logger.info(f"Catalog now has {len(entries)} app(s)")
    for entry in entries:
        logger.info(f"  - {entry.slug}: {entry.name} ({entry.image_ref}, {entry.category.value})")


if __name__ == "__main__":
    main()
