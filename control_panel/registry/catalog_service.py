#control_panel\registry\catalog_service.py

"""Catalog service - manages installable application templates."""

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from control_panel.core.access import Action, authorize
from control_panel.core.errors import ConflictError, NotFoundError, ValidationError
from control_panel.infrastructure.postgres.repository import CatalogRepository, InstanceRepository
from control_panel.registry.models import AppCategory, CatalogEntry
from control_panel.registry.templates import DEFAULT_TEMPLATES

logger = logging.getLogger(__name__)


UPDATABLE_FIELDS = {
    "name", "description", "icon", "category", "image", "tag", "ports", "volumes",
    "environment", "min_memory", "min_cpu", "website", "documentation", "is_popular",
}


class CatalogService:
    """Catalog CRUD. Reads are open to every user, writes are admin-only."""

    def __init__(self, catalog_repo: CatalogRepository, instance_repo: InstanceRepository):
        self._catalog_repo = catalog_repo
        self._instance_repo = instance_repo

    # ============================================
    # READ
    # ============================================

    def list_entries(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        popular_only: bool = False,
    ) -> List[CatalogEntry]:
        """List catalog entries, popular first."""
        return self._catalog_repo.list(
            category=self._parse_category(category) if category else None,
            search=search,
            popular_only=popular_only,
        )

    def get_entry(self, entry_id: UUID) -> CatalogEntry:
        entry = self._catalog_repo.get(entry_id)
        if not entry:
            raise NotFoundError(f"App {entry_id} not found")
        return entry

    def get_by_slug(self, slug: str) -> CatalogEntry:
        entry = self._catalog_repo.get_by_slug(slug)
        if not entry:
            raise NotFoundError(f"App '{slug}' not found")
        return entry

    def categories(self) -> List[str]:
        return [c.value for c in AppCategory]

    # ============================================
    # WRITE (admin)
    # ============================================

    def create_entry(self, subject, entry: CatalogEntry) -> CatalogEntry:
        """
        Add an entry to the catalog.

        Raises:
            ConflictError: slug already taken
        """
        authorize(subject, Action.MANAGE)
        if not entry.slug:
            raise ValidationError("Slug is required")
        if self._catalog_repo.get_by_slug(entry.slug):
            raise ConflictError(f"Slug '{entry.slug}' is already in use")

        self._catalog_repo.create(entry)
        logger.info(f"[catalog] added {entry.slug} by {subject.email}")
        return entry

    def update_entry(self, subject, entry_id: UUID, changes: Dict[str, Any]) -> CatalogEntry:
        """Apply changes; slug is the immutable identity and cannot be changed."""
        authorize(subject, Action.MANAGE)
        entry = self.get_entry(entry_id)

        if "slug" in changes and changes["slug"] != entry.slug:
            raise ValidationError("Slug cannot be changed")

        updates = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}
        if "category" in updates and not isinstance(updates["category"], AppCategory):
            updates["category"] = self._parse_category(updates["category"])

        entry = dataclasses.replace(entry, updated_at=datetime.now(timezone.utc), **updates)
        self._catalog_repo.update(entry)
        return entry

    def delete_entry(self, subject, entry_id: UUID) -> None:
        """Remove an entry; refused while installed instances still reference it."""
        authorize(subject, Action.MANAGE)
        entry = self.get_entry(entry_id)

        in_use = self._instance_repo.count_by_entry(entry_id)
        if in_use:
            raise ConflictError(f"App '{entry.slug}' has {in_use} installed instance(s)")

        self._catalog_repo.delete(entry_id)
        logger.info(f"[catalog] removed {entry.slug} by {subject.email}")

    def seed_defaults(self, subject=None) -> int:
        """Insert bundled entries whose slug is not present yet. Returns how many were added."""
        if subject is not None:
            authorize(subject, Action.MANAGE)

        added = 0
        for template in DEFAULT_TEMPLATES:
            if self._catalog_repo.get_by_slug(template.slug):
                continue
            now = datetime.now(timezone.utc)
            self._catalog_repo.create(
                dataclasses.replace(template, entry_id=uuid4(), created_at=now, updated_at=now)
            )
            added += 1

        logger.info(f"[catalog] seeded {added} default app(s)")
        return added

    # ============================================
    # HELPERS
    # ============================================

    def _parse_category(self, value: str) -> AppCategory:
        try:
            return AppCategory(value)
        except ValueError:
            raise ValidationError(
                f"Unknown category '{value}', expected one of {', '.join(self.categories())}"
            )
