"""Derived cache repository - thumbnail and preview blobs.

Writes are upserts keyed by image. Nothing here reacts to edits: the
rendering pipeline decides when a cache row is stale and calls
``invalidate`` or overwrites it.
"""

import logging
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session

from darkroom.core.errors import NotFound
from darkroom.models.base import utcnow
from darkroom.models.cache import Preview, Thumbnail
from darkroom.models.image import Image

from .base import BaseRepository

logger = logging.getLogger(__name__)


class CacheRepository(BaseRepository[Thumbnail]):
    """Repository for Thumbnail and Preview rows."""

    resource = "thumbnail"

    def __init__(self, session: Session):
        super().__init__(session, Thumbnail)

    def put_thumbnail(
        self,
        image_id: int,
        thumb_256: Optional[bytes],
        thumb_1024: Optional[bytes],
    ) -> Thumbnail:
        """Store both thumbnail tiers for an image, replacing any existing row."""
        self._require_image(image_id)
        values = {
            "thumb_256": thumb_256,
            "thumb_1024": thumb_1024,
            "updated_at": utcnow(),
        }
        stmt = sqlite_insert(Thumbnail.__table__).values(image_id=image_id, **values)  # type: ignore[attr-defined]
        stmt = stmt.on_conflict_do_update(index_elements=["image_id"], set_=values)
        self.session.execute(stmt)
        thumbnail = self.get_thumbnail(image_id)
        assert thumbnail is not None
        return thumbnail

    def put_preview(self, image_id: int, preview_blob: Optional[bytes]) -> Preview:
        """Store the preview for an image, replacing any existing row."""
        self._require_image(image_id)
        values = {"preview_blob": preview_blob, "updated_at": utcnow()}
        stmt = sqlite_insert(Preview.__table__).values(image_id=image_id, **values)  # type: ignore[attr-defined]
        stmt = stmt.on_conflict_do_update(index_elements=["image_id"], set_=values)
        self.session.execute(stmt)
        preview = self.get_preview(image_id)
        assert preview is not None
        return preview

    def get_thumbnail(self, image_id: int) -> Optional[Thumbnail]:
        return self.session.get(Thumbnail, image_id, populate_existing=True)

    def get_preview(self, image_id: int) -> Optional[Preview]:
        return self.session.get(Preview, image_id, populate_existing=True)

    def invalidate(self, image_id: int) -> int:
        """Drop both cache rows of an image.

        Returns:
            Number of rows removed
        """
        removed = 0
        for model in (Thumbnail, Preview):
            result = self.session.execute(delete(model).where(model.image_id == image_id))
            removed += result.rowcount
        if removed:
            logger.debug(f"Invalidated {removed} cache rows for image {image_id}")
        return removed

    def _require_image(self, image_id: int) -> None:
        if self.session.get(Image, image_id) is None:
            raise NotFound("image", image_id)
