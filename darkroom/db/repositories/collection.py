"""Collection repository - collection tree and ordered memberships."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlmodel import Session, select

from darkroom.core.errors import ConstraintViolation, NotFound
from darkroom.models.base import utcnow
from darkroom.models.collection import Collection, CollectionImage
from darkroom.models.image import Image

from .base import BaseRepository

logger = logging.getLogger(__name__)


def _normalize_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ConstraintViolation(
            "collection name must not be blank",
            entity="collection",
            field="name",
            value=name,
        )
    return cleaned


class CollectionRepository(BaseRepository[Collection]):
    """Repository for Collection operations."""

    resource = "collection"

    def __init__(self, session: Session):
        super().__init__(session, Collection)

    def create_collection(self, name: str, parent_id: Optional[int] = None) -> Collection:
        """Create a collection, optionally nested under ``parent_id``.

        Raises:
            NotFound: If the parent does not exist
        """
        if parent_id is not None:
            self.get_or_fail(parent_id)
        collection = Collection(name=_normalize_name(name), parent_id=parent_id)
        self.add(collection)
        logger.debug(f"Created collection '{collection.name}' (id={collection.id})")
        return collection

    def rename_collection(self, collection_id: int, name: str) -> Collection:
        collection = self.get_or_fail(collection_id)
        collection.name = _normalize_name(name)
        return self.update(collection)

    def move_collection(
        self, collection_id: int, parent_id: Optional[int]
    ) -> Collection:
        """Re-parent a collection; a node cannot move below itself."""
        collection = self.get_or_fail(collection_id)
        if parent_id is not None:
            self.get_or_fail(parent_id)
            if collection_id in self.ancestor_ids(parent_id, include_self=True):
                raise ConstraintViolation(
                    "a collection cannot be moved into its own subtree",
                    entity="collection",
                    field="parent_id",
                    value=parent_id,
                )
        collection.parent_id = parent_id
        return self.update(collection)

    def delete_collection(self, collection_id: int) -> None:
        """Delete a collection, its descendants and their memberships.

        Member images are never deleted.
        """
        collection = self.get_or_fail(collection_id)
        self.delete(collection)
        logger.debug(f"Deleted collection '{collection.name}' and its subtree")

    def list_collections(self) -> List[Collection]:
        stmt = select(Collection).order_by(Collection.name, Collection.id)
        return list(self.session.exec(stmt).all())

    def children(self, parent_id: Optional[int]) -> List[Collection]:
        """Direct children of a collection; ``None`` lists the roots."""
        if parent_id is None:
            condition = Collection.parent_id.is_(None)  # type: ignore[union-attr]
        else:
            self.get_or_fail(parent_id)
            condition = Collection.parent_id == parent_id
        stmt = select(Collection).where(condition).order_by(Collection.name, Collection.id)
        return list(self.session.exec(stmt).all())

    def ancestor_ids(self, collection_id: int, include_self: bool = False) -> List[int]:
        """Ids from the collection up to its root."""
        ids: List[int] = [collection_id] if include_self else []
        current = self.get_or_fail(collection_id)
        while current.parent_id is not None:
            ids.append(current.parent_id)
            current = self.get_or_fail(current.parent_id)
        return ids

    def add_to_collection(
        self, collection_id: int, image_id: int, position: Optional[int] = None
    ) -> CollectionImage:
        """Add an image to a collection.

        Args:
            collection_id: Target collection
            image_id: Image to add
            position: Explicit position; default appends after the last member

        Raises:
            NotFound: If the collection or image does not exist
            ConstraintViolation: If the image is already a member
        """
        self.get_or_fail(collection_id)
        if self.session.get(Image, image_id) is None:
            raise NotFound("image", image_id)
        if self.membership(collection_id, image_id) is not None:
            raise ConstraintViolation(
                f"image {image_id} is already in collection {collection_id}",
                entity="collection_image",
                details={"collection_id": collection_id, "image_id": image_id},
            )
        if position is None:
            position = self._next_position(collection_id)
        elif isinstance(position, bool) or not isinstance(position, int) or position < 0:
            raise ConstraintViolation(
                "position must be a non-negative integer",
                entity="collection_image",
                field="position",
                value=position,
            )

        member = CollectionImage(
            collection_id=collection_id,
            image_id=image_id,
            position=position,
            added_at=utcnow(),
        )
        self.session.add(member)
        self.flush()
        return member

    def remove_from_collection(self, collection_id: int, image_id: int) -> bool:
        """Remove a membership. Returns False if there was none."""
        member = self.membership(collection_id, image_id)
        if member is None:
            return False
        self.session.delete(member)
        self.flush()
        return True

    def membership(self, collection_id: int, image_id: int) -> Optional[CollectionImage]:
        return self.session.get(CollectionImage, (collection_id, image_id))

    def memberships(self, collection_id: int) -> List[CollectionImage]:
        """Memberships of a collection in display order."""
        stmt = (
            select(CollectionImage)
            .where(CollectionImage.collection_id == collection_id)
            .order_by(CollectionImage.position, CollectionImage.added_at, CollectionImage.image_id)
        )
        return list(self.session.exec(stmt).all())

    def list_images(self, collection_id: int) -> List[Image]:
        """Images of a collection in display order."""
        self.get_or_fail(collection_id)
        stmt = (
            select(Image)
            .join(CollectionImage, CollectionImage.image_id == Image.id)
            .where(CollectionImage.collection_id == collection_id)
            .order_by(CollectionImage.position, CollectionImage.added_at, Image.id)
        )
        return list(self.session.exec(stmt).all())

    def reorder(
        self, collection_id: int, ordered_image_ids: Sequence[int]
    ) -> List[CollectionImage]:
        """Renumber a collection's memberships to positions 0..n-1.

        Listed images come first in the given order; members not listed keep
        their current relative order after them.

        Raises:
            ConstraintViolation: If an id repeats or is not a member
        """
        self.get_or_fail(collection_id)
        members = self.memberships(collection_id)
        by_image = {m.image_id: m for m in members}

        seen = set()
        for image_id in ordered_image_ids:
            if image_id in seen:
                raise ConstraintViolation(
                    f"image {image_id} listed twice",
                    entity="collection_image",
                    field="image_id",
                    value=image_id,
                )
            if image_id not in by_image:
                raise ConstraintViolation(
                    f"image {image_id} is not in collection {collection_id}",
                    entity="collection_image",
                    field="image_id",
                    value=image_id,
                )
            seen.add(image_id)

        ordered = [by_image[i] for i in ordered_image_ids]
        ordered += [m for m in members if m.image_id not in seen]
        for position, member in enumerate(ordered):
            member.position = position
        self.flush()
        return ordered

    def _next_position(self, collection_id: int) -> int:
        stmt = select(func.max(CollectionImage.position)).where(
            CollectionImage.collection_id == collection_id
        )
        current = self.session.exec(stmt).one()
        return 0 if current is None else current + 1
