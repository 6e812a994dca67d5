"""Folder repository for data access."""

import logging
import os
from pathlib import PurePath
from typing import List, Optional, Union

from sqlalchemy import func, or_
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, select

from darkroom.core.errors import ConstraintViolation
from darkroom.models.base import utcnow
from darkroom.models.folder import Folder
from darkroom.models.image import Image

from .base import BaseRepository
from .image import chronological, like_pattern

logger = logging.getLogger(__name__)

PathLike = Union[str, PurePath]


def normalize_folder_path(path: PathLike) -> str:
    """Canonical string form used as the folder's unique key."""
    raw = str(path).strip()
    if not raw:
        raise ConstraintViolation(
            "folder path must not be blank", entity="folder", field="path", value=path
        )
    return os.path.normpath(raw)


class FolderRepository(BaseRepository[Folder]):
    """Repository for Folder operations."""

    resource = "folder"

    def __init__(self, session: Session):
        """Initialize folder repository.

        Args:
            session: SQLModel database session
        """
        super().__init__(session, Folder)

    def get_by_path(self, path: PathLike) -> Optional[Folder]:
        stmt = select(Folder).where(Folder.path == normalize_folder_path(path))
        return self.session.exec(stmt).first()

    def get_or_create(self, path: PathLike) -> Folder:
        """Return the folder for ``path``, creating it if needed.

        Concurrent creators of the same path all end up with the one row:
        the insert is a no-op when the path is already present.

        Args:
            path: Directory path

        Returns:
            The folder row
        """
        normalized = normalize_folder_path(path)
        now = utcnow()
        stmt = (
            sqlite_insert(Folder.__table__)  # type: ignore[attr-defined]
            .values(path=normalized, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=["path"])
        )
        result = self.session.execute(stmt)
        if result.rowcount:
            logger.debug(f"Created folder {normalized}")
        folder = self.get_by_path(normalized)
        assert folder is not None
        return folder

    def list_folders(self) -> List[Folder]:
        stmt = select(Folder).order_by(Folder.path)
        return list(self.session.exec(stmt).all())

    def search(self, text: str) -> List[Folder]:
        """Folders whose path contains ``text``, ignoring case."""
        term = (text or "").strip()
        if not term:
            return []
        stmt = (
            select(Folder)
            .where(Folder.path.ilike(like_pattern(term), escape="\\"))  # type: ignore[attr-defined]
            .order_by(Folder.path)
        )
        return list(self.session.exec(stmt).all())

    def list_images(self, path: PathLike) -> List[Image]:
        """Images directly inside the folder at ``path``."""
        folder = self.get_by_path(path)
        if folder is None:
            return []
        stmt = (
            select(Image)
            .where(Image.folder_id == folder.id)
            .order_by(*chronological())
        )
        return list(self.session.exec(stmt).all())

    def list_images_recursively(self, path: PathLike) -> List[Image]:
        """Images in the folder at ``path`` and in every folder below it."""
        normalized = normalize_folder_path(path)
        prefix = normalized if normalized.endswith(os.sep) else normalized + os.sep
        stmt = (
            select(Image)
            .join(Folder, Folder.id == Image.folder_id)
            .where(
                or_(
                    Folder.path == normalized,
                    Folder.path.startswith(prefix, autoescape=True),  # type: ignore[attr-defined]
                )
            )
            .order_by(*chronological())
        )
        return list(self.session.exec(stmt).all())

    def delete_folder(self, folder_id: int) -> int:
        """Delete a folder together with every image it contains.

        Each image's edit state, history, keyword assignments, collection
        memberships and cache rows are removed in the same transaction.

        Returns:
            Number of images removed
        """
        folder = self.get_or_fail(folder_id)
        image_count = self.session.exec(
            select(func.count()).select_from(Image).where(Image.folder_id == folder_id)
        ).one()
        self.delete(folder)
        logger.info(f"Deleted folder {folder.path} and {image_count} images")
        return int(image_count)
