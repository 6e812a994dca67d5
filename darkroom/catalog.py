"""Catalog facade: one photo library's store, opened by path.

Every public mutation runs as one write transaction: either all rows it
touches are committed or none are. Writers are serialized by a process-wide
lock and by SQLite's write lock (``BEGIN IMMEDIATE``); reads use a separate
engine and never block on a writer.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from sqlmodel import Session, SQLModel

from .db.config import Settings, settings as default_settings
from .db.connection import create_catalog_engine, create_session_factory
from .db.repositories import (
    CacheRepository,
    CatalogMetadataRepository,
    CollectionRepository,
    EditRepository,
    FolderRepository,
    ImageRepository,
    KeywordRepository,
)
from .models import (
    CatalogMetadata,
    Collection,
    CollectionImage,
    EditHistoryEntry,
    EditSnapshot,
    EditState,
    Folder,
    Image,
    Keyword,
    Preview,
    Thumbnail,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass
class ImageDetails:
    """An image together with its keyword texts."""

    image: Image
    keywords: List[str] = field(default_factory=list)


class Catalog:
    """Persistent catalog store for one photo library."""

    def __init__(self, path: Union[str, Path], settings: Optional[Settings] = None):
        """Bind to the catalog file at ``path`` without touching it.

        Use ``Catalog.open()`` to create the schema and bootstrap metadata.
        """
        self.settings = settings or default_settings
        self.path = Path(path).expanduser()
        self._writer_engine = create_catalog_engine(
            self.path,
            writer=True,
            echo=self.settings.sql_echo,
            busy_timeout_ms=self.settings.busy_timeout_ms,
        )
        self._reader_engine = create_catalog_engine(
            self.path,
            writer=False,
            echo=self.settings.sql_echo,
            busy_timeout_ms=self.settings.busy_timeout_ms,
        )
        self._writer_sessions = create_session_factory(self._writer_engine)
        self._reader_sessions = create_session_factory(self._reader_engine)
        self._write_lock = threading.Lock()

    @classmethod
    def open(
        cls, path: Optional[Union[str, Path]] = None, settings: Optional[Settings] = None
    ) -> "Catalog":
        """Open (creating if needed) the catalog at ``path``.

        Creates missing tables, inserts the metadata row if absent and
        records the open time.
        """
        settings = settings or default_settings
        path = Path(path or settings.catalog_path).expanduser()
        is_new = not path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)

        catalog = cls(path, settings)
        catalog.create_schema()
        with catalog.transaction() as session:
            repo = CatalogMetadataRepository(session)
            repo.initialize()
            metadata = repo.touch_opened()
        logger.info(
            f"{'Created' if is_new else 'Opened'} catalog {path} "
            f"(schema v{metadata.schema_version})"
        )
        return catalog

    def create_schema(self) -> None:
        SQLModel.metadata.create_all(self._writer_engine)

    def close(self) -> None:
        self._writer_engine.dispose()
        self._reader_engine.dispose()

    def __enter__(self) -> "Catalog":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a unit of work as one atomic write transaction.

        Commits when the block exits normally; any exception rolls back
        every change made in the block and propagates. Do not nest.
        """
        with self._write_lock:
            session = self._writer_sessions()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Read-only session over a consistent snapshot. Never commits."""
        session = self._reader_sessions()
        try:
            yield session
        finally:
            session.close()

    def _write(self, repo_cls: Type[Any], call: Callable[[Any], R]) -> R:
        with self.transaction() as session:
            return call(repo_cls(session))

    def _read(self, repo_cls: Type[Any], call: Callable[[Any], R]) -> R:
        with self.session() as session:
            return call(repo_cls(session))

    # Catalog metadata

    def metadata(self) -> CatalogMetadata:
        return self._read(CatalogMetadataRepository, lambda r: r.current())

    def initialize(self) -> CatalogMetadata:
        return self._write(CatalogMetadataRepository, lambda r: r.initialize())

    def touch_opened(self) -> CatalogMetadata:
        return self._write(CatalogMetadataRepository, lambda r: r.touch_opened())

    def set_schema_version(self, version: int) -> CatalogMetadata:
        return self._write(
            CatalogMetadataRepository, lambda r: r.set_schema_version(version)
        )

    def maintenance(self) -> None:
        """Refresh statistics, then VACUUM the file."""
        self._write(CatalogMetadataRepository, lambda r: r.maintenance())
        self.vacuum()

    def vacuum(self) -> None:
        # VACUUM cannot run inside a transaction; use the bare driver connection
        with self._write_lock:
            raw = self._writer_engine.raw_connection()
            try:
                raw.driver_connection.execute("VACUUM")  # type: ignore[union-attr]
            finally:
                raw.close()
        logger.info(f"Vacuumed catalog {self.path}")

    # Folders

    def get_or_create_folder(self, path: Union[str, Path]) -> Folder:
        return self._write(FolderRepository, lambda r: r.get_or_create(path))

    def get_folder(self, folder_id: int) -> Folder:
        return self._read(FolderRepository, lambda r: r.get_or_fail(folder_id))

    def get_folder_by_path(self, path: Union[str, Path]) -> Optional[Folder]:
        return self._read(FolderRepository, lambda r: r.get_by_path(path))

    def delete_folder(self, folder_id: int) -> int:
        return self._write(FolderRepository, lambda r: r.delete_folder(folder_id))

    def list_folders(self) -> List[Folder]:
        return self._read(FolderRepository, lambda r: r.list_folders())

    def list_images_in_folder(self, path: Union[str, Path]) -> List[Image]:
        return self._read(FolderRepository, lambda r: r.list_images(path))

    def list_images_recursively(self, path: Union[str, Path]) -> List[Image]:
        return self._read(FolderRepository, lambda r: r.list_images_recursively(path))

    def search_folders(self, text: str) -> List[Folder]:
        return self._read(FolderRepository, lambda r: r.search(text))

    # Images

    def import_image(self, folder_id: int, attributes: Mapping[str, Any]) -> Image:
        return self._write(
            ImageRepository, lambda r: r.import_image(folder_id, attributes)
        )

    def update_metadata(self, image_id: int, fields: Mapping[str, Any]) -> Image:
        return self._write(ImageRepository, lambda r: r.update_metadata(image_id, fields))

    def set_rating(self, image_id: int, rating: Optional[int]) -> Image:
        return self._write(ImageRepository, lambda r: r.set_rating(image_id, rating))

    def set_flag(self, image_id: int, flag: Optional[str]) -> Image:
        return self._write(ImageRepository, lambda r: r.set_flag(image_id, flag))

    def set_color_label(self, image_id: int, color_label: Optional[str]) -> Image:
        return self._write(
            ImageRepository, lambda r: r.set_color_label(image_id, color_label)
        )

    def set_sidecar(
        self, image_id: int, sidecar_path: Optional[str], sidecar_hash: Optional[str] = None
    ) -> Image:
        return self._write(
            ImageRepository, lambda r: r.set_sidecar(image_id, sidecar_path, sidecar_hash)
        )

    def delete_image(self, image_id: int) -> None:
        self._write(ImageRepository, lambda r: r.delete_image(image_id))

    def get_image(self, image_id: int) -> Image:
        return self._read(ImageRepository, lambda r: r.get_or_fail(image_id))

    def get_image_by_path(self, original_path: Union[str, Path]) -> Optional[Image]:
        return self._read(ImageRepository, lambda r: r.get_by_path(str(original_path)))

    def find_image_by_hash(self, file_hash: str) -> Optional[Image]:
        return self._read(ImageRepository, lambda r: r.find_by_hash(file_hash))

    def list_images(self, limit: Optional[int] = None, offset: int = 0) -> List[Image]:
        return self._read(ImageRepository, lambda r: r.list_all(limit, offset))

    def count_images(self) -> int:
        return self._read(ImageRepository, lambda r: r.count())

    def count_by_camera(self) -> Dict[str, int]:
        return self._read(ImageRepository, lambda r: r.count_by_camera())

    def recently_imported(self, limit: int = 50) -> List[Image]:
        return self._read(ImageRepository, lambda r: r.recently_imported(limit))

    def last_import_timestamp(self) -> Optional[datetime]:
        return self._read(ImageRepository, lambda r: r.last_import_timestamp())

    def list_last_import(self, since: Optional[datetime] = None) -> List[Image]:
        return self._read(ImageRepository, lambda r: r.list_last_import(since))

    def images_with_rating(self, rating: Optional[int]) -> List[Image]:
        return self._read(ImageRepository, lambda r: r.images_with_rating(rating))

    def search(self, text: str) -> List[Image]:
        return self._read(ImageRepository, lambda r: r.search(text))

    def image_details(self, image_id: int) -> ImageDetails:
        with self.session() as session:
            image = ImageRepository(session).get_or_fail(image_id)
            keywords = KeywordRepository(session).keywords_for_image(image_id)
            return ImageDetails(image=image, keywords=[k.keyword for k in keywords])

    # Edits

    def apply_edit(
        self, image_id: int, snapshot: Union[EditSnapshot, Mapping[str, Any]]
    ) -> EditState:
        state, _ = self._write(EditRepository, lambda r: r.apply_edit(image_id, snapshot))
        return state

    def get_edit(self, image_id: int) -> Optional[EditState]:
        return self._read(EditRepository, lambda r: r.get_edit(image_id))

    def get_snapshot(self, image_id: int) -> Optional[EditSnapshot]:
        return self._read(EditRepository, lambda r: r.get_snapshot(image_id))

    def edit_history(self, image_id: int) -> List[EditHistoryEntry]:
        return self._read(EditRepository, lambda r: r.history(image_id))

    def replay_edits(self, image_id: int, count: Optional[int] = None) -> List[EditSnapshot]:
        return self._read(EditRepository, lambda r: r.replay(image_id, count))

    def snapshot_at(self, image_id: int, index: int) -> EditSnapshot:
        return self._read(EditRepository, lambda r: r.snapshot_at(image_id, index))

    # Keywords

    def ensure_keyword(self, text: str) -> Keyword:
        return self._write(KeywordRepository, lambda r: r.ensure_keyword(text))

    def get_keyword(self, text: str) -> Optional[Keyword]:
        return self._read(KeywordRepository, lambda r: r.get_keyword(text))

    def list_keywords(self) -> List[Keyword]:
        return self._read(KeywordRepository, lambda r: r.list_keywords())

    def search_keywords(self, text: str) -> List[Keyword]:
        return self._read(KeywordRepository, lambda r: r.search(text))

    def delete_keyword(self, keyword_id: int) -> None:
        self._write(KeywordRepository, lambda r: r.delete_keyword(keyword_id))

    def tag_image(self, image_id: int, keyword_id: int) -> bool:
        return self._write(KeywordRepository, lambda r: r.tag_image(image_id, keyword_id))

    def untag_image(self, image_id: int, keyword_id: int) -> bool:
        return self._write(KeywordRepository, lambda r: r.untag_image(image_id, keyword_id))

    def tag_image_with(self, image_id: int, text: str) -> Keyword:
        return self._write(KeywordRepository, lambda r: r.tag_image_with(image_id, text))

    def set_image_keywords(self, image_id: int, texts: Sequence[str]) -> List[Keyword]:
        return self._write(
            KeywordRepository, lambda r: r.set_image_keywords(image_id, texts)
        )

    def keywords_for_image(self, image_id: int) -> List[Keyword]:
        return self._read(KeywordRepository, lambda r: r.keywords_for_image(image_id))

    def images_for_keyword(self, text: str, exact: bool = False) -> List[Image]:
        return self._read(KeywordRepository, lambda r: r.images_for_keyword(text, exact))

    # Collections

    def create_collection(self, name: str, parent_id: Optional[int] = None) -> Collection:
        return self._write(
            CollectionRepository, lambda r: r.create_collection(name, parent_id)
        )

    def rename_collection(self, collection_id: int, name: str) -> Collection:
        return self._write(
            CollectionRepository, lambda r: r.rename_collection(collection_id, name)
        )

    def move_collection(self, collection_id: int, parent_id: Optional[int]) -> Collection:
        return self._write(
            CollectionRepository, lambda r: r.move_collection(collection_id, parent_id)
        )

    def delete_collection(self, collection_id: int) -> None:
        self._write(CollectionRepository, lambda r: r.delete_collection(collection_id))

    def get_collection(self, collection_id: int) -> Collection:
        return self._read(CollectionRepository, lambda r: r.get_or_fail(collection_id))

    def list_collections(self) -> List[Collection]:
        return self._read(CollectionRepository, lambda r: r.list_collections())

    def child_collections(self, parent_id: Optional[int]) -> List[Collection]:
        return self._read(CollectionRepository, lambda r: r.children(parent_id))

    def add_to_collection(
        self, collection_id: int, image_id: int, position: Optional[int] = None
    ) -> CollectionImage:
        return self._write(
            CollectionRepository,
            lambda r: r.add_to_collection(collection_id, image_id, position),
        )

    def remove_from_collection(self, collection_id: int, image_id: int) -> bool:
        return self._write(
            CollectionRepository,
            lambda r: r.remove_from_collection(collection_id, image_id),
        )

    def reorder_collection(
        self, collection_id: int, ordered_image_ids: Sequence[int]
    ) -> List[CollectionImage]:
        return self._write(
            CollectionRepository, lambda r: r.reorder(collection_id, ordered_image_ids)
        )

    def collection_images(self, collection_id: int) -> List[Image]:
        return self._read(CollectionRepository, lambda r: r.list_images(collection_id))

    def collection_memberships(self, collection_id: int) -> List[CollectionImage]:
        return self._read(CollectionRepository, lambda r: r.memberships(collection_id))

    # Derived caches

    def put_thumbnail(
        self, image_id: int, thumb_256: Optional[bytes], thumb_1024: Optional[bytes]
    ) -> Thumbnail:
        return self._write(
            CacheRepository, lambda r: r.put_thumbnail(image_id, thumb_256, thumb_1024)
        )

    def put_preview(self, image_id: int, preview_blob: Optional[bytes]) -> Preview:
        return self._write(CacheRepository, lambda r: r.put_preview(image_id, preview_blob))

    def get_thumbnail(self, image_id: int) -> Optional[Thumbnail]:
        return self._read(CacheRepository, lambda r: r.get_thumbnail(image_id))

    def get_preview(self, image_id: int) -> Optional[Preview]:
        return self._read(CacheRepository, lambda r: r.get_preview(image_id))

    def invalidate_caches(self, image_id: int) -> int:
        return self._write(CacheRepository, lambda r: r.invalidate(image_id))
