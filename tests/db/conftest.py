"""Test database configuration and fixtures.

Each test gets its own SQLite catalog file with the full schema, and a
writer session that is rolled back afterwards.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Generator

import pytest
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel

from darkroom.db.connection import create_catalog_engine, create_session_factory
from darkroom.models import Folder, Image


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """Create a writer engine over a fresh catalog file and build the schema."""
    engine = create_catalog_engine(tmp_path / "test.catalog", writer=True)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
    """Create a database session with automatic rollback."""
    factory = create_session_factory(db_engine)
    with factory() as session:
        yield session
        session.rollback()


@pytest.fixture
def folder(db_session: Session) -> Folder:
    """The folder /photos/2024."""
    from darkroom.db.repositories import FolderRepository

    return FolderRepository(db_session).get_or_create("/photos/2024")


@pytest.fixture
def make_image(db_session: Session, folder: Folder) -> Callable[..., Image]:
    """Factory importing an image into ``folder`` (or another folder id)."""
    from darkroom.db.repositories import ImageRepository

    repo = ImageRepository(db_session)

    def _make(filename: str = "IMG_0001.CR3", folder_id: Any = None, **attrs: Any) -> Image:
        attributes: Dict[str, Any] = {
            "filename": filename,
            "original_path": f"{folder.path}/{filename}",
        }
        attributes.update(attrs)
        return repo.import_image(folder_id or folder.id, attributes)

    return _make


@pytest.fixture
def sample_image_data() -> list[dict]:
    """Importer attributes with known values for predictable results."""
    base_time = datetime(2024, 1, 15, 12, 0, 0)

    return [
        {
            "filename": "IMG_001.CR3",
            "original_path": "/photos/2024/IMG_001.CR3",
            "file_hash": "sha256:abc123def456",
            "filesize": 25_000_000,
            "captured_at": base_time,
            "camera_make": "Canon",
            "camera_model": "EOS R5",
            "iso": 400,
            "aperture": 2.8,
            "metadata_json": {"location": "Sunset Beach", "keywords": ["ocean"]},
        },
        {
            "filename": "IMG_002.CR3",
            "original_path": "/photos/2024/IMG_002.CR3",
            "file_hash": "sha256:def789ghi012",
            "filesize": 32_000_000,
            "captured_at": datetime(2024, 1, 14, 9, 30, 0),
            "camera_make": "Canon",
            "camera_model": "EOS R5",
            "rating": 4,
        },
        {
            "filename": "DSC_003.NEF",
            "original_path": "/photos/2024/DSC_003.NEF",
            "file_hash": "sha256:unique123456",
            "filesize": 18_000_000,
            "camera_make": "Nikon",
            "metadata_json": {},
        },
    ]
