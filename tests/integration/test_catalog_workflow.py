"""Integration tests for complete catalog workflows.

These tests drive a real on-disk catalog through the Catalog facade, one
committed transaction per operation.
"""

import threading
from datetime import datetime

import pytest
from sqlalchemy import func, select, text

from darkroom import Catalog, ConstraintViolation, NotFound
from darkroom.db.repositories import FolderRepository, ImageRepository
from darkroom.models import (
    CatalogMetadata,
    CollectionImage,
    EditHistoryEntry,
    EditState,
    Image,
    ImageKeyword,
    Preview,
    Thumbnail,
)

pytestmark = pytest.mark.integration


def _count(catalog: Catalog, model) -> int:
    with catalog.session() as session:
        return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestCatalogLifecycle:
    def test_open_creates_file_and_metadata(self, catalog_path):
        with Catalog.open(catalog_path) as catalog:
            metadata = catalog.metadata()

        assert catalog_path.exists()
        assert metadata.schema_version == 1
        assert metadata.last_opened is not None

    def test_reopen_keeps_single_metadata_row(self, catalog_path):
        for _ in range(3):
            with Catalog.open(catalog_path) as catalog:
                catalog.initialize()

        with Catalog.open(catalog_path) as catalog:
            assert _count(catalog, CatalogMetadata) == 1

    def test_data_survives_reopen(self, catalog_path):
        with Catalog.open(catalog_path) as catalog:
            folder = catalog.get_or_create_folder("/photos/2024")
            catalog.import_image(
                folder.id, {"filename": "IMG_0001.CR3", "original_path": "/photos/2024/IMG_0001.CR3"}
            )

        with Catalog.open(catalog_path) as catalog:
            assert catalog.count_images() == 1
            assert catalog.get_image_by_path("/photos/2024/IMG_0001.CR3") is not None

    def test_timestamps_survive_reopen(self, catalog_path):
        captured = datetime(2024, 1, 15, 12, 0, 0, 123456)
        with Catalog.open(catalog_path) as catalog:
            folder = catalog.get_or_create_folder("/photos/2024")
            image = catalog.import_image(
                folder.id,
                {
                    "filename": "IMG_0001.CR3",
                    "original_path": "/photos/2024/IMG_0001.CR3",
                    "captured_at": captured,
                },
            )

        with Catalog.open(catalog_path) as catalog:
            reloaded = catalog.get_image(image.id)
            metadata = catalog.metadata()

        assert reloaded.captured_at == captured
        assert reloaded.captured_at.tzinfo is None
        assert metadata.last_opened.tzinfo is None

    def test_wal_and_foreign_keys_enabled(self, catalog):
        with catalog.session() as session:
            assert session.execute(text("PRAGMA journal_mode")).scalar() == "wal"
            assert session.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_maintenance(self, catalog):
        catalog.get_or_create_folder("/photos")
        catalog.maintenance()
        assert len(catalog.list_folders()) == 1


class TestLibraryScenario:
    def test_import_edit_tag_collect_then_delete_folder(self, catalog):
        folder = catalog.get_or_create_folder("/photos/2024")
        image = catalog.import_image(
            folder.id,
            {
                "filename": "IMG_0001",
                "original_path": "/photos/2024/IMG_0001",
                "rating": 5,
                "flag": "picked",
            },
        )
        assert _count(catalog, Image) == 1
        assert catalog.get_edit(image.id) is None

        catalog.apply_edit(image.id, {"exposure": 0.5})
        assert _count(catalog, EditState) == 1
        assert _count(catalog, EditHistoryEntry) == 1

        sunset = catalog.tag_image_with(image.id, "sunset")
        assert _count(catalog, ImageKeyword) == 1

        best = catalog.create_collection("Best of 2024")
        membership = catalog.add_to_collection(best.id, image.id, position=0)
        assert membership.position == 0
        assert _count(catalog, CollectionImage) == 1

        catalog.put_thumbnail(image.id, b"256", b"1024")
        catalog.put_preview(image.id, b"preview")

        assert catalog.delete_folder(folder.id) == 1

        for model in (Image, EditState, EditHistoryEntry, ImageKeyword, CollectionImage, Thumbnail, Preview):
            assert _count(catalog, model) == 0, model.__name__
        assert catalog.get_keyword("sunset").id == sunset.id
        assert catalog.images_for_keyword("sunset", exact=True) == []
        assert catalog.get_collection(best.id).name == "Best of 2024"
        assert catalog.collection_images(best.id) == []

    def test_image_details(self, catalog):
        folder = catalog.get_or_create_folder("/photos")
        image = catalog.import_image(folder.id, {"filename": "a.jpg", "original_path": "/photos/a.jpg"})
        catalog.set_image_keywords(image.id, ["sunset", "beach"])

        details = catalog.image_details(image.id)

        assert details.image.id == image.id
        assert details.keywords == ["beach", "sunset"]
        with pytest.raises(NotFound):
            catalog.image_details(image.id + 1)

    def test_edit_history_replay(self, catalog):
        folder = catalog.get_or_create_folder("/photos")
        image = catalog.import_image(folder.id, {"filename": "a.jpg", "original_path": "/photos/a.jpg"})
        for value in (0.1, 0.2, 0.3):
            catalog.apply_edit(image.id, {"exposure": value})

        snapshots = catalog.replay_edits(image.id)

        assert [s.exposure for s in snapshots] == [0.1, 0.2, 0.3]
        assert catalog.get_snapshot(image.id).exposure == 0.3
        assert catalog.snapshot_at(image.id, 0).exposure == 0.1
        assert len(catalog.edit_history(image.id)) == 3
        assert _count(catalog, EditState) == 1

        with pytest.raises(ConstraintViolation):
            catalog.replay_edits(image.id, count=-1)

    def test_keyword_and_folder_search(self, catalog):
        summer = catalog.get_or_create_folder("/photos/2024/Summer")
        catalog.get_or_create_folder("/photos/2023/Winter")
        image = catalog.import_image(
            summer.id, {"filename": "a.jpg", "original_path": "/photos/2024/Summer/a.jpg"}
        )
        catalog.set_image_keywords(image.id, ["Sunset", "beach", "sunrise"])

        assert [k.keyword for k in catalog.search_keywords("SUN")] == ["Sunset", "sunrise"]
        assert [f.path for f in catalog.search_folders("summer")] == ["/photos/2024/Summer"]
        assert catalog.search_keywords("  ") == []
        assert catalog.search_folders("") == []


class TestTransactions:
    def test_failed_operation_leaves_no_trace(self, catalog):
        folder = catalog.get_or_create_folder("/photos")
        image = catalog.import_image(folder.id, {"filename": "a.jpg", "original_path": "/photos/a.jpg"})

        with pytest.raises(ConstraintViolation):
            catalog.apply_edit(image.id, {"exposure": 1.0, "crop": {"x": 0.9, "width": 0.9}})

        assert catalog.get_edit(image.id) is None
        assert catalog.edit_history(image.id) == []

    def test_exception_rolls_back_whole_unit(self, catalog):
        folder = catalog.get_or_create_folder("/photos")

        with pytest.raises(RuntimeError):
            with catalog.transaction() as session:
                images = ImageRepository(session)
                images.import_image(folder.id, {"filename": "a.jpg", "original_path": "/photos/a.jpg"})
                FolderRepository(session).get_or_create("/photos/other")
                raise RuntimeError("cancelled")

        assert catalog.count_images() == 0
        assert catalog.get_folder_by_path("/photos/other") is None

    def test_constraint_violation_inside_unit(self, catalog):
        folder = catalog.get_or_create_folder("/photos")
        attrs = {"filename": "a.jpg", "original_path": "/photos/a.jpg"}

        with pytest.raises(ConstraintViolation):
            with catalog.transaction() as session:
                images = ImageRepository(session)
                images.import_image(folder.id, attrs)
                images.import_image(folder.id, attrs)

        assert catalog.count_images() == 0

    def test_readers_do_not_see_uncommitted_rows(self, catalog):
        folder = catalog.get_or_create_folder("/photos")
        seen = []

        with catalog.transaction() as session:
            ImageRepository(session).import_image(
                folder.id, {"filename": "a.jpg", "original_path": "/photos/a.jpg"}
            )
            reader = threading.Thread(target=lambda: seen.append(catalog.count_images()))
            reader.start()
            reader.join(timeout=10)

        assert seen == [0]
        assert catalog.count_images() == 1

    def test_concurrent_writers_are_serialized(self, catalog):
        folder = catalog.get_or_create_folder("/photos")
        errors = []

        def worker(start: int) -> None:
            try:
                for i in range(start, start + 10):
                    catalog.import_image(
                        folder.id, {"filename": f"{i}.jpg", "original_path": f"/photos/{i}.jpg"}
                    )
            except Exception as e:  # pragma: no cover - surfaced by the assertion
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n * 10,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert catalog.count_images() == 40


class TestDerivedCaches:
    def test_cache_roundtrip_and_invalidate(self, catalog):
        folder = catalog.get_or_create_folder("/photos")
        image = catalog.import_image(folder.id, {"filename": "a.jpg", "original_path": "/photos/a.jpg"})

        catalog.put_thumbnail(image.id, b"small", b"large")
        catalog.put_preview(image.id, b"preview")
        assert catalog.get_thumbnail(image.id).thumb_1024 == b"large"

        assert catalog.invalidate_caches(image.id) == 2
        assert catalog.get_thumbnail(image.id) is None
        assert catalog.get_preview(image.id) is None
