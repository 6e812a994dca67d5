"""
Chunked batch import.

Large imports are split into small write transactions so that no single
writer holds the catalog lock for the whole run. Each chunk commits as a
unit; when a chunk fails it is rolled back and replayed one item at a time,
so a single bad record only costs itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .catalog import Catalog
from .core.errors import CatalogError
from .db.repositories import FolderRepository, ImageRepository

logger = logging.getLogger(__name__)


@dataclass
class ImageImport:
    """One image to import: the folder it lives in and its attributes."""

    folder_path: Union[str, Path]
    attributes: Mapping[str, Any] = field(default_factory=dict)


def _create_batches(items: List[ImageImport], batch_size: int) -> List[List[ImageImport]]:
    return [items[i : i + batch_size] for i in range(0, len(items), batch_size)]


def _import_one(
    folders: FolderRepository, images: ImageRepository, item: ImageImport
) -> int:
    folder = folders.get_or_create(item.folder_path)
    image = images.import_image(folder.id, item.attributes)
    return image.id


def _describe(item: ImageImport) -> str:
    return str(item.attributes.get("original_path") or item.folder_path)


def import_batch(
    catalog: Catalog,
    items: Iterable[ImageImport],
    batch_size: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Import many images, one transaction per chunk.

    Args:
        catalog: Open catalog to import into
        items: Images to import, in order
        batch_size: Items per transaction (default: settings.import_batch_size)

    Returns:
        Dict with success_count, error_count, total_items, errors and the
        ids of the imported images in input order
    """
    items = list(items)
    if not items:
        return {
            "success_count": 0,
            "error_count": 0,
            "total_items": 0,
            "errors": [],
            "image_ids": [],
        }

    batch_size = batch_size or catalog.settings.import_batch_size
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    batches = _create_batches(items, batch_size)
    logger.debug(f"Importing {len(items)} images in {len(batches)} batches")

    image_ids: List[int] = []
    errors: List[Dict[str, Any]] = []

    for batch in batches:
        try:
            with catalog.transaction() as session:
                folders = FolderRepository(session)
                images = ImageRepository(session)
                batch_ids = [_import_one(folders, images, item) for item in batch]
            image_ids.extend(batch_ids)
            continue
        except CatalogError as e:
            logger.debug(f"Batch of {len(batch)} failed ({e}); retrying item by item")

        for item in batch:
            try:
                with catalog.transaction() as session:
                    image_id = _import_one(
                        FolderRepository(session), ImageRepository(session), item
                    )
                image_ids.append(image_id)
            except CatalogError as e:
                logger.warning(f"Error importing {_describe(item)}: {e}")
                errors.append({"item": _describe(item), "error": e.to_dict()})

    result = {
        "success_count": len(image_ids),
        "error_count": len(errors),
        "total_items": len(items),
        "errors": errors,
        "image_ids": image_ids,
    }
    logger.info(
        f"Imported {result['success_count']}/{result['total_items']} images "
        f"({result['error_count']} errors)"
    )
    return result
