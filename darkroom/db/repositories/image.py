"""Image repository for data access."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError
from sqlalchemy import String, cast, func, or_
from sqlmodel import Session, select

from darkroom.core.errors import ConstraintViolation, NotFound
from darkroom.models.folder import Folder
from darkroom.models.image import IMAGE_ATTRIBUTE_FIELDS, Image, ImageCreate

from .base import BaseRepository

logger = logging.getLogger(__name__)

UNKNOWN_CAMERA = "Unknown"


def chronological() -> Tuple[Any, ...]:
    """Order by capture time, images without one last."""
    return (Image.captured_at.is_(None), Image.captured_at, Image.id)  # type: ignore[union-attr]


def like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def validate_image_attributes(attributes: Mapping[str, Any]) -> ImageCreate:
    """Check image attributes against the catalog's constraints.

    Raises:
        ConstraintViolation: Naming the first offending field
    """
    try:
        return ImageCreate.model_validate(dict(attributes))
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False)
        first = errors[0]
        field = str(first["loc"][0]) if first["loc"] else None
        raise ConstraintViolation(
            f"invalid image {field}: {first['msg']}",
            entity="image",
            field=field,
            value=attributes.get(field) if field else None,
            details={"errors": errors},
        ) from e


def _normalize_choice(value: Any) -> Any:
    # "", "none" and surrounding whitespace/case are accepted for flag and label
    if isinstance(value, str):
        value = value.strip().lower()
        if value in ("", "none"):
            return None
    return value


class ImageRepository(BaseRepository[Image]):
    """Repository for Image operations."""

    resource = "image"

    def __init__(self, session: Session):
        """Initialize image repository.

        Args:
            session: SQLModel database session
        """
        super().__init__(session, Image)

    def import_image(
        self, folder_id: int, attributes: Union[Mapping[str, Any], ImageCreate]
    ) -> Image:
        """Record a newly imported image under a folder.

        Args:
            folder_id: Owning folder
            attributes: Importer-supplied fields (filename, original_path, ...)

        Returns:
            The new image row

        Raises:
            NotFound: If the folder does not exist
            ConstraintViolation: If original_path is already catalogued or an
                attribute is out of range
        """
        if self.session.get(Folder, folder_id) is None:
            raise NotFound("folder", folder_id)
        if isinstance(attributes, ImageCreate):
            attributes = attributes.model_dump(exclude_unset=True)
        validated = validate_image_attributes(attributes)
        self._ensure_path_free(validated.original_path)

        image = Image(folder_id=folder_id, **validated.model_dump())
        self.add(image)
        logger.debug(f"Imported image {image.original_path} (id={image.id})")
        return image

    def update_metadata(self, image_id: int, fields: Mapping[str, Any]) -> Image:
        """Partially update an image.

        The merged row is validated as a whole before anything is written, so
        one bad field leaves every column untouched.
        """
        image = self.get_or_fail(image_id)
        unknown = sorted(set(fields) - IMAGE_ATTRIBUTE_FIELDS)
        if unknown:
            raise ConstraintViolation(
                f"unknown image fields: {', '.join(unknown)}",
                entity="image",
                field=unknown[0],
                value=fields[unknown[0]],
            )
        current = {name: getattr(image, name) for name in IMAGE_ATTRIBUTE_FIELDS}
        validated = validate_image_attributes({**current, **fields})
        if validated.original_path != image.original_path:
            self._ensure_path_free(validated.original_path)

        for name in fields:
            setattr(image, name, getattr(validated, name))
        return self.update(image)

    def set_rating(self, image_id: int, rating: Optional[int]) -> Image:
        return self.update_metadata(image_id, {"rating": rating})

    def set_flag(self, image_id: int, flag: Optional[str]) -> Image:
        return self.update_metadata(image_id, {"flag": _normalize_choice(flag)})

    def set_color_label(self, image_id: int, color_label: Optional[str]) -> Image:
        return self.update_metadata(
            image_id, {"color_label": _normalize_choice(color_label)}
        )

    def set_sidecar(
        self, image_id: int, sidecar_path: Optional[str], sidecar_hash: Optional[str] = None
    ) -> Image:
        return self.update_metadata(
            image_id,
            {
                "sidecar_path": str(sidecar_path) if sidecar_path is not None else None,
                "sidecar_hash": sidecar_hash,
            },
        )

    def delete_image(self, image_id: int) -> None:
        """Delete an image and everything it owns or is referenced by."""
        image = self.get_or_fail(image_id)
        self.delete(image)
        logger.debug(f"Deleted image {image.original_path} (id={image_id})")

    def get_by_path(self, original_path: str) -> Optional[Image]:
        stmt = select(Image).where(Image.original_path == str(original_path))
        return self.session.exec(stmt).first()

    def find_by_hash(self, file_hash: str) -> Optional[Image]:
        stmt = select(Image).where(Image.file_hash == file_hash).order_by(Image.id)
        return self.session.exec(stmt).first()

    def list_all(self, limit: Optional[int] = None, offset: int = 0) -> List[Image]:
        stmt = select(Image).order_by(*chronological()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.exec(stmt).all())

    def recently_imported(self, limit: int = 50) -> List[Image]:
        stmt = (
            select(Image)
            .order_by(Image.imported_at.desc(), Image.id.desc())  # type: ignore[attr-defined,union-attr]
            .limit(limit)
        )
        return list(self.session.exec(stmt).all())

    def last_import_timestamp(self) -> Optional[datetime]:
        return self.session.exec(select(func.max(Image.imported_at))).one()

    def list_last_import(self, since: Optional[datetime] = None) -> List[Image]:
        """Images imported at or after ``since`` (default: the latest import)."""
        cutoff = since or self.last_import_timestamp()
        if cutoff is None:
            return []
        stmt = (
            select(Image).where(Image.imported_at >= cutoff).order_by(*chronological())
        )
        return list(self.session.exec(stmt).all())

    def images_with_rating(self, rating: Optional[int]) -> List[Image]:
        if rating is None:
            stmt = select(Image).where(Image.rating.is_(None))  # type: ignore[union-attr]
        else:
            stmt = select(Image).where(Image.rating == rating)
        return list(self.session.exec(stmt.order_by(*chronological())).all())

    def count_by_camera(self) -> Dict[str, int]:
        """Image counts keyed by camera model, else make, else "Unknown"."""
        camera = func.coalesce(Image.camera_model, Image.camera_make, UNKNOWN_CAMERA)
        stmt = select(camera, func.count()).group_by(camera)
        return {name: int(count) for name, count in self.session.exec(stmt).all()}

    def search(self, text: str, limit: int = 200) -> List[Image]:
        """Case-insensitive substring match on filename, path and metadata."""
        term = text.strip()
        if not term:
            return []
        pattern = like_pattern(term)
        stmt = (
            select(Image)
            .where(
                or_(
                    Image.filename.ilike(pattern, escape="\\"),  # type: ignore[attr-defined]
                    Image.original_path.ilike(pattern, escape="\\"),  # type: ignore[attr-defined]
                    cast(Image.metadata_json, String).ilike(pattern, escape="\\"),
                )
            )
            .order_by(*chronological())
            .limit(limit)
        )
        return list(self.session.exec(stmt).all())

    def _ensure_path_free(self, original_path: str) -> None:
        if self.get_by_path(original_path) is not None:
            raise ConstraintViolation(
                f"image already catalogued: {original_path}",
                entity="image",
                field="original_path",
                value=original_path,
            )
