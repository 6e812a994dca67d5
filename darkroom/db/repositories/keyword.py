"""Keyword repository - vocabulary and image assignments."""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import delete
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, select

from darkroom.core.errors import ConstraintViolation, NotFound
from darkroom.models.base import utcnow
from darkroom.models.image import Image
from darkroom.models.keyword import ImageKeyword, Keyword

from .base import BaseRepository
from .image import chronological, like_pattern

logger = logging.getLogger(__name__)


def normalize_keyword(text: str) -> str:
    keyword = (text or "").strip()
    if not keyword:
        raise ConstraintViolation(
            "keyword must not be blank", entity="keyword", field="keyword", value=text
        )
    return keyword


class KeywordRepository(BaseRepository[Keyword]):
    """Repository for Keyword operations."""

    resource = "keyword"

    def __init__(self, session: Session):
        super().__init__(session, Keyword)

    def get_keyword(self, text: str) -> Optional[Keyword]:
        stmt = select(Keyword).where(Keyword.keyword == normalize_keyword(text))
        return self.session.exec(stmt).first()

    def ensure_keyword(self, text: str) -> Keyword:
        """Get or create a keyword by its text."""
        keyword = normalize_keyword(text)
        stmt = (
            sqlite_insert(Keyword.__table__)  # type: ignore[attr-defined]
            .values(keyword=keyword)
            .on_conflict_do_nothing(index_elements=["keyword"])
        )
        if self.session.execute(stmt).rowcount:
            logger.debug(f"Created keyword '{keyword}'")
        found = self.get_keyword(keyword)
        assert found is not None
        return found

    def list_keywords(self) -> List[Keyword]:
        return list(self.session.exec(select(Keyword).order_by(Keyword.keyword)).all())

    def search(self, text: str) -> List[Keyword]:
        """Keywords containing ``text``, ignoring case."""
        term = (text or "").strip()
        if not term:
            return []
        stmt = (
            select(Keyword)
            .where(Keyword.keyword.ilike(like_pattern(term), escape="\\"))  # type: ignore[attr-defined]
            .order_by(Keyword.keyword)
        )
        return list(self.session.exec(stmt).all())

    def delete_keyword(self, keyword_id: int) -> None:
        """Delete a keyword and its assignments; images are untouched."""
        keyword = self.get_or_fail(keyword_id)
        self.delete(keyword)
        logger.debug(f"Deleted keyword '{keyword.keyword}'")

    def tag_image(self, image_id: int, keyword_id: int) -> bool:
        """Assign a keyword to an image.

        Returns:
            True if a new assignment was made, False if it already existed
        """
        self._require_image(image_id)
        self.get_or_fail(keyword_id)
        stmt = (
            sqlite_insert(ImageKeyword.__table__)  # type: ignore[attr-defined]
            .values(image_id=image_id, keyword_id=keyword_id, assigned_at=utcnow())
            .on_conflict_do_nothing(index_elements=["image_id", "keyword_id"])
        )
        return bool(self.session.execute(stmt).rowcount)

    def untag_image(self, image_id: int, keyword_id: int) -> bool:
        """Remove an assignment.

        Returns:
            True if an assignment was removed, False if there was none
        """
        stmt = delete(ImageKeyword).where(
            ImageKeyword.image_id == image_id,
            ImageKeyword.keyword_id == keyword_id,
        )
        return bool(self.session.execute(stmt).rowcount)

    def tag_image_with(self, image_id: int, text: str) -> Keyword:
        """Ensure the keyword exists and assign it to the image."""
        self._require_image(image_id)
        keyword = self.ensure_keyword(text)
        self.tag_image(image_id, keyword.id)  # type: ignore[arg-type]
        return keyword

    def keywords_for_image(self, image_id: int) -> List[Keyword]:
        stmt = (
            select(Keyword)
            .join(ImageKeyword, ImageKeyword.keyword_id == Keyword.id)
            .where(ImageKeyword.image_id == image_id)
            .order_by(Keyword.keyword)
        )
        return list(self.session.exec(stmt).all())

    def images_for_keyword(self, text: str, exact: bool = False) -> List[Image]:
        """Images tagged with a keyword; substring match unless ``exact``."""
        keyword = normalize_keyword(text)
        if exact:
            condition = Keyword.keyword == keyword
        else:
            condition = Keyword.keyword.ilike(like_pattern(keyword), escape="\\")  # type: ignore[attr-defined]
        stmt = (
            select(Image)
            .join(ImageKeyword, ImageKeyword.image_id == Image.id)
            .join(Keyword, Keyword.id == ImageKeyword.keyword_id)
            .where(condition)
            .distinct()
            .order_by(*chronological())
        )
        return list(self.session.exec(stmt).all())

    def set_image_keywords(self, image_id: int, texts: Iterable[str]) -> List[Keyword]:
        """Make the image's keyword set exactly ``texts``.

        Entries are trimmed and blank ones ignored.

        Returns:
            The image's keywords afterwards
        """
        self._require_image(image_id)
        desired = {t.strip() for t in texts if t and t.strip()}
        current = {k.keyword: k for k in self.keywords_for_image(image_id)}

        for text in sorted(desired - set(current)):
            self.tag_image_with(image_id, text)
        for text in sorted(set(current) - desired):
            self.untag_image(image_id, current[text].id)  # type: ignore[arg-type]
        return self.keywords_for_image(image_id)

    def _require_image(self, image_id: int) -> None:
        if self.session.get(Image, image_id) is None:
            raise NotFound("image", image_id)
