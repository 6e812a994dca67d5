"""Edit state repository - current adjustments plus the history ledger."""

import logging
from datetime import timedelta
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError
from sqlmodel import Session, select

from darkroom.core.errors import ConstraintViolation, NotFound
from darkroom.models.adjustments import EditSnapshot
from darkroom.models.base import touch, utcnow
from darkroom.models.edit import EditHistoryEntry, EditState
from darkroom.models.image import Image

from .base import BaseRepository

logger = logging.getLogger(__name__)

# Smallest step SQLite's stored timestamps can tell apart
TICK = timedelta(microseconds=1)


def validate_snapshot(snapshot: Union[EditSnapshot, Mapping[str, Any]]) -> EditSnapshot:
    """Validate a complete edit snapshot.

    Raises:
        ConstraintViolation: Naming the first invalid adjustment or sub-object
    """
    if isinstance(snapshot, EditSnapshot):
        # Re-validate: model instances can be built with model_construct()
        snapshot = snapshot.model_dump(by_alias=True)
    try:
        return EditSnapshot.model_validate(dict(snapshot))
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False)
        first = errors[0]
        field = str(first["loc"][0]) if first["loc"] else None
        raise ConstraintViolation(
            f"invalid edit {field}: {first['msg']}",
            entity="edit",
            field=field,
            value=snapshot.get(field) if field else None,
            details={"errors": errors},
        ) from e


class EditRepository(BaseRepository[EditState]):
    """Repository for edit state and edit history.

    An image is unedited until its first ``apply_edit``; from then on it
    has exactly one EditState row and one history entry per save.
    """

    resource = "edit"

    def __init__(self, session: Session):
        super().__init__(session, EditState)

    def apply_edit(
        self, image_id: int, snapshot: Union[EditSnapshot, Mapping[str, Any]]
    ) -> Tuple[EditState, EditHistoryEntry]:
        """Save a complete adjustment snapshot for an image.

        Replaces every adjustment column of the image's EditState (creating
        it on the first save) and appends the snapshot to the history.

        Args:
            image_id: Image being edited
            snapshot: Full adjustment state from the editor

        Returns:
            The current EditState and the new history entry

        Raises:
            NotFound: If the image does not exist
            ConstraintViolation: If any adjustment or sub-object is invalid
        """
        validated = validate_snapshot(snapshot)
        if self.session.get(Image, image_id) is None:
            raise NotFound("image", image_id)

        now = utcnow()
        state = self.get_edit(image_id)
        if state is None:
            state = EditState(image_id=image_id, created_at=now, updated_at=now)
        else:
            touch(state)
        for column, value in validated.to_columns().items():
            setattr(state, column, value)
        self.session.add(state)

        entry = EditHistoryEntry(
            image_id=image_id,
            edits_json=validated.to_json(),
            created_at=self._next_history_time(image_id, now),
        )
        self.session.add(entry)
        self.flush()
        logger.debug(f"Applied edit to image {image_id} (history id={entry.id})")
        return state, entry

    def get_edit(self, image_id: int) -> Optional[EditState]:
        stmt = select(EditState).where(EditState.image_id == image_id)
        return self.session.exec(stmt).first()

    def get_snapshot(self, image_id: int) -> Optional[EditSnapshot]:
        """Current adjustments as a snapshot, or None if unedited."""
        state = self.get_edit(image_id)
        return EditSnapshot.from_columns(state) if state is not None else None

    def history(self, image_id: int) -> List[EditHistoryEntry]:
        """History entries for an image, oldest first."""
        if self.session.get(Image, image_id) is None:
            raise NotFound("image", image_id)
        stmt = (
            select(EditHistoryEntry)
            .where(EditHistoryEntry.image_id == image_id)
            .order_by(EditHistoryEntry.created_at, EditHistoryEntry.id)
        )
        return list(self.session.exec(stmt).all())

    def history_count(self, image_id: int) -> int:
        return len(self.history(image_id))

    def replay(self, image_id: int, count: Optional[int] = None) -> List[EditSnapshot]:
        """Rebuild the edit timeline from the ledger.

        Args:
            image_id: Image whose history to replay
            count: Only the first ``count`` saves (default: all)

        Raises:
            ConstraintViolation: If ``count`` is negative

        Returns:
            Snapshots in save order
        """
        if count is not None and (
            isinstance(count, bool) or not isinstance(count, int) or count < 0
        ):
            raise ConstraintViolation(
                "count must be a non-negative integer",
                entity=self.resource,
                field="count",
                value=count,
            )
        entries = self.history(image_id)
        if count is not None:
            entries = entries[:count]
        return [EditSnapshot.model_validate(entry.edits_json) for entry in entries]

    def snapshot_at(self, image_id: int, index: int) -> EditSnapshot:
        """The snapshot of one save; negative indexes count from the latest."""
        entries = self.history(image_id)
        try:
            entry = entries[index]
        except IndexError:
            raise NotFound("edit_history", f"image {image_id} index {index}") from None
        return EditSnapshot.model_validate(entry.edits_json)

    def _next_history_time(self, image_id: int, now: Any) -> Any:
        # Keep created_at strictly increasing per image even if the clock
        # stalls or steps backwards.
        stmt = (
            select(EditHistoryEntry.created_at)
            .where(EditHistoryEntry.image_id == image_id)
            .order_by(EditHistoryEntry.created_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        latest = self.session.exec(stmt).first()
        if latest is not None and now <= latest:
            return latest + TICK
        return now
