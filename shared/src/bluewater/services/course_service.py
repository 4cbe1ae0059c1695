"""Catalog lookups and the atomic course reordering transaction."""

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any

from bluewater.models import (
    CatalogSummary,
    Course,
    ErrorCode,
    NotFoundError,
    Rental,
    RentalStatus,
    Trip,
    ValidationError,
)
from bluewater.services.dynamodb import MAX_TRANSACTION_ITEMS

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = logging.getLogger(__name__)


def parse_course_ids(raw_ids: list[Any]) -> list[int]:
    """Validate a client-supplied course order.

    Every entry must be an integer or a string of digits. Duplicates are
    dropped, keeping the first occurrence.

    Raises:
        ValidationError: If the list is empty, too long or has a non-numeric entry.
    """
    if not raw_ids:
        raise ValidationError(ErrorCode.INVALID_COURSE_ORDER, "Course order is empty")

    parsed: list[int] = []
    invalid: list[str] = []
    for raw in raw_ids:
        if isinstance(raw, bool):
            invalid.append(str(raw))
        elif isinstance(raw, int):
            parsed.append(raw)
        elif isinstance(raw, str):
            try:
                parsed.append(int(raw))
            except ValueError:
                invalid.append(raw)
        else:
            invalid.append(str(raw))

    if invalid:
        raise ValidationError(
            ErrorCode.INVALID_COURSE_ORDER,
            details={"invalid_ids": invalid},
        )

    unique = list(dict.fromkeys(parsed))
    if len(unique) != len(parsed):
        logger.warning(
            "Course order contained duplicate ids; keeping first occurrence: %s",
            parsed,
        )

    if len(unique) > MAX_TRANSACTION_ITEMS:
        raise ValidationError(
            ErrorCode.INVALID_COURSE_ORDER,
            f"At most {MAX_TRANSACTION_ITEMS} courses can be reordered at once",
        )
    return unique


class CourseService:
    """Read access to courses, trips and rentals, plus course reordering."""

    COURSES_TABLE = "courses"
    TRIPS_TABLE = "trips"
    RENTALS_TABLE = "rentals"

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def get_course(self, course_id: int) -> Course | None:
        item = self.db.get_item(self.COURSES_TABLE, {"course_id": course_id})
        return self._item_to_course(item) if item else None

    def get_trip(self, trip_id: int) -> Trip | None:
        item = self.db.get_item(self.TRIPS_TABLE, {"trip_id": trip_id})
        return self._item_to_trip(item) if item else None

    def get_rental(self, rental_id: int) -> Rental | None:
        item = self.db.get_item(self.RENTALS_TABLE, {"rental_id": rental_id})
        return self._item_to_rental(item) if item else None

    def list_courses(self) -> list[Course]:
        """All courses ordered by order_index, then id."""
        courses = [self._item_to_course(i) for i in self.db.scan(self.COURSES_TABLE)]
        return sorted(courses, key=lambda c: (c.order_index, c.id))

    def update_course_order(self, raw_ids: list[Any]) -> list[Course]:
        """Renumber courses to the given order in one transaction.

        Position i (0-based) in the list becomes order_index i + 1. Either every
        listed course is renumbered or none is.

        Args:
            raw_ids: Course IDs in the desired display order

        Returns:
            The reordered courses, re-read after the commit

        Raises:
            ValidationError: If the list is malformed.
            NotFoundError: If any ID has no course.
        """
        course_ids = parse_course_ids(raw_ids)

        found = self.db.batch_get(
            self.COURSES_TABLE, [{"course_id": cid} for cid in course_ids]
        )
        found_ids = {int(item["course_id"]) for item in found}
        missing = [cid for cid in course_ids if cid not in found_ids]
        if missing:
            raise NotFoundError(
                ErrorCode.COURSE_NOT_FOUND,
                f"Courses not found: {', '.join(str(m) for m in missing)}",
                details={"missing_ids": missing},
            )

        now = dt.datetime.now(dt.UTC).isoformat()
        items = [
            self.db.tx_update(
                self.COURSES_TABLE,
                {"course_id": cid},
                "SET order_index = :idx, updated_at = :now",
                {":idx": position, ":now": now},
                condition_expression="attribute_exists(course_id)",
            )
            for position, cid in enumerate(course_ids, start=1)
        ]

        if not self.db.transact_write(items):
            # A course was deleted between the existence check and the commit
            raise NotFoundError(
                ErrorCode.COURSE_NOT_FOUND,
                "A course was removed while reordering; nothing was changed",
            )

        logger.info("Course order updated for %d courses", len(course_ids))

        by_id = {
            int(item["course_id"]): self._item_to_course(item)
            for item in self.db.batch_get(
                self.COURSES_TABLE, [{"course_id": cid} for cid in course_ids]
            )
        }
        return [by_id[cid] for cid in course_ids if cid in by_id]

    # Summaries embedded in booking responses

    def course_summary(self, course_id: int | None) -> CatalogSummary | None:
        if course_id is None:
            return None
        course = self.get_course(course_id)
        return CatalogSummary(id=course.id, title=course.title, price=course.price) if course else None

    def trip_summary(self, trip_id: int | None) -> CatalogSummary | None:
        if trip_id is None:
            return None
        trip = self.get_trip(trip_id)
        return CatalogSummary(id=trip.id, title=trip.title, price=trip.price) if trip else None

    def rental_summary(self, rental_id: int) -> CatalogSummary | None:
        rental = self.get_rental(rental_id)
        return CatalogSummary(id=rental.id, title=rental.title, price=rental.price) if rental else None

    # Conversion helpers

    def _item_to_course(self, item: dict[str, Any]) -> Course:
        return Course(
            id=int(item["course_id"]),
            title=item["title"],
            price=float(item.get("price", 0)),
            order_index=int(item.get("order_index", 0)),
            updated_at=(
                dt.datetime.fromisoformat(item["updated_at"])
                if item.get("updated_at")
                else None
            ),
        )

    def _item_to_trip(self, item: dict[str, Any]) -> Trip:
        return Trip(
            id=int(item["trip_id"]),
            title=item["title"],
            price=float(item.get("price", 0)),
        )

    def _item_to_rental(self, item: dict[str, Any]) -> Rental:
        return Rental(
            id=int(item["rental_id"]),
            title=item["title"],
            price=float(item["price"]),
            duration=item.get("duration", "1 day"),
            status=RentalStatus(item.get("status", RentalStatus.AVAILABLE.value)),
            location=item.get("location", "N/A"),
            active_booking_id=(
                int(item["active_booking_id"])
                if item.get("active_booking_id") is not None
                else None
            ),
        )
