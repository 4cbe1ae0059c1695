"""Catalog models: courses, trips and rentable assets.

Catalog CRUD lives elsewhere; these models carry only the fields the
booking lifecycle reads or writes.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import RentalStatus


class Course(BaseModel):
    """A course offered by the dive center."""

    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)

    id: int = Field(..., description="Course ID")
    title: str
    price: float = Field(default=0.0, ge=0, description="Price in major currency units")
    order_index: int = Field(default=0, description="Display position (1-based)")
    updated_at: datetime | None = None


class Trip(BaseModel):
    """A scheduled dive trip."""

    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    title: str
    price: float = Field(default=0.0, ge=0)


class Rental(BaseModel):
    """A unique physical rentable asset.

    status reflects whether an active RentalBooking exists; active_booking_id
    names it while the asset is rented.
    """

    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    title: str
    price: float = Field(..., ge=0, description="Price in major currency units")
    duration: str = Field(default="1 day", examples=["1 day", "3 days"])
    status: RentalStatus = RentalStatus.AVAILABLE
    location: str = "N/A"
    active_booking_id: int | None = None


class CatalogSummary(BaseModel):
    """Short form of a course, trip or rental embedded in booking responses."""

    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    title: str
    price: float
