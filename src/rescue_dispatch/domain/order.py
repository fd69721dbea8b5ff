from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class OrderStatus(StrEnum):
    pending = "pending"
    confirmed = "confirmed"
    canceled = "canceled"


class OrderKind(StrEnum):
    food = "food"
    packages = "packages"  # return of reusable boxes to the donor


def parse_time_of_day(value: int | str) -> int:
    """Normalise a time-of-day offset to seconds since midnight.

    Airtable donors store plain seconds (``50400``), Firestore donors store
    ``"HH:MM"`` strings (``"14:00"``).
    """
    if isinstance(value, int | float):
        seconds = int(value)
    else:
        hours, _, minutes = value.strip().partition(":")
        seconds = int(hours) * 3600 + int(minutes or 0) * 60
    if not 0 <= seconds < 24 * 3600:
        raise ValueError(f"time of day out of range: {value!r}")
    return seconds


class Donor(BaseModel):
    """A canteen or restaurant offering surplus food."""

    id: str  # backing store key
    external_id: str  # courier branch identifier, e.g. "zj-ad-zizkov"
    name: str
    phone: str
    contact_person: str
    address: str | None = None
    area: str | None = None
    pickup_from: int  # seconds since midnight
    pickup_to: int
    deliver_from: int
    deliver_to: int
    recipient_ids: list[str] = Field(default_factory=list)
    note: str | None = None

    @field_validator("pickup_from", "pickup_to", "deliver_from", "deliver_to", mode="before")
    @classmethod
    def _time_of_day(cls, value: int | str) -> int:
        return parse_time_of_day(value)


class Charity(BaseModel):
    """A recipient organisation the food is delivered to."""

    id: str
    external_id: str
    name: str
    phone: str
    contact_person: str
    address: str
    note: str | None = None


class Order(BaseModel):
    """A delivery order as held in the backing store."""

    id: str  # store record id
    identifier: str  # external courier id, e.g. "restaurace-1-charita13-6.10.2022"
    donor_id: str
    recipient_id: str
    pickup_from: datetime
    pickup_to: datetime | None = None
    deliver_from: datetime | None = None
    deliver_to: datetime | None = None
    status: OrderStatus = OrderStatus.pending
    kind: OrderKind = OrderKind.food


class Confirmation(BaseModel):
    """Donor's same-day attestation that food is ready for pickup."""

    id: str
    donor_id: str | None = None
    recipient_id: str | None = None
    package_pickup: bool = False


class PlannedDelivery(BaseModel):
    """An order that is about to be submitted to the courier and stored."""

    identifier: str
    kind: OrderKind = OrderKind.food
    donor_id: str
    recipient_id: str
    branch_identifier: str
    address: str
    pickup_from: datetime
    pickup_to: datetime
    pickup_note: str | None = None
    deliver_from: datetime
    deliver_to: datetime
    deliver_note: str | None = None
    customer_name: str
    customer_phone: str
