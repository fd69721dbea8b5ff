from datetime import date, datetime, time, timedelta, tzinfo
from enum import StrEnum

from rescue_dispatch.domain.courier_order import CourierDrop, CourierOrder, CourierPickup
from rescue_dispatch.domain.order import (
    Charity,
    Donor,
    OrderKind,
    PlannedDelivery,
    parse_time_of_day,
)

# Reusable boxes are collected at the charity the morning after and returned to the donor
PACKAGE_PICKUP_WINDOW = ("08:00", "08:30")
PACKAGE_DELIVER_WINDOW = ("09:00", "09:30")
PACKAGE_PICKUP_NOTE = "Vyzvednutí REkrabiček"
PACKAGE_DELIVER_NOTE = "Doručení REkrabiček"


class IdentifierLayout(StrEnum):
    donor_first = "donor-first"
    recipient_first = "recipient-first"


def at_time_of_day(day: date, offset: int | str, tz: tzinfo) -> datetime:
    """Return ``day`` at ``offset`` (seconds since midnight or ``"HH:MM"``) in ``tz``."""
    midnight = datetime.combine(day, time.min, tzinfo=tz)
    return midnight + timedelta(seconds=parse_time_of_day(offset))


def make_identifier(first: str, second: str, day: date) -> str:
    """Build the courier order identifier, e.g. ``"restaurace-1-charita13-6.10.2022"``."""
    return f"{first}-{second}-{day.day}.{day.month}.{day.year}".lower().replace(" ", "")


def plan_food_delivery(
    donor: Donor,
    charity: Charity,
    day: date,
    tz: tzinfo,
    layout: IdentifierLayout = IdentifierLayout.donor_first,
) -> PlannedDelivery:
    """Plan the regular food delivery from ``donor`` to ``charity`` on ``day``."""
    if layout is IdentifierLayout.donor_first:
        identifier = make_identifier(donor.external_id, charity.external_id, day)
    else:
        identifier = make_identifier(charity.external_id, donor.external_id, day)

    return PlannedDelivery(
        identifier=identifier,
        kind=OrderKind.food,
        donor_id=donor.id,
        recipient_id=charity.id,
        branch_identifier=donor.external_id,
        address=charity.address,
        pickup_from=at_time_of_day(day, donor.pickup_from, tz),
        pickup_to=at_time_of_day(day, donor.pickup_to, tz),
        pickup_note=donor.note,
        deliver_from=at_time_of_day(day, donor.deliver_from, tz),
        deliver_to=at_time_of_day(day, donor.deliver_to, tz),
        deliver_note=charity.note,
        customer_name=charity.contact_person,
        customer_phone=charity.phone,
    )


def plan_package_delivery(donor: Donor, charity: Charity, day: date, tz: tzinfo) -> PlannedDelivery:
    """Plan the return of reusable boxes from ``charity`` back to ``donor`` on ``day``."""
    if not donor.address:
        raise ValueError(f"Donor {donor.external_id} has no address for package delivery")
    address = f"{donor.address} {donor.area}" if donor.area else donor.address

    return PlannedDelivery(
        identifier=make_identifier(charity.external_id, donor.external_id, day),
        kind=OrderKind.packages,
        donor_id=donor.id,
        recipient_id=charity.id,
        branch_identifier=charity.external_id,
        address=address,
        pickup_from=at_time_of_day(day, PACKAGE_PICKUP_WINDOW[0], tz),
        pickup_to=at_time_of_day(day, PACKAGE_PICKUP_WINDOW[1], tz),
        pickup_note=PACKAGE_PICKUP_NOTE,
        deliver_from=at_time_of_day(day, PACKAGE_DELIVER_WINDOW[0], tz),
        deliver_to=at_time_of_day(day, PACKAGE_DELIVER_WINDOW[1], tz),
        deliver_note=PACKAGE_DELIVER_NOTE,
        customer_name=donor.contact_person,
        customer_phone=donor.phone,
    )


def map_planned_to_courier(planned: PlannedDelivery) -> CourierOrder:
    """Convert a ``PlannedDelivery`` to a ``CourierOrder`` DTO."""
    return CourierOrder(
        identifier=planned.identifier,
        pickup=CourierPickup(
            branch_identifier=planned.branch_identifier,
            required_start=planned.pickup_from,
            required_end=planned.pickup_to,
            note=planned.pickup_note,
        ),
        drop=CourierDrop(
            address_raw_value=planned.address,
            required_start=planned.deliver_from,
            required_end=planned.deliver_to,
            note=planned.deliver_note,
        ),
        customer_name=planned.customer_name,
        customer_phone=planned.customer_phone,
        price=0,
    )
