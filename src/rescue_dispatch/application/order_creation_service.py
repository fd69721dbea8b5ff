from datetime import date, timedelta, tzinfo

from loguru import logger

from rescue_dispatch.application.order_mapper import (
    IdentifierLayout,
    map_planned_to_courier,
    plan_food_delivery,
    plan_package_delivery,
)
from rescue_dispatch.domain.errors import RecordValidationError
from rescue_dispatch.domain.interfaces import ICourierService, IOrderStore
from rescue_dispatch.domain.order import Charity, Donor, Order, PlannedDelivery
from rescue_dispatch.domain.results import CreationResult
from rescue_dispatch.shared.decorators import describe_error


class OrderCreationService:
    """Creates next-cycle delivery orders for every donor/recipient pairing."""

    def __init__(
        self,
        store: IOrderStore,
        courier: ICourierService,
        tz: tzinfo,
        days_ahead: int = 7,
        layout: IdentifierLayout = IdentifierLayout.donor_first,
    ) -> None:
        self._store = store
        self._courier = courier
        self._tz = tz
        self._days_ahead = days_ahead
        self._layout = layout

    def submit(self, planned: PlannedDelivery) -> str:
        """Send ``planned`` to the courier, then record it as pending in the store."""
        logger.info(f"-> Creating order {planned.identifier} on DODO")
        self._courier.create_order(map_planned_to_courier(planned))
        logger.info(f"-> Adding order {planned.identifier} to the orders store")
        return self._store.create_order(planned)

    def create_orders(
        self,
        donor_records: list[dict],
        charity_records: dict[str, dict],
        today: date,
    ) -> CreationResult:
        """Create one order per donor/recipient pairing for ``today + days_ahead``.

        A failing pairing is logged and counted, the remaining ones still run.
        """
        day = today + timedelta(days=self._days_ahead)
        result = CreationResult()
        charities: dict[str, Charity] = {}

        for raw in donor_records:
            logger.debug(f"Handling donor {raw}")
            try:
                donor = self._store.map_donor(raw)
            except RecordValidationError as exc:
                logger.error(f"Handling donor failed: {exc}")
                result.attempted += 1
                result.failed += 1
                continue

            if not donor.recipient_ids:
                logger.warning(f"Donor {donor.external_id} has no linked recipients")

            for charity_id in donor.recipient_ids:
                result.attempted += 1
                try:
                    if charity_id not in charities:
                        if charity_id not in charity_records:
                            raise RecordValidationError("charity", charity_id, "not found")
                        charities[charity_id] = self._store.map_charity(charity_records[charity_id])
                    planned = plan_food_delivery(
                        donor, charities[charity_id], day, self._tz, self._layout
                    )
                    self.submit(planned)
                except Exception as exc:
                    logger.error(
                        f"Handling pairing {donor.external_id} -> {charity_id} failed: "
                        f"{describe_error(exc)}"
                    )
                    result.failed += 1
                    continue

                result.created += 1
                result.identifiers.append(planned.identifier)

        return result

    def create_package_order(self, order: Order, today: date) -> str:
        """Create the next-morning order returning reusable boxes to the donor of ``order``."""
        donor: Donor = self._store.get_donor(order.donor_id)
        charity: Charity = self._store.get_charity(order.recipient_id)
        planned = plan_package_delivery(donor, charity, today + timedelta(days=1), self._tz)
        return self.submit(planned)
