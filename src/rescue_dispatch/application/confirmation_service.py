"""Decides the fate of pending orders: confirm, cancel, or wait."""

from datetime import datetime, timedelta

from loguru import logger

from rescue_dispatch.domain.interfaces import ICourierService, IOrderStore, IPackageOrderService
from rescue_dispatch.domain.order import Confirmation, Order, OrderKind, OrderStatus
from rescue_dispatch.domain.results import SweepOutcome, SweepResult
from rescue_dispatch.shared.decorators import describe_error

CANCEL_REASON = "Delivery was not confirmed in time"


def confirmation_deadline(order: Order, window_minutes: int) -> datetime:
    """Latest moment the donor may confirm ``order`` before it is cancelled."""
    return order.pickup_from - timedelta(minutes=window_minutes)


def decide(
    order: Order,
    confirmations: list[Confirmation],
    now: datetime,
    window_minutes: int,
) -> SweepOutcome:
    """Pure decision for one pending order.

    Package-return orders are booked at the donor's request and confirm
    unconditionally. Other orders are confirmed when any same-day confirmation
    exists, cancelled once ``now`` is strictly past the deadline, otherwise left
    pending.
    """
    if order.kind is OrderKind.packages or confirmations:
        return SweepOutcome.confirmed
    if now > confirmation_deadline(order, window_minutes):
        return SweepOutcome.canceled
    return SweepOutcome.pending


class ConfirmationService:
    """Runs the confirmation decision over the orders due today."""

    def __init__(
        self,
        store: IOrderStore,
        courier: ICourierService,
        window_minutes: int = 35,
        package_orders: IPackageOrderService | None = None,
        count_pending_as_handled: bool = True,
    ) -> None:
        self._store = store
        self._courier = courier
        self._window_minutes = window_minutes
        self._package_orders = package_orders
        self._count_pending_as_handled = count_pending_as_handled

    def handle_order(self, order: Order, now: datetime) -> SweepOutcome:
        """Apply the decision for ``order`` and perform its side effects.

        Raises whatever the store or courier raise; the caller isolates failures.
        """
        confirmations: list[Confirmation] = []
        if order.kind is OrderKind.food:
            logger.info(f"-> Searching order {order.identifier} confirmation")
            confirmations = self._store.list_confirmations_for_donor_today(
                order.donor_id, now.date(), order.recipient_id
            )
        outcome = decide(order, confirmations, now, self._window_minutes)

        match outcome:
            case SweepOutcome.confirmed:
                if confirmations:
                    logger.info(f"-> Confirmation found for order {order.identifier}: {confirmations[0].id}")
                    if confirmations[0].package_pickup:
                        self._create_package_order(order, now)
                else:
                    logger.info(f"-> Packages order {order.identifier} needs no confirmation")
                self._store.set_order_status(order.id, OrderStatus.confirmed)
                logger.info(f"-> Successfully confirmed order {order.identifier}")
            case SweepOutcome.canceled:
                deadline = confirmation_deadline(order, self._window_minutes)
                logger.warning(
                    f"-> Canceling delivery for order {order.identifier}. "
                    f"Latest time for confirmation {deadline.isoformat()} passed."
                )
                # courier first: a failed cancel must leave the order pending
                self._courier.cancel_order(order.identifier, CANCEL_REASON)
                self._store.set_order_status(order.id, OrderStatus.canceled)
                logger.info(f"-> Successfully canceled order {order.identifier}")
            case SweepOutcome.pending:
                logger.info(
                    f"-> Confirmation NOT FOUND for order {order.identifier}, "
                    f"deadline {confirmation_deadline(order, self._window_minutes).isoformat()} not reached"
                )
        return outcome

    def _create_package_order(self, order: Order, now: datetime) -> None:
        if self._package_orders is None:
            logger.warning(f"-> Package pickup requested for {order.identifier} but no creator configured")
            return
        logger.info(f"-> Creating new order for packages delivery for order {order.identifier}")
        try:
            self._package_orders.create_package_order(order, now.date())
        except Exception as exc:
            logger.error(f"Failed creating packages order for {order.identifier}: {describe_error(exc)}")

    def sweep(self, order_records: list[dict], now: datetime) -> SweepResult:
        """Handle every raw order record; one failing record never stops the others."""
        result = SweepResult(count_pending_as_handled=self._count_pending_as_handled)

        for raw in order_records:
            logger.info(f"Handling order {raw.get('id')}")
            try:
                order = self._store.map_order(raw)
                outcome = self.handle_order(order, now)
            except Exception as exc:
                logger.error(f"Handling order {raw.get('id')} failed: {describe_error(exc)}")
                outcome = SweepOutcome.failed
            result.record(outcome)

        return result
