from datetime import datetime, tzinfo

from loguru import logger

from rescue_dispatch.application.confirmation_service import ConfirmationService
from rescue_dispatch.application.order_creation_service import OrderCreationService
from rescue_dispatch.domain.errors import JobFailedError
from rescue_dispatch.domain.interfaces import IOrderStore
from rescue_dispatch.domain.results import CreationResult, SweepResult


class CheckOrdersExecutor:
    """Confirms or cancels today's pending orders."""

    def __init__(self, store: IOrderStore, service: ConfirmationService, tz: tzinfo) -> None:
        self._store = store
        self._service = service
        self._tz = tz

    def run(self, now: datetime | None = None) -> SweepResult:
        now = (now or datetime.now(self._tz)).astimezone(self._tz)
        records = self._store.list_pending_orders_due_today(now.date())
        logger.info(f"Found {len(records)} pending order(s) due today")

        result = self._service.sweep(records, now)
        logger.info(
            f"Sweep summary: {result.confirmed} confirmed, {result.canceled} canceled, "
            f"{result.pending} waiting, {result.failed} failed"
        )
        if result.handled != result.total:
            raise JobFailedError(
                f"Only {result.handled}/{result.total} order(s) were handled. Check logs for more info."
            )

        logger.info(f"Script finished, {result.handled} order(s) have been handled")
        return result


class SendOrdersExecutor:
    """Creates next-cycle orders for all donor/recipient pairings."""

    def __init__(self, store: IOrderStore, service: OrderCreationService, tz: tzinfo) -> None:
        self._store = store
        self._service = service
        self._tz = tz

    def run(self, now: datetime | None = None) -> CreationResult:
        now = (now or datetime.now(self._tz)).astimezone(self._tz)
        donors = self._store.list_donors()
        logger.info(f"Found {len(donors)} donor(s)")
        charities = self._store.list_recipients()
        logger.info(f"Found {len(charities)} charit(y)ies")

        result = self._service.create_orders(donors, charities, now.date())
        if result.failed:
            logger.warning(f"{result.failed}/{result.attempted} pairing(s) failed. Check logs for more info.")
        if not result.created:
            raise JobFailedError("No orders have been handled")

        logger.info(f"Script finished, {result.created} order(s) have been handled")
        return result
