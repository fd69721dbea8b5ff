from datetime import date
from typing import Protocol

from .courier_order import CourierOrder
from .order import Charity, Confirmation, Donor, Order, OrderStatus, PlannedDelivery


class IOrderStore(Protocol):
    """Backing store holding donors, charities, orders and food offers.

    ``list_*`` methods return raw records so that a single malformed record can
    be skipped by the caller; ``map_*`` methods validate one raw record and raise
    ``RecordValidationError`` on a shape mismatch.
    """

    def list_pending_orders_due_today(self, day: date) -> list[dict]: ...

    def map_order(self, raw: dict) -> Order: ...

    def list_confirmations_for_donor_today(
        self, donor_id: str, day: date, recipient_id: str | None = None
    ) -> list[Confirmation]: ...

    def list_donors(self) -> list[dict]: ...

    def map_donor(self, raw: dict) -> Donor: ...

    def list_recipients(self) -> dict[str, dict]: ...

    def map_charity(self, raw: dict) -> Charity: ...

    def get_donor(self, donor_id: str) -> Donor: ...

    def get_charity(self, charity_id: str) -> Charity: ...

    def set_order_status(self, order_id: str, status: OrderStatus) -> None: ...

    def create_order(self, planned: PlannedDelivery) -> str: ...


class ICourierService(Protocol):
    def create_order(self, order: CourierOrder) -> None: ...

    def cancel_order(self, identifier: str, reason: str) -> None: ...


class IPackageOrderService(Protocol):
    def create_package_order(self, order: Order, today: date) -> str: ...
