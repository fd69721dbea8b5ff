from datetime import date, datetime, time, timedelta, tzinfo

from google.cloud import firestore  # type: ignore
from google.cloud.firestore_v1.base_query import FieldFilter
from loguru import logger
from pydantic import BaseModel, ValidationError

from rescue_dispatch.domain.errors import RecordValidationError
from rescue_dispatch.domain.order import (
    Charity,
    Confirmation,
    Donor,
    Order,
    OrderKind,
    OrderStatus,
    PlannedDelivery,
)

_STATE_VALUES = {
    OrderStatus.pending: "Čeká",
    OrderStatus.confirmed: "Potvrzeno",
    OrderStatus.canceled: "Storno",
}


def get_firestore_client(
    project_id: str | None = None, service_account_path: str | None = None
) -> firestore.Client:
    """Return a Firestore client using an optional service account JSON."""
    if service_account_path:
        return firestore.Client.from_service_account_json(
            service_account_path, project=project_id
        )
    return firestore.Client(project=project_id)


class _OrderDoc(BaseModel):
    identifier: str
    donorId: str  # noqa: N815  (matches document field name)
    recipientId: str  # noqa: N815
    pickupFrom: datetime  # noqa: N815
    pickupTo: datetime | None = None  # noqa: N815
    deliverFrom: datetime | None = None  # noqa: N815
    deliverTo: datetime | None = None  # noqa: N815
    state: str
    kind: OrderKind = OrderKind.food


class _DonorDoc(BaseModel):
    dodoId: str  # noqa: N815  "zj-ad-zizkov"
    establishmentId: str  # noqa: N815  "primirest-tanvald"
    establishmentName: str  # noqa: N815
    phone: str
    pickUpFrom: str  # noqa: N815  "16:30"
    pickUpWithin: str  # noqa: N815  "17:00"
    deliverFrom: str  # noqa: N815
    deliverWithin: str  # noqa: N815
    responsiblePerson: str  # noqa: N815
    city: str
    street: str
    houseNumber: str  # noqa: N815  "866/63"
    postalCode: str  # noqa: N815  "130 00"
    recipientId: str  # noqa: N815  "zj-cck-beroun"
    noteForDriver: str | None = None  # noqa: N815


class _CharityDoc(BaseModel):
    dodoID: str  # noqa: N815
    establishmentId: str  # noqa: N815
    establishmentName: str  # noqa: N815
    phone: str
    responsiblePerson: str  # noqa: N815
    city: str
    street: str
    houseNumber: str  # noqa: N815
    postalCode: str  # noqa: N815
    noteForDriver: str | None = None  # noqa: N815


def _address(doc: _DonorDoc | _CharityDoc) -> str:
    return f"{doc.street} {doc.houseNumber}, {doc.postalCode} {doc.city}"


class FirestoreOrderStore:
    """Backing store implementation on top of the Firestore database."""

    DONORS = "canteens"
    CHARITIES = "charities"
    ORDERS = "deliveries"
    OFFERS = "offeredFood"

    def __init__(self, db: firestore.Client, tz: tzinfo) -> None:
        self._db = db
        self._tz = tz

    def _day_bounds(self, day: date) -> tuple[datetime, datetime]:
        start = datetime.combine(day, time.min, tzinfo=self._tz)
        return start, start + timedelta(days=1)

    @staticmethod
    def _snapshot_to_raw(snapshot) -> dict:
        return {"id": snapshot.id, **(snapshot.to_dict() or {})}

    # --- orders ---

    def list_pending_orders_due_today(self, day: date) -> list[dict]:
        start, end = self._day_bounds(day)
        logger.info(f"Loading orders from {self.ORDERS!r} collection")
        query = (
            self._db.collection(self.ORDERS)
            .where(filter=FieldFilter("state", "==", _STATE_VALUES[OrderStatus.pending]))
            .where(filter=FieldFilter("pickupFrom", ">=", start))
            .where(filter=FieldFilter("pickupFrom", "<", end))
        )
        return [self._snapshot_to_raw(doc) for doc in query.stream()]

    def map_order(self, raw: dict) -> Order:
        try:
            doc = _OrderDoc.model_validate(raw)
        except ValidationError as exc:
            raise RecordValidationError("order", raw.get("id"), str(exc)) from exc
        if doc.state != _STATE_VALUES[OrderStatus.pending]:
            raise RecordValidationError("order", raw.get("id"), f"unexpected state {doc.state!r}")
        return Order(
            id=raw["id"],
            identifier=doc.identifier,
            donor_id=doc.donorId,
            recipient_id=doc.recipientId,
            pickup_from=doc.pickupFrom,
            pickup_to=doc.pickupTo,
            deliver_from=doc.deliverFrom,
            deliver_to=doc.deliverTo,
            status=OrderStatus.pending,
            kind=doc.kind,
        )

    def set_order_status(self, order_id: str, status: OrderStatus) -> None:
        self._db.collection(self.ORDERS).document(order_id).update(
            {"state": _STATE_VALUES[status]}
        )

    def create_order(self, planned: PlannedDelivery) -> str:
        self._db.collection(self.ORDERS).document(planned.identifier).set(
            {
                "identifier": planned.identifier,
                "donorId": planned.donor_id,
                "recipientId": planned.recipient_id,
                "pickupFrom": planned.pickup_from,
                "pickupTo": planned.pickup_to,
                "deliverFrom": planned.deliver_from,
                "deliverTo": planned.deliver_to,
                "state": _STATE_VALUES[OrderStatus.pending],
                "kind": str(planned.kind),
            }
        )
        return planned.identifier

    # --- confirmations ---

    def list_confirmations_for_donor_today(
        self, donor_id: str, day: date, recipient_id: str | None = None
    ) -> list[Confirmation]:
        """Return the food offers of ``donor_id`` made on ``day``.

        Offers without a ``recipientId`` apply to every recipient of the donor.
        """
        start, end = self._day_bounds(day)
        query = (
            self._db.collection(self.OFFERS)
            .where(filter=FieldFilter("donorId", "==", donor_id))
            .where(filter=FieldFilter("date", ">=", start))
            .where(filter=FieldFilter("date", "<", end))
        )

        confirmations: list[Confirmation] = []
        for doc in query.stream():
            data = doc.to_dict() or {}
            offered_to = data.get("recipientId")
            if recipient_id and offered_to and offered_to != recipient_id:
                continue
            confirmations.append(
                Confirmation(
                    id=doc.id,
                    donor_id=data.get("donorId", donor_id),
                    recipient_id=offered_to,
                    package_pickup=bool(data.get("packagePickup", False)),
                )
            )
        return confirmations

    # --- donors and charities ---

    def list_donors(self) -> list[dict]:
        logger.info(f"Loading donors from {self.DONORS!r} collection")
        return [self._snapshot_to_raw(doc) for doc in self._db.collection(self.DONORS).stream()]

    def map_donor(self, raw: dict) -> Donor:
        try:
            doc = _DonorDoc.model_validate(raw)
            return Donor(
                id=doc.establishmentId,
                external_id=doc.dodoId,
                name=doc.establishmentName,
                phone=doc.phone,
                contact_person=doc.responsiblePerson,
                address=_address(doc),
                pickup_from=doc.pickUpFrom,
                pickup_to=doc.pickUpWithin,
                deliver_from=doc.deliverFrom,
                deliver_to=doc.deliverWithin,
                recipient_ids=[doc.recipientId],
                note=doc.noteForDriver,
            )
        except ValidationError as exc:
            raise RecordValidationError("donor", raw.get("id"), str(exc)) from exc

    def list_recipients(self) -> dict[str, dict]:
        logger.info(f"Loading charities from {self.CHARITIES!r} collection")
        recipients: dict[str, dict] = {}
        for doc in self._db.collection(self.CHARITIES).stream():
            raw = self._snapshot_to_raw(doc)
            # donors link charities by establishmentId, not by document id
            recipients[raw.get("establishmentId") or doc.id] = raw
        return recipients

    def map_charity(self, raw: dict) -> Charity:
        try:
            doc = _CharityDoc.model_validate(raw)
        except ValidationError as exc:
            raise RecordValidationError("charity", raw.get("id"), str(exc)) from exc
        return Charity(
            id=doc.establishmentId,
            external_id=doc.dodoID,
            name=doc.establishmentName,
            phone=doc.phone,
            contact_person=doc.responsiblePerson,
            address=_address(doc),
            note=doc.noteForDriver,
        )

    def _get_by_establishment(self, collection: str, kind: str, establishment_id: str) -> dict:
        query = self._db.collection(collection).where(
            filter=FieldFilter("establishmentId", "==", establishment_id)
        )
        for doc in query.limit(1).stream():
            return self._snapshot_to_raw(doc)
        raise RecordValidationError(kind, establishment_id, f"not found in {collection!r}")

    def get_donor(self, donor_id: str) -> Donor:
        return self.map_donor(self._get_by_establishment(self.DONORS, "donor", donor_id))

    def get_charity(self, charity_id: str) -> Charity:
        return self.map_charity(self._get_by_establishment(self.CHARITIES, "charity", charity_id))
