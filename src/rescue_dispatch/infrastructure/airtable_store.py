from datetime import UTC, date, datetime
from typing import Literal, TypeVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

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
from rescue_dispatch.infrastructure.airtable_client import AirtableClient

# Airtable stores the Czech labels used by the dispatch team
_STATUS_VALUES = {
    OrderStatus.pending: "čeká",
    OrderStatus.confirmed: "potvrzeno",
    OrderStatus.canceled: "storno",
}
_KIND_VALUES = {
    OrderKind.food: "jídlo",
    OrderKind.packages: "krabičky",
}


M = TypeVar("M", bound=BaseModel)


class _Fields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _OrderFields(_Fields):
    identifier: str = Field(alias="Identifikátor")  # "test-restaurace-1-charita13-6.10.2022"
    donor: list[str] = Field(alias="Dárce", min_length=1)  # ["rec8116cdd76088af"]
    recipient: list[str] = Field(alias="Příjemce", min_length=1)
    pickup_from: datetime = Field(alias="Vyzvednout od")  # "2022-10-06T12:30:00.000Z"
    pickup_to: datetime | None = Field(default=None, alias="Vyzvednout do")
    deliver_from: datetime | None = Field(default=None, alias="Doručit od")
    deliver_to: datetime | None = Field(default=None, alias="Doručit do")
    status: Literal["čeká"] = Field(alias="Status")
    kind: Literal["jídlo", "krabičky"] | None = Field(default=None, alias="Typ")


class _ConfirmationFields(_Fields):
    donor_id: str | None = Field(default=None, alias="DárceID")
    package_pickup: bool | None = Field(default=None, alias="Svoz krabiček")


class _DonorFields(_Fields):
    external_id: str = Field(alias="ID")  # "Zachraň jídlo"
    phone: str = Field(alias="Telefonní číslo")  # +420123999888
    pickup_from: int = Field(alias="Vyzvednout od")  # 50400
    pickup_to: int = Field(alias="Vyzvednout do")
    deliver_from: int = Field(alias="Doručit od")
    deliver_to: int = Field(alias="Doručit do")
    contact_person: str = Field(alias="Odpovědná osoba")
    recipients: list[str] = Field(default_factory=list, alias="Příjemce")
    address: str | None = Field(default=None, alias="Adresa")
    area: str | None = Field(default=None, alias="Oblast")


class _CharityFields(_Fields):
    external_id: str = Field(alias="ID")  # "Charita 1"
    phone: str = Field(alias="Telefonní číslo")
    contact_person: str = Field(alias="Odpovědná osoba")
    address: str = Field(alias="Adresa")  # Spojená 22, Praha 3, 130000


def _validate(model: type[M], kind: str, raw: dict) -> M:
    try:
        return model.model_validate(raw.get("fields", {}))
    except ValidationError as exc:
        raise RecordValidationError(kind, raw.get("id"), str(exc)) from exc


def _record_id(kind: str, raw: dict) -> str:
    record_id = raw.get("id")
    if not isinstance(record_id, str):
        raise RecordValidationError(kind, None, "missing record id")
    return record_id


def _iso(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.000Z")


class AirtableOrderStore:
    """Backing store implementation on top of an Airtable base."""

    DONORS = "Dárci"
    CHARITIES = "Příjemci"
    ORDERS = "Rozvozy"
    OFFERS = "Nabídka"

    def __init__(self, client: AirtableClient, timezone: str = "Europe/Prague") -> None:
        self._client = client
        self._timezone = timezone

    def _on_day(self, field: str, day: date) -> str:
        """Formula matching records whose ``field`` falls on ``day`` in local time."""
        return (
            f'DATETIME_FORMAT(SET_TIMEZONE({{{field}}},"{self._timezone}"),"YYYY-MM-DD")'
            f'="{day.isoformat()}"'
        )

    # --- orders ---

    def list_pending_orders_due_today(self, day: date) -> list[dict]:
        logger.info(f"Loading orders from {self.ORDERS!r} table")
        pending = _STATUS_VALUES[OrderStatus.pending]
        formula = f'AND({self._on_day("Vyzvednout od", day)},{{Status}}="{pending}")'
        return self._client.list_records(self.ORDERS, formula=formula)

    def map_order(self, raw: dict) -> Order:
        record_id = _record_id("order", raw)
        fields = _validate(_OrderFields, "order", raw)
        return Order(
            id=record_id,
            identifier=fields.identifier,
            donor_id=fields.donor[0],
            recipient_id=fields.recipient[0],
            pickup_from=fields.pickup_from,
            pickup_to=fields.pickup_to,
            deliver_from=fields.deliver_from,
            deliver_to=fields.deliver_to,
            status=OrderStatus.pending,
            kind=OrderKind.packages if fields.kind == "krabičky" else OrderKind.food,
        )

    def set_order_status(self, order_id: str, status: OrderStatus) -> None:
        self._client.update_records(
            self.ORDERS,
            [{"id": order_id, "fields": {"Status": _STATUS_VALUES[status]}}],
        )

    def create_order(self, planned: PlannedDelivery) -> str:
        created = self._client.create_records(
            self.ORDERS,
            [
                {
                    "fields": {
                        "Identifikátor": planned.identifier,
                        "Dárce": [planned.donor_id],
                        "Příjemce": [planned.recipient_id],
                        "Vyzvednout od": _iso(planned.pickup_from),
                        "Vyzvednout do": _iso(planned.pickup_to),
                        "Doručit od": _iso(planned.deliver_from),
                        "Doručit do": _iso(planned.deliver_to),
                        "Status": _STATUS_VALUES[OrderStatus.pending],
                        "Typ": _KIND_VALUES[planned.kind],
                    }
                }
            ],
        )
        return created[0]["id"] if created else planned.identifier

    # --- confirmations ---

    def list_confirmations_for_donor_today(
        self, donor_id: str, day: date, recipient_id: str | None = None
    ) -> list[Confirmation]:
        """Return the food offers of ``donor_id`` added on ``day``.

        Offers in Airtable are keyed by donor only, ``recipient_id`` is ignored.
        """
        formula = f'AND({{DárceID}}="{donor_id}",{self._on_day("Přidáno dne", day)})'
        confirmations: list[Confirmation] = []
        for raw in self._client.list_records(self.OFFERS, formula=formula):
            fields = _validate(_ConfirmationFields, "confirmation", raw)
            confirmations.append(
                Confirmation(
                    id=_record_id("confirmation", raw),
                    donor_id=fields.donor_id or donor_id,
                    package_pickup=bool(fields.package_pickup),
                )
            )
        return confirmations

    # --- donors and charities ---

    def list_donors(self) -> list[dict]:
        logger.info(f"Loading donors from {self.DONORS!r} table")
        return self._client.list_records(self.DONORS)

    def map_donor(self, raw: dict) -> Donor:
        record_id = _record_id("donor", raw)
        fields = _validate(_DonorFields, "donor", raw)
        try:
            return Donor(
                id=record_id,
                external_id=fields.external_id,
                name=fields.external_id,
                phone=fields.phone,
                contact_person=fields.contact_person,
                address=fields.address,
                area=fields.area,
                pickup_from=fields.pickup_from,
                pickup_to=fields.pickup_to,
                deliver_from=fields.deliver_from,
                deliver_to=fields.deliver_to,
                recipient_ids=fields.recipients,
            )
        except ValidationError as exc:
            raise RecordValidationError("donor", record_id, str(exc)) from exc

    def list_recipients(self) -> dict[str, dict]:
        logger.info(f"Loading charities from {self.CHARITIES!r} table")
        records = self._client.list_records(self.CHARITIES)
        return {raw["id"]: raw for raw in records if isinstance(raw.get("id"), str)}

    def map_charity(self, raw: dict) -> Charity:
        record_id = _record_id("charity", raw)
        fields = _validate(_CharityFields, "charity", raw)
        return Charity(
            id=record_id,
            external_id=fields.external_id,
            name=fields.external_id,
            phone=fields.phone,
            contact_person=fields.contact_person,
            address=fields.address,
        )

    def _get_record(self, table: str, kind: str, record_id: str) -> dict:
        records = self._client.list_records(table, formula=f'RECORD_ID()="{record_id}"')
        if not records:
            raise RecordValidationError(kind, record_id, f"not found in {table!r}")
        return records[0]

    def get_donor(self, donor_id: str) -> Donor:
        return self.map_donor(self._get_record(self.DONORS, "donor", donor_id))

    def get_charity(self, charity_id: str) -> Charity:
        return self.map_charity(self._get_record(self.CHARITIES, "charity", charity_id))
