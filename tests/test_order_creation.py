"""Tests for next-cycle order creation and the package-return side order."""

from datetime import date, datetime
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import httpx
import pytest

from rescue_dispatch.application.courier_service import CourierAPIError, CourierService
from rescue_dispatch.application.order_creation_service import OrderCreationService
from rescue_dispatch.application.order_mapper import (
    IdentifierLayout,
    at_time_of_day,
    make_identifier,
    map_planned_to_courier,
    plan_food_delivery,
)
from rescue_dispatch.domain.courier_order import CourierOrder
from rescue_dispatch.domain.order import Order
from rescue_dispatch.infrastructure.airtable_client import AirtableClient
from rescue_dispatch.infrastructure.airtable_store import AirtableOrderStore

PRAGUE = ZoneInfo("Europe/Prague")
TODAY = date(2022, 9, 29)


def _donor_record(recipients: list[str] | None = None, **fields) -> dict:
    """Helper: build a raw Airtable donor record (pickup 14:00-14:30, drop 15:00-15:30)."""
    return {
        "id": "recDonor1",
        "fields": {
            "ID": "Test Restaurace 1",
            "Telefonní číslo": "+420123999888",
            "Vyzvednout od": 50400,
            "Vyzvednout do": 52200,
            "Doručit od": 54000,
            "Doručit do": 55800,
            "Odpovědná osoba": "Anna Strejcová",
            "Příjemce": recipients if recipients is not None else ["recCharity13"],
            "Adresa": "Husitská 12, Praha 3",
            "Oblast": "Žižkov",
            **fields,
        },
    }


def _charity_record(record_id: str = "recCharity13", external_id: str = "Charita 13") -> dict:
    """Helper: build a raw Airtable charity record."""
    return {
        "id": record_id,
        "fields": {
            "ID": external_id,
            "Telefonní číslo": "+420777888999",
            "Odpovědná osoba": "Jan Novák",
            "Adresa": "Spojená 22, Praha 3, 130000",
        },
    }


def _make_service(**kwargs) -> tuple[OrderCreationService, MagicMock, MagicMock]:
    client = MagicMock(spec=AirtableClient)
    client.create_records.return_value = [{"id": "recNew"}]
    courier = MagicMock(spec=CourierService)
    service = OrderCreationService(AirtableOrderStore(client), courier, PRAGUE, **kwargs)
    return service, client, courier


# ---------------------------------------------------------------------------
# Identifier and time helpers
# ---------------------------------------------------------------------------


def test_identifier_is_lowercase_without_spaces() -> None:
    identifier = make_identifier("Test Restaurace 1", "Charita 13", date(2022, 10, 6))
    assert identifier == "testrestaurace1-charita13-6.10.2022"


def test_identifier_is_deterministic() -> None:
    """Same donor, recipient and date always yield the same identifier."""
    day = date(2022, 10, 6)
    assert make_identifier("ZJ AD", "Charita", day) == make_identifier("zj ad", "CHARITA", day)


@pytest.mark.parametrize("offset", [50400, "14:00", " 14:00"])
def test_time_of_day_accepts_seconds_and_clock_strings(offset: int | str) -> None:
    assert at_time_of_day(date(2022, 10, 6), offset, PRAGUE) == datetime(
        2022, 10, 6, 14, 0, tzinfo=PRAGUE
    )


def test_time_of_day_rejects_out_of_range() -> None:
    with pytest.raises(ValueError):
        at_time_of_day(date(2022, 10, 6), "25:00", PRAGUE)


# ---------------------------------------------------------------------------
# Planning and courier payload
# ---------------------------------------------------------------------------


def test_plan_food_delivery_layouts() -> None:
    store = AirtableOrderStore(MagicMock(spec=AirtableClient))
    donor = store.map_donor(_donor_record())
    charity = store.map_charity(_charity_record())
    day = date(2022, 10, 6)

    donor_first = plan_food_delivery(donor, charity, day, PRAGUE)
    recipient_first = plan_food_delivery(donor, charity, day, PRAGUE, IdentifierLayout.recipient_first)

    assert donor_first.identifier == "testrestaurace1-charita13-6.10.2022"
    assert recipient_first.identifier == "charita13-testrestaurace1-6.10.2022"
    assert donor_first.pickup_from == datetime(2022, 10, 6, 14, 0, tzinfo=PRAGUE)
    assert donor_first.deliver_to == datetime(2022, 10, 6, 15, 30, tzinfo=PRAGUE)
    assert donor_first.branch_identifier == "Test Restaurace 1"
    assert donor_first.address == "Spojená 22, Praha 3, 130000"
    assert donor_first.customer_name == "Jan Novák"


def test_courier_payload_shape() -> None:
    store = AirtableOrderStore(MagicMock(spec=AirtableClient))
    planned = plan_food_delivery(
        store.map_donor(_donor_record()),
        store.map_charity(_charity_record()),
        date(2022, 10, 6),
        PRAGUE,
    )

    payload = map_planned_to_courier(planned).to_payload()

    assert payload["Identifier"] == "testrestaurace1-charita13-6.10.2022"
    assert payload["Price"] == 0
    assert payload["Pickup"]["BranchIdentifier"] == "Test Restaurace 1"
    # 14:00 Prague summer time is 12:00 UTC
    assert payload["Pickup"]["RequiredStart"] == "2022-10-06T12:00:00.000Z"
    assert payload["Drop"]["AddressRawValue"] == "Spojená 22, Praha 3, 130000"
    assert payload["CustomerPhone"] == "+420777888999"
    assert "Note" not in payload["Pickup"]


# ---------------------------------------------------------------------------
# create_orders
# ---------------------------------------------------------------------------


def test_create_orders_submits_to_courier_then_store() -> None:
    service, client, courier = _make_service()

    result = service.create_orders([_donor_record()], {"recCharity13": _charity_record()}, TODAY)

    assert result.created == 1
    assert result.identifiers == ["testrestaurace1-charita13-6.10.2022"]
    sent: CourierOrder = courier.create_order.call_args[0][0]
    assert sent.identifier == "testrestaurace1-charita13-6.10.2022"

    table, records = client.create_records.call_args[0]
    fields = records[0]["fields"]
    assert table == "Rozvozy"
    assert fields["Dárce"] == ["recDonor1"]
    assert fields["Příjemce"] == ["recCharity13"]
    assert fields["Status"] == "čeká"
    assert fields["Vyzvednout od"] == "2022-10-06T12:00:00.000Z"


def test_days_ahead_is_configurable() -> None:
    service, _, _ = _make_service(days_ahead=1)

    result = service.create_orders([_donor_record()], {"recCharity13": _charity_record()}, TODAY)

    assert result.identifiers == ["testrestaurace1-charita13-30.9.2022"]


def test_failing_pairing_does_not_stop_others() -> None:
    """A courier rejection for one charity leaves the other pairings untouched."""
    service, client, courier = _make_service()
    charities = {
        "recCharity13": _charity_record(),
        "recCharity14": _charity_record("recCharity14", "Charita 14"),
        "recCharity15": _charity_record("recCharity15", "Charita 15"),
    }

    def _create(order: CourierOrder) -> None:
        if "charita14" in order.identifier:
            raise CourierAPIError("DODO API error 400: invalid address")

    courier.create_order.side_effect = _create

    result = service.create_orders(
        [_donor_record(recipients=list(charities))], charities, TODAY
    )

    assert result.attempted == 3
    assert result.created == 2
    assert result.failed == 1
    # the rejected order never reaches the store
    assert client.create_records.call_count == 2


def test_accepted_order_with_plain_text_body_is_recorded() -> None:
    """A 2xx courier answer means the order exists there, whatever the body says."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/token"):
            return httpx.Response(
                200,
                json={
                    "token_type": "Bearer",
                    "expires_in": 3599,
                    "ext_expires_in": 3599,
                    "access_token": "secret-token",
                },
            )
        return httpx.Response(201, text="Created")

    courier = CourierService(
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        orders_url="https://api.example.com/orders",
        oauth_url="https://login.example.com/oauth2/token",
        client_id="client-id",
        client_secret="client-secret",
        scope="api://dodo/.default",
    )
    store = MagicMock(spec=AirtableOrderStore)
    store.map_donor.side_effect = AirtableOrderStore(MagicMock(spec=AirtableClient)).map_donor
    store.map_charity.side_effect = AirtableOrderStore(MagicMock(spec=AirtableClient)).map_charity
    service = OrderCreationService(store, courier, PRAGUE)

    result = service.create_orders([_donor_record()], {"recCharity13": _charity_record()}, TODAY)

    assert result.created == 1
    assert result.failed == 0
    store.create_order.assert_called_once()


def test_unknown_charity_counts_as_failed() -> None:
    service, _, courier = _make_service()

    result = service.create_orders(
        [_donor_record(recipients=["recMissing", "recCharity13"])],
        {"recCharity13": _charity_record()},
        TODAY,
    )

    assert result.failed == 1
    assert result.created == 1
    courier.create_order.assert_called_once()


def test_invalid_donor_is_skipped() -> None:
    service, _, _ = _make_service()
    broken = _donor_record()
    del broken["fields"]["Telefonní číslo"]
    broken["id"] = "recBroken"

    result = service.create_orders(
        [broken, _donor_record()], {"recCharity13": _charity_record()}, TODAY
    )

    assert result.attempted == 2
    assert result.failed == 1
    assert result.created == 1


def test_no_pairings_creates_nothing() -> None:
    service, _, courier = _make_service()

    result = service.create_orders([_donor_record(recipients=[])], {}, TODAY)

    assert result.created == 0
    courier.create_order.assert_not_called()


# ---------------------------------------------------------------------------
# Package-return order
# ---------------------------------------------------------------------------


def test_package_order_goes_from_charity_back_to_donor_tomorrow() -> None:
    service, client, courier = _make_service()
    client.list_records.side_effect = [[_donor_record()], [_charity_record()]]
    order = Order(
        id="recOrder1",
        identifier="testrestaurace1-charita13-29.9.2022",
        donor_id="recDonor1",
        recipient_id="recCharity13",
        pickup_from=datetime(2022, 9, 29, 14, 0, tzinfo=PRAGUE),
    )

    service.create_package_order(order, TODAY)

    sent: CourierOrder = courier.create_order.call_args[0][0]
    assert sent.identifier == "charita13-testrestaurace1-30.9.2022"
    assert sent.pickup.branch_identifier == "Charita 13"
    assert sent.pickup.required_start == datetime(2022, 9, 30, 8, 0, tzinfo=PRAGUE)
    assert sent.pickup.note == "Vyzvednutí REkrabiček"
    assert sent.drop.address_raw_value == "Husitská 12, Praha 3 Žižkov"
    assert sent.drop.note == "Doručení REkrabiček"
    assert sent.customer_name == "Anna Strejcová"

    fields = client.create_records.call_args[0][1][0]["fields"]
    assert fields["Typ"] == "krabičky"
