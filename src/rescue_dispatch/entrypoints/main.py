import argparse
import sys

import httpx
from loguru import logger

from rescue_dispatch.application.confirmation_service import ConfirmationService
from rescue_dispatch.application.courier_service import CourierService
from rescue_dispatch.application.order_creation_service import OrderCreationService
from rescue_dispatch.domain.interfaces import IOrderStore
from rescue_dispatch.entrypoints.executor import CheckOrdersExecutor, SendOrdersExecutor
from rescue_dispatch.entrypoints.settings import Config, StoreBackend
from rescue_dispatch.infrastructure.airtable_client import AirtableClient
from rescue_dispatch.infrastructure.airtable_store import AirtableOrderStore
from rescue_dispatch.infrastructure.firestore_store import FirestoreOrderStore, get_firestore_client
from rescue_dispatch.shared.decorators import describe_error


def _mock_courier_handler(request: httpx.Request) -> httpx.Response:
    """Mock transport handler, logs what would be sent and accepts it."""
    logger.info(f"[DODO] MOCK {request.method} {request.url}\n{request.content.decode()}")
    if request.headers.get("content-type", "").startswith("application/x-www-form-urlencoded"):
        return httpx.Response(
            200,
            json={
                "token_type": "Bearer",
                "expires_in": 3599,
                "ext_expires_in": 3599,
                "access_token": "dry-run",
            },
        )
    return httpx.Response(201, json={"status": "accepted"})


def build_store(config: Config, http_client: httpx.Client) -> IOrderStore:
    if config.STORE_BACKEND is StoreBackend.firestore:
        db = get_firestore_client(config.FIRESTORE_PROJECT_ID, config.FIRESTORE_CREDENTIALS_PATH)
        return FirestoreOrderStore(db, config.tz)

    return AirtableOrderStore(
        AirtableClient(
            client=http_client,
            base_id=config.AIRTABLE_BASE_ID or "",
            api_key=config.AIRTABLE_API_KEY or "",
        ),
        timezone=config.TIMEZONE,
    )


def build_courier(config: Config, http_client: httpx.Client) -> CourierService:
    return CourierService(
        client=http_client,
        orders_url=config.DODO_ORDERS_API,
        oauth_url=config.DODO_OAUTH_URI,
        client_id=config.DODO_CLIENT_ID,
        client_secret=config.DODO_CLIENT_SECRET,
        scope=config.DODO_SCOPE,
        timeout=config.HTTP_TIMEOUT_SECONDS,
    )


def run_job(job: str, config: Config) -> None:
    # COURIER_DRY_RUN routes every DODO call to the logging mock transport
    transport = httpx.MockTransport(_mock_courier_handler) if config.COURIER_DRY_RUN else None
    with (
        httpx.Client(timeout=config.HTTP_TIMEOUT_SECONDS) as store_http,
        httpx.Client(transport=transport, timeout=config.HTTP_TIMEOUT_SECONDS) as courier_http,
    ):
        # --- Backing store and courier ---
        store = build_store(config, store_http)
        courier = build_courier(config, courier_http)
        creation_service = OrderCreationService(
            store=store,
            courier=courier,
            tz=config.tz,
            days_ahead=config.ORDER_DAYS_AHEAD,
            layout=config.IDENTIFIER_LAYOUT,
        )

        # --- Run job ---
        if job == "check-orders":
            confirmation_service = ConfirmationService(
                store=store,
                courier=courier,
                window_minutes=config.CONFIRM_WINDOW_MINUTES,
                package_orders=creation_service,
                count_pending_as_handled=config.COUNT_PENDING_AS_HANDLED,
            )
            CheckOrdersExecutor(store, confirmation_service, config.tz).run()
        else:
            SendOrdersExecutor(store, creation_service, config.tz).run()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="rescue-dispatch", description="Food rescue delivery jobs")
    parser.add_argument(
        "job",
        choices=["check-orders", "send-orders"],
        help="check-orders: confirm or cancel today's orders; send-orders: create next-cycle orders",
    )
    args = parser.parse_args(argv)

    try:
        config = Config()  # type: ignore[call-arg]
        logger.remove()
        logger.add(sys.stderr, level=config.LOG_LEVEL.upper())
        run_job(args.job, config)
    except Exception as exc:
        logger.error(f"Script failed: {describe_error(exc)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
