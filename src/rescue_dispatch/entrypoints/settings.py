from enum import StrEnum
from zoneinfo import ZoneInfo

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rescue_dispatch.application.order_mapper import IdentifierLayout


class StoreBackend(StrEnum):
    airtable = "airtable"
    firestore = "firestore"


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    STORE_BACKEND: StoreBackend = StoreBackend.airtable

    AIRTABLE_API_KEY: str | None = None
    AIRTABLE_BASE_ID: str | None = None

    FIRESTORE_PROJECT_ID: str | None = None
    FIRESTORE_CREDENTIALS_PATH: str | None = None

    DODO_OAUTH_URI: str
    DODO_ORDERS_API: str
    DODO_SCOPE: str
    DODO_CLIENT_ID: str
    DODO_CLIENT_SECRET: str
    COURIER_DRY_RUN: bool = False
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Minutes before pickup by which the donor has to confirm
    CONFIRM_WINDOW_MINUTES: int = 35
    ORDER_DAYS_AHEAD: int = 7
    IDENTIFIER_LAYOUT: IdentifierLayout = IdentifierLayout.donor_first
    # Whether unconfirmed orders still inside their window count as handled
    COUNT_PENDING_AS_HANDLED: bool = True

    TIMEZONE: str = "Europe/Prague"
    LOG_LEVEL: str = "INFO"

    @model_validator(mode="after")
    def _check_backend(self) -> "Config":
        if self.STORE_BACKEND is StoreBackend.airtable and not (
            self.AIRTABLE_API_KEY and self.AIRTABLE_BASE_ID
        ):
            raise ValueError("AIRTABLE_API_KEY and AIRTABLE_BASE_ID are required for the airtable backend")
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)
