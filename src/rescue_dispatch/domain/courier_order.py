"""DTOs for the DODO courier API payloads."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class _CourierModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CourierStop(_CourierModel):
    required_start: datetime = Field(serialization_alias="RequiredStart")
    required_end: datetime = Field(serialization_alias="RequiredEnd")
    note: str | None = Field(default=None, serialization_alias="Note")

    @field_serializer("required_start", "required_end")
    def _as_utc(self, value: datetime) -> str:
        return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.000Z")


class CourierPickup(CourierStop):
    branch_identifier: str = Field(serialization_alias="BranchIdentifier")


class CourierDrop(CourierStop):
    address_raw_value: str = Field(serialization_alias="AddressRawValue")


class CourierOrder(_CourierModel):
    identifier: str = Field(serialization_alias="Identifier")
    pickup: CourierPickup = Field(serialization_alias="Pickup")
    drop: CourierDrop = Field(serialization_alias="Drop")
    customer_name: str = Field(serialization_alias="CustomerName")
    customer_phone: str = Field(serialization_alias="CustomerPhone")
    price: int = Field(default=0, serialization_alias="Price")

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CourierToken(BaseModel):
    """OAuth client-credentials token returned by the courier identity provider."""

    token_type: Literal["Bearer"]
    expires_in: int
    ext_expires_in: int
    access_token: str
