"""Booking-related Pydantic schemas.

JSON payloads use camelCase field names.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serializing to camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _as_float(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


class BookingCreate(CamelModel):
    """Booking request as sent by the client app.

    Every field is optional at the schema level so that the missing ones can
    be reported together, by name.
    """

    user_id: UUID | None = None
    provider_id: UUID | None = None
    service_name: str | None = None
    date: str | None = None
    time: str | None = None
    price: Decimal | None = None
    address: str | None = None

    def missing_fields(self) -> list[str]:
        """Aliases of required fields that are absent or blank, in request order."""
        missing = []
        for name, field in type(self).model_fields.items():
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(field.alias or name)
        return missing


class BookingResponse(CamelModel):
    """Schema for booking response."""

    id: UUID
    client_id: UUID
    provider_id: UUID
    service_name: str
    date: str
    time: str
    price: float
    address: str
    status: str
    pending_rating: bool
    version: int

    # Side effects of the latest transition
    notified_at: datetime | None = None
    emailed_at: datetime | None = None

    confirmed_at: datetime | None = None
    rejected_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, value: Any) -> Any:
        return _as_float(value)


class ProviderBookingItem(CamelModel):
    """A provider's booking, expanded with the client's contact details."""

    id: UUID
    service_name: str
    client_name: str
    email: str
    phone: str | None = None
    date: str
    time: str
    address: str
    price: float
    status: str
    profile_image: str | None = None
    created_at: datetime

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, value: Any) -> Any:
        return _as_float(value)


class ProviderSummary(CamelModel):
    """Provider contact details shown in a client's history."""

    id: UUID
    name: str
    email: str
    phone: str | None = None
    profile_image: str | None = None


class ClientHistoryItem(CamelModel):
    """A client's booking, expanded with the provider's contact details."""

    id: UUID
    service_name: str
    date: str
    time: str
    address: str
    price: float
    status: str
    pending_rating: bool
    created_at: datetime
    provider: ProviderSummary

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, value: Any) -> Any:
        return _as_float(value)


class BookingEnvelope(CamelModel):
    success: bool = True
    message: str
    booking: BookingResponse


class ProviderBookingList(CamelModel):
    success: bool = True
    message: str
    bookings: list[ProviderBookingItem]


class HistoryResponse(CamelModel):
    success: bool = True
    data: list[ClientHistoryItem]


class MessageResponse(CamelModel):
    success: bool = True
    message: str
