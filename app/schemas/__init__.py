"""Pydantic schemas for API validation."""

from app.schemas.booking import (
    BookingCreate,
    BookingEnvelope,
    BookingResponse,
    ClientHistoryItem,
    HistoryResponse,
    MessageResponse,
    ProviderBookingItem,
    ProviderBookingList,
    ProviderSummary,
)

__all__ = [
    # Booking
    "BookingCreate",
    "BookingResponse",
    "BookingEnvelope",
    # Read views
    "ProviderBookingItem",
    "ProviderBookingList",
    "ProviderSummary",
    "ClientHistoryItem",
    "HistoryResponse",
    # Generic
    "MessageResponse",
]
