"""Booking endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (
    get_booking_service,
    get_current_client,
    get_current_provider,
    get_current_user,
    get_db,
)
from app.config import settings
from app.models.booking import Booking
from app.models.user import User
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
from app.services.booking_service import BookingService
from app.utils.formatting import resolve_image_url

router = APIRouter()


def _provider_item(booking: Booking) -> ProviderBookingItem:
    client = booking.client
    return ProviderBookingItem(
        id=booking.id,
        service_name=booking.service_name,
        client_name=client.name,
        email=client.email,
        phone=client.phone,
        date=booking.date,
        time=booking.time,
        address=booking.address,
        price=booking.price,
        status=booking.status,
        profile_image=resolve_image_url(client.profile_image, settings.image_base_url),
        created_at=booking.created_at,
    )


def _history_item(booking: Booking) -> ClientHistoryItem:
    provider = booking.provider
    return ClientHistoryItem(
        id=booking.id,
        service_name=booking.service_name,
        date=booking.date,
        time=booking.time,
        address=booking.address,
        price=booking.price,
        status=booking.status,
        pending_rating=booking.pending_rating,
        created_at=booking.created_at,
        provider=ProviderSummary(
            id=provider.id,
            name=provider.name,
            email=provider.email,
            phone=provider.phone,
            profile_image=resolve_image_url(provider.profile_image, settings.image_base_url),
        ),
    )


# ==================== CLIENT REQUESTS ====================


@router.post("/book-service", response_model=BookingEnvelope, status_code=status.HTTP_201_CREATED)
async def book_service(
    booking_data: BookingCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingEnvelope:
    """Request a service from a provider."""
    booking = await service.create_booking(db, booking_data)
    return BookingEnvelope(
        message="Booking created, provider notified, and email sent.",
        booking=BookingResponse.model_validate(booking),
    )


@router.get("/history/{view}", response_model=HistoryResponse)
async def get_history(
    view: str,
    current_user: Annotated[User, Depends(get_current_client)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> HistoryResponse:
    """Client history: ``all`` (pending requests), ``completed`` or ``rejected``."""
    bookings = await service.list_history_for_client(db, current_user.id, view)
    return HistoryResponse(data=[_history_item(b) for b in bookings])


@router.delete("/pending/{booking_id}", response_model=MessageResponse)
async def delete_pending_booking(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_client)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> MessageResponse:
    """Withdraw a request the provider has not acted on yet."""
    await service.delete_pending_for_client(db, booking_id, current_user.id)
    return MessageResponse(message="Pending booking deleted successfully.")


# ==================== PROVIDER DECISIONS ====================


@router.get("/provider/bookings/{booking_status}", response_model=ProviderBookingList)
async def get_provider_bookings(
    booking_status: str,
    current_user: Annotated[User, Depends(get_current_provider)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> ProviderBookingList:
    """Provider's bookings in one status, newest first."""
    bookings = await service.list_for_provider(db, current_user.id, booking_status)
    return ProviderBookingList(
        message=f"{booking_status.lower()} bookings fetched successfully.",
        bookings=[_provider_item(b) for b in bookings],
    )


@router.post("/accept/{booking_id}", response_model=BookingEnvelope)
async def accept_booking(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_provider)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingEnvelope:
    """Accept a pending booking (provider only)."""
    booking = await service.accept_booking(db, booking_id, current_user)
    return BookingEnvelope(
        message="Booking successfully accepted. A confirmation email has been sent to the client.",
        booking=BookingResponse.model_validate(booking),
    )


@router.post("/reject/{booking_id}", response_model=BookingEnvelope)
async def reject_booking(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_provider)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingEnvelope:
    """Reject a pending booking (provider only)."""
    booking = await service.reject_booking(db, booking_id, current_user)
    return BookingEnvelope(
        message="Booking successfully rejected. An email has been sent to the client.",
        booking=BookingResponse.model_validate(booking),
    )


@router.post("/complete/{booking_id}", response_model=BookingEnvelope)
async def complete_booking(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_provider)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingEnvelope:
    """Mark a confirmed booking as completed (provider only)."""
    booking = await service.complete_booking(db, booking_id, current_user)
    return BookingEnvelope(
        message="Job marked as completed, pending rating updated, email notification sent to the client.",
        booking=BookingResponse.model_validate(booking),
    )


@router.post("/dispatch/{booking_id}", response_model=BookingEnvelope)
async def dispatch_booking_effects(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingEnvelope:
    """Retry the notification and email of the booking's latest transition."""
    booking = await service.dispatch_pending_effects(db, booking_id, current_user)
    return BookingEnvelope(
        message="Booking notifications are up to date.",
        booking=BookingResponse.model_validate(booking),
    )


# ==================== TERMINAL CLEANUP ====================


@router.delete("/rejected/{booking_id}", response_model=MessageResponse)
async def delete_rejected_booking(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> MessageResponse:
    """Delete a rejected booking from history."""
    await service.delete_rejected(db, booking_id, current_user)
    return MessageResponse(message="Rejected booking deleted successfully.")


@router.delete("/completed/{booking_id}", response_model=MessageResponse)
async def delete_completed_booking(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BookingService, Depends(get_booking_service)],
) -> MessageResponse:
    """Delete a completed booking from history."""
    await service.delete_completed(db, booking_id, current_user)
    return MessageResponse(message="Completed job deleted successfully.")
