"""Booking lifecycle orchestration.

Every state-changing operation runs its steps in a fixed order, each one
durable before the next starts:

1. ledger write (booking row, plus the provider payment flag on creation)
2. in-app notification, marked by ``Booking.notified_at``
3. email, marked by ``Booking.emailed_at``

There is no transaction spanning the three. When the email fails the state
change and notification stay committed, the caller gets an error, and
``dispatch_pending_effects`` can later finish the remaining steps without
repeating the ones already applied.
"""

import logging
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
    InvalidBookingStatus,
    NotFoundError,
    ValidationError,
)
from app.domain.booking_state import (
    BookingOperation,
    BookingStatus,
    assert_deletable,
    next_booking_status,
)
from app.models.booking import Booking
from app.models.user import ProviderDetails, User
from app.schemas.booking import BookingCreate
from app.services import email_templates
from app.services.email_service import EmailDeliveryError, EmailDispatcher
from app.services.notification_service import NotificationService, notification_service
from app.utils.timestamps import utc_now

logger = logging.getLogger(__name__)

PAYMENT_STATUS_UNPAID = "Unpaid"

# Statuses whose entering transition writes an in-app notification
NOTIFIED_STATUSES = frozenset({BookingStatus.PENDING.value, BookingStatus.COMPLETED.value})

HISTORY_VIEWS: dict[str, BookingStatus] = {
    # "all" is the client's tab of outstanding requests
    "all": BookingStatus.PENDING,
    "completed": BookingStatus.COMPLETED,
    "rejected": BookingStatus.REJECTED,
}


class BookingService:
    """Orchestrates the booking lifecycle across ledger, notifications and email."""

    def __init__(
        self,
        email_dispatcher: EmailDispatcher,
        notifications: NotificationService | None = None,
    ) -> None:
        self.email_dispatcher = email_dispatcher
        self.notifications = notifications or notification_service

    # ==================== LOOKUPS ====================

    async def _get_booking(self, db: AsyncSession, booking_id: UUID, missing_detail: str | None = None) -> Booking:
        booking = await db.get(Booking, booking_id)
        if booking is None:
            logger.warning(f"Booking {booking_id} not found")
            raise NotFoundError("Booking", str(booking_id), detail=missing_detail or "Booking not found.")
        return booking

    async def _get_parties(self, db: AsyncSession, booking: Booking) -> tuple[User, User]:
        client = await db.get(User, booking.client_id)
        if client is None:
            raise NotFoundError("Client", detail="Client not found.")
        provider = await db.get(User, booking.provider_id)
        if provider is None:
            raise NotFoundError("Service provider", detail="Service provider not found.")
        return client, provider

    @staticmethod
    def _require_provider(booking: Booking, actor: User) -> None:
        if actor.role == "admin" or actor.id == booking.provider_id:
            return
        logger.warning(f"User {actor.id} is not the provider of booking {booking.id}")
        raise AuthorizationError("Only the booking's provider can perform this action")

    @staticmethod
    def _require_party(booking: Booking, actor: User) -> None:
        if actor.role == "admin" or booking.involves(actor.id):
            return
        logger.warning(f"User {actor.id} is not a party to booking {booking.id}")
        raise AuthorizationError("You don't have permission to access this booking")

    # ==================== CREATION ====================

    async def create_booking(self, db: AsyncSession, request: BookingCreate) -> Booking:
        """Create a pending booking and notify the provider.

        Raises:
            ValidationError: Missing fields, negative price or self-booking
            NotFoundError: Provider or client does not exist
            ExternalServiceError: The booking was saved but the email failed
        """
        missing = request.missing_fields()
        if missing:
            logger.warning(f"Booking request rejected, missing fields: {', '.join(missing)}")
            raise ValidationError(
                f"Validation error: Missing fields - {', '.join(missing)}.",
                missing_fields=missing,
            )
        if request.price < 0:
            raise ValidationError("Price must be zero or greater.")

        provider = await db.get(User, request.provider_id)
        if provider is None:
            logger.warning(f"Provider not found: provider_id={request.provider_id}")
            raise NotFoundError("Service provider", detail="Service provider not found.")

        client = await db.get(User, request.user_id)
        if client is None:
            logger.warning(f"Client not found: client_id={request.user_id}")
            raise NotFoundError("Client", detail="Client not found.")

        if client.id == provider.id:
            raise ValidationError("You cannot book your own service")

        await self._mark_first_booking(db, provider.id)

        booking = Booking(
            client_id=client.id,
            provider_id=provider.id,
            service_name=request.service_name,
            date=request.date,
            time=request.time,
            price=request.price,
            address=request.address,
            status=BookingStatus.PENDING.value,
            pending_rating=False,
            version=1,
        )
        db.add(booking)
        await db.commit()
        logger.info(f"Booking {booking.id} created: client={client.id} provider={provider.id}")

        await self._apply_effects(db, booking, client, provider)
        return booking

    async def _mark_first_booking(self, db: AsyncSession, provider_id: UUID) -> bool:
        """Flag the provider as ``Unpaid`` when it receives its first booking.

        Returns:
            bool: True if the flag was set by this call
        """
        existing = await db.scalar(
            select(func.count()).select_from(Booking).where(Booking.provider_id == provider_id)
        )
        if existing:
            return False

        # Concurrent first bookings may both get here; the row insert is idempotent
        # and only one conditional update can see a NULL flag.
        insert = pg_insert if db.bind.dialect.name == "postgresql" else sqlite_insert
        await db.execute(
            insert(ProviderDetails)
            .values(user_id=provider_id)
            .on_conflict_do_nothing(index_elements=[ProviderDetails.user_id])
        )
        result = await db.execute(
            update(ProviderDetails)
            .where(ProviderDetails.user_id == provider_id, ProviderDetails.payment_status.is_(None))
            .values(payment_status=PAYMENT_STATUS_UNPAID, updated_at=utc_now())
        )
        if result.rowcount != 1:
            # Set once; billing owns the flag afterwards
            return False

        logger.info(f"First booking for provider {provider_id}; payment status set to {PAYMENT_STATUS_UNPAID}")
        return True

    # ==================== TRANSITIONS ====================

    async def accept_booking(self, db: AsyncSession, booking_id: UUID, actor: User) -> Booking:
        """Confirm a pending booking and email the client."""
        return await self._transition(db, booking_id, actor, BookingOperation.ACCEPT)

    async def reject_booking(self, db: AsyncSession, booking_id: UUID, actor: User) -> Booking:
        """Reject a pending booking and email the client."""
        return await self._transition(db, booking_id, actor, BookingOperation.REJECT)

    async def complete_booking(self, db: AsyncSession, booking_id: UUID, actor: User) -> Booking:
        """Complete a confirmed booking, flag it for rating and notify the client."""
        return await self._transition(db, booking_id, actor, BookingOperation.COMPLETE)

    async def _transition(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: User,
        operation: BookingOperation,
    ) -> Booking:
        booking = await self._get_booking(db, booking_id)
        self._require_provider(booking, actor)

        try:
            target = next_booking_status(booking.status, operation)
        except InvalidBookingStatus:
            logger.warning(f"Rejected {operation.value} on booking {booking_id} in status {booking.status}")
            raise

        client, provider = await self._get_parties(db, booking)

        now = utc_now()
        values: dict = {
            "status": target.value,
            "version": booking.version + 1,
            "notified_at": None,
            "emailed_at": None,
            "updated_at": now,
        }
        if target is BookingStatus.CONFIRMED:
            values["confirmed_at"] = now
        elif target is BookingStatus.REJECTED:
            values["rejected_at"] = now
        elif target is BookingStatus.COMPLETED:
            values["completed_at"] = now
            values["pending_rating"] = True

        # Only applies if nobody moved the booking since we read it
        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status == booking.status,
                Booking.version == booking.version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            logger.warning(f"Concurrent modification of booking {booking_id} during {operation.value}")
            raise ConflictError()

        await db.commit()
        await db.refresh(booking)
        logger.info(f"Booking {booking.id} {operation.value}: status={booking.status} version={booking.version}")

        await self._apply_effects(db, booking, client, provider)
        return booking

    # ==================== SIDE EFFECTS ====================

    async def dispatch_pending_effects(self, db: AsyncSession, booking_id: UUID, actor: User) -> Booking:
        """Finish side effects of the latest transition that have not been applied yet."""
        booking = await self._get_booking(db, booking_id)
        self._require_party(booking, actor)
        client, provider = await self._get_parties(db, booking)
        await self._apply_effects(db, booking, client, provider)
        return booking

    async def _apply_effects(self, db: AsyncSession, booking: Booking, client: User, provider: User) -> None:
        if booking.status in NOTIFIED_STATUSES and booking.notified_at is None:
            await self._write_notification(db, booking, client)
            booking.notified_at = utc_now()
            await db.commit()
            logger.info(f"Notification written for booking {booking.id} ({booking.status})")

        if booking.emailed_at is None:
            recipient, email = self._render_email(booking, client, provider)
            try:
                await self.email_dispatcher.send(recipient, email.subject, email.html)
            except EmailDeliveryError as e:
                logger.error(
                    f"Email for booking {booking.id} ({booking.status}) to {recipient} failed: {e.reason}"
                )
                raise ExternalServiceError(
                    "email",
                    f"booking {booking.id} was saved as {booking.status} but the email could not be sent; "
                    f"retry with POST /book/dispatch/{booking.id}",
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                ) from e
            booking.emailed_at = utc_now()
            await db.commit()

    async def _write_notification(self, db: AsyncSession, booking: Booking, client: User) -> None:
        if booking.status == BookingStatus.PENDING.value:
            await self.notifications.notify_new_booking(
                db,
                provider_id=booking.provider_id,
                booking_id=booking.id,
                service_name=booking.service_name,
                date=booking.date,
                time=booking.time,
                price=booking.price,
                address=booking.address,
                client_name=client.name,
                client_email=client.email,
                client_phone=client.phone,
            )
        else:
            await self.notifications.notify_job_completed(
                db,
                client_id=booking.client_id,
                booking_id=booking.id,
                service_name=booking.service_name,
            )

    def _render_email(
        self, booking: Booking, client: User, provider: User
    ) -> tuple[str, email_templates.RenderedEmail]:
        status = booking.status
        if status == BookingStatus.PENDING.value:
            return provider.email, email_templates.new_booking_email(
                provider_name=provider.name,
                client_name=client.name,
                client_email=client.email,
                client_phone=client.phone,
                service_name=booking.service_name,
                date=booking.date,
                time=booking.time,
                price=booking.price,
                address=booking.address,
            )
        if status == BookingStatus.CONFIRMED.value:
            return client.email, email_templates.booking_confirmed_email(
                client.name, booking.service_name, booking.date, booking.time
            )
        if status == BookingStatus.REJECTED.value:
            return client.email, email_templates.booking_rejected_email(
                client.name, booking.service_name, booking.date, booking.time
            )
        return client.email, email_templates.job_completed_email(
            client_name=client.name,
            provider_name=provider.name,
            provider_email=provider.email,
            service_name=booking.service_name,
            date=booking.date,
            time=booking.time,
        )

    # ==================== DELETION ====================

    async def delete_completed(self, db: AsyncSession, booking_id: UUID, actor: User) -> None:
        """Hard-delete a completed booking."""
        await self._delete_terminal(
            db, booking_id, actor, BookingStatus.COMPLETED, "Completed job not found or already deleted."
        )

    async def delete_rejected(self, db: AsyncSession, booking_id: UUID, actor: User) -> None:
        """Hard-delete a rejected booking."""
        await self._delete_terminal(
            db, booking_id, actor, BookingStatus.REJECTED, "Rejected booking not found or already deleted."
        )

    async def _delete_terminal(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: User,
        expected: BookingStatus,
        missing_detail: str,
    ) -> None:
        booking = await self._get_booking(db, booking_id, missing_detail)
        self._require_party(booking, actor)
        try:
            assert_deletable(booking.status, expected)
        except InvalidBookingStatus:
            logger.warning(f"Booking {booking.id} is {booking.status}, not {expected.value}; not deleted")
            raise

        await self._delete_where(db, booking.id, expected)
        logger.info(f"{expected.value.capitalize()} booking {booking.id} deleted by user {actor.id}")

    async def delete_pending_for_client(self, db: AsyncSession, booking_id: UUID, client_id: UUID) -> None:
        """Withdraw a request the provider has not acted on yet."""
        booking = await self._get_booking(
            db, booking_id, "Pending booking not found or not authorized to delete."
        )
        if booking.client_id != client_id:
            logger.warning(f"Client {client_id} tried to delete booking {booking.id} of client {booking.client_id}")
            raise AuthorizationError("Pending booking not found or not authorized to delete.")
        if booking.status != BookingStatus.PENDING.value:
            logger.warning(f"Booking {booking.id} is {booking.status}; only pending requests can be withdrawn")
            raise NotFoundError("Pending booking", detail="Pending booking not found or not authorized to delete.")

        await self._delete_where(db, booking.id, BookingStatus.PENDING)
        logger.info(f"Pending booking {booking.id} withdrawn by client {client_id}")

    async def _delete_where(self, db: AsyncSession, booking_id: UUID, expected: BookingStatus) -> None:
        result = await db.execute(
            delete(Booking).where(Booking.id == booking_id, Booking.status == expected.value)
        )
        if result.rowcount != 1:
            await db.rollback()
            logger.warning(f"Booking {booking_id} changed before it could be deleted")
            raise ConflictError()
        await db.commit()

    # ==================== READ VIEWS ====================

    async def list_for_provider(self, db: AsyncSession, provider_id: UUID, status: str) -> list[Booking]:
        """Provider's bookings in one status, newest first, with clients loaded."""
        try:
            wanted = BookingStatus(status.lower())
        except ValueError:
            raise ValidationError(f"Unknown booking status: {status}")

        result = await db.execute(
            select(Booking)
            .options(selectinload(Booking.client))
            .where(Booking.provider_id == provider_id, Booking.status == wanted.value)
            .order_by(Booking.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_history_for_client(self, db: AsyncSession, client_id: UUID, view: str) -> list[Booking]:
        """Client's history view, newest first, with providers loaded.

        Views: ``all`` (outstanding pending requests), ``completed``, ``rejected``.
        """
        wanted = HISTORY_VIEWS.get(view.lower())
        if wanted is None:
            raise ValidationError(f"Unknown history view: {view}")

        result = await db.execute(
            select(Booking)
            .options(selectinload(Booking.provider))
            .where(Booking.client_id == client_id, Booking.status == wanted.value)
            .order_by(Booking.created_at.desc())
        )
        return list(result.scalars().all())
