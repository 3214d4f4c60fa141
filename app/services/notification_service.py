"""In-app notification sink.

Notifications are append-only. Reading and marking them as read belongs to
the notification center, not to the booking workflow.
"""

import json
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification


def _json_number(value: Any) -> int | float:
    number = float(value)
    return int(number) if number.is_integer() else number


class NotificationService:
    """Service for writing in-app notifications."""

    # Notification types
    BOOKING_REQUEST = "booking_request"
    JOB_COMPLETED = "job_completed"

    async def create_notification(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        message: str,
        notification_type: str,
        booking_id: UUID | None = None,
    ) -> Notification:
        """Create an in-app notification.

        Args:
            db: Database session
            user_id: User to notify
            title: Notification title
            message: Message text or serialized payload
            notification_type: Type of notification
            booking_id: Related booking ID

        Returns:
            Notification: Created notification
        """
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            notification_type=notification_type,
            booking_id=booking_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    # ==================== BOOKING NOTIFICATIONS ====================

    async def notify_new_booking(
        self,
        db: AsyncSession,
        provider_id: UUID,
        booking_id: UUID,
        service_name: str,
        date: str,
        time: str,
        price: Any,
        address: str,
        client_name: str,
        client_email: str,
        client_phone: str | None,
    ) -> Notification:
        """Tell a provider about a new booking, with the client's contact details."""
        payload = {
            "serviceName": service_name,
            "date": date,
            "time": time,
            "price": _json_number(price),
            "clientName": client_name,
            "clientEmail": client_email,
            "clientPhone": client_phone,
            "address": address,
        }
        return await self.create_notification(
            db=db,
            user_id=provider_id,
            title="New Booking Received",
            message=json.dumps(payload),
            notification_type=self.BOOKING_REQUEST,
            booking_id=booking_id,
        )

    async def notify_job_completed(
        self,
        db: AsyncSession,
        client_id: UUID,
        booking_id: UUID,
        service_name: str,
    ) -> Notification:
        """Invite a client to rate the provider of a completed job."""
        return await self.create_notification(
            db=db,
            user_id=client_id,
            title="Job Completed",
            message=(
                f"Your booking for {service_name} has been completed. "
                "You can now rate your provider."
            ),
            notification_type=self.JOB_COMPLETED,
            booking_id=booking_id,
        )


# Singleton instance
notification_service = NotificationService()
