"""Database models."""

from app.models.booking import Booking
from app.models.notification import Notification
from app.models.user import ProviderDetails, User

__all__ = [
    # User
    "User",
    "ProviderDetails",
    # Booking
    "Booking",
    # Notification
    "Notification",
]
