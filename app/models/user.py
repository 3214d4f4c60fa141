"""User-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base
from app.utils.timestamps import utc_now

if TYPE_CHECKING:
    from app.models.booking import Booking


class User(Base):
    """User account model.

    Accounts are owned by the accounts service; this core only reads them.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(30))
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="client"
    )  # client, provider, admin
    profile_image: Mapped[str | None] = mapped_column(Text)

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now()
    )

    # Relationships
    provider_details: Mapped["ProviderDetails | None"] = relationship(
        "ProviderDetails", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    bookings_as_client: Mapped[list["Booking"]] = relationship(
        "Booking", back_populates="client", foreign_keys="[Booking.client_id]"
    )
    bookings_as_provider: Mapped[list["Booking"]] = relationship(
        "Booking", back_populates="provider", foreign_keys="[Booking.provider_id]"
    )


class ProviderDetails(Base):
    """Provider onboarding record carrying the payment flag."""

    __tablename__ = "provider_details"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    payment_status: Mapped[str | None] = mapped_column(String(20))  # None until first booking, then Unpaid
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), onupdate=utc_now
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="provider_details")
