"""API dependencies for authentication and service wiring."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppException, AuthenticationError, AuthorizationError
from app.core.security import verify_token
from app.database import get_db
from app.models.user import User
from app.services.booking_service import BookingService
from app.services.email_service import EmailDispatcher, get_email_dispatcher
from app.services.notification_service import notification_service

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    try:
        payload = verify_token(credentials.credentials, token_type="access")
        user_id = UUID(payload.get("sub") or "")
    except AppException:
        raise
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    user = await db.get(User, user_id)

    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


async def get_current_provider(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they are a service provider."""
    if current_user.role not in ("provider", "admin"):
        raise AuthorizationError("Service provider access required")
    return current_user


async def get_current_client(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they are a client."""
    if current_user.role != "client":
        raise AuthorizationError("Client access required")
    return current_user


def get_booking_service(
    email_dispatcher: Annotated[EmailDispatcher, Depends(get_email_dispatcher)],
) -> BookingService:
    """Booking orchestrator wired with the configured collaborators."""
    return BookingService(
        email_dispatcher=email_dispatcher,
        notifications=notification_service,
    )
