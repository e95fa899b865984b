"""Data models and exceptions for the notification dispatcher.

This module defines the template kinds, per-recipient outcome type and the
exception hierarchy used throughout the notification pipeline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TemplateKind(str, Enum):
    """Notification templates known to the sender."""

    NEW_LISTING_MATCH = "new_listing_match"


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class DispatchFailure(NotificationError):
    """A single send failed. kind is a short machine-readable category."""

    kind = "dispatch"

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class SMTPDeliveryError(DispatchFailure):
    """Raised when the SMTP server rejects the message or cannot be reached."""

    kind = "smtp"


class InvalidRecipientError(DispatchFailure):
    """Raised when the recipient has no usable email address."""

    kind = "invalid_recipient"


class NotificationTemplateError(DispatchFailure):
    """Raised when template rendering fails due to configuration or missing variables."""

    kind = "template"


class DispatchTimeout(DispatchFailure):
    """Raised when a send does not finish within its timeout."""

    kind = "timeout"


@dataclass
class NotificationOutcome:
    """Result of attempting to notify one recipient about one listing.

    Attributes:
        user_id: Recipient user id
        listing_id: Listing the notification was about
        delivered: True if the sender accepted the message
        error_kind: Failure category (smtp, invalid_recipient, template, timeout, unexpected)
        error: Failure message
        duplicate: True if skipped because the ledger already recorded a send
    """

    user_id: str
    listing_id: str
    delivered: bool
    error_kind: Optional[str] = None
    error: Optional[str] = None
    duplicate: bool = False

    @property
    def failed(self) -> bool:
        return not self.delivered and not self.duplicate

    @classmethod
    def failure(cls, user_id: str, listing_id: str, exc: BaseException) -> "NotificationOutcome":
        """Build a failed outcome from an exception."""
        kind = exc.kind if isinstance(exc, DispatchFailure) else "unexpected"
        return cls(
            user_id=user_id,
            listing_id=listing_id,
            delivered=False,
            error_kind=kind,
            error=str(exc),
        )
