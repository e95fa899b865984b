"""Notification delivery for matched pet listings.

This module provides the complete notification pipeline:
- NotificationDispatcher: per-recipient sends with isolation, per-send timeout and ledger
- NotificationOutcome: result of one recipient's notification
- NotificationSender / EmailNotificationSender: the send collaborator
- TemplateRenderer: Jinja2-based email template rendering
- SMTPClient: SMTP wrapper with TLS/SSL support
"""

from .models import (
    DispatchFailure,
    DispatchTimeout,
    InvalidRecipientError,
    NotificationError,
    NotificationOutcome,
    NotificationTemplateError,
    SMTPDeliveryError,
    TemplateKind,
)
from .payloads import build_template_data
from .sender import EmailNotificationSender, NotificationSender
from .service import NotificationDispatcher
from .smtp_client import SMTPClient, build_sender_address, validate_recipient
from .templates import TemplateRenderer

__all__ = [
    # Main service
    "NotificationDispatcher",
    # Models and results
    "NotificationOutcome",
    "TemplateKind",
    # Exceptions
    "NotificationError",
    "DispatchFailure",
    "DispatchTimeout",
    "InvalidRecipientError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    # Components
    "NotificationSender",
    "EmailNotificationSender",
    "TemplateRenderer",
    "SMTPClient",
    # Utilities
    "build_template_data",
    "build_sender_address",
    "validate_recipient",
]
