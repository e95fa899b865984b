"""Notification-send collaborator.

The dispatcher only knows the NotificationSender protocol; the email
implementation renders the Jinja2 templates and delivers over SMTP.
"""

import logging
from email.message import EmailMessage
from typing import Any, Mapping, Optional, Protocol

from pet_alerts.config.environment import EnvironmentConfig
from pet_alerts.config.models import EmailConfig
from pet_alerts.domain.models import Recipient

from .models import TemplateKind
from .smtp_client import SMTPClient, build_sender_address, validate_recipient
from .templates import TemplateRenderer

logger = logging.getLogger(__name__)


class NotificationSender(Protocol):
    """Anything that can deliver one templated notification to one recipient."""

    def send(
        self,
        recipient: Recipient,
        template_kind: TemplateKind,
        template_data: Mapping[str, Any],
    ) -> None:
        """Deliver or raise DispatchFailure."""
        ...


class EmailNotificationSender:
    """Sends notifications as multipart (plain text + HTML) email."""

    def __init__(
        self,
        env_config: EnvironmentConfig,
        email_config: Optional[EmailConfig] = None,
        template_renderer: Optional[TemplateRenderer] = None,
        smtp_client: Optional[SMTPClient] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the email sender.

        Args:
            env_config: SMTP endpoint and credentials
            email_config: Email settings (TLS); defaults apply if None
            template_renderer: Template renderer (creates default if None)
            smtp_client: SMTP client (creates one with timeout if None)
            timeout: SMTP socket timeout, used only when smtp_client is None
        """
        self.env_config = env_config
        self.email_config = email_config or EmailConfig()
        self.template_renderer = template_renderer or TemplateRenderer()
        self.smtp_client = smtp_client or SMTPClient(timeout=timeout)

    def build_message(
        self,
        recipient: Recipient,
        template_kind: TemplateKind,
        template_data: Mapping[str, Any],
    ) -> EmailMessage:
        """Render templates into an EmailMessage addressed to recipient.

        Raises:
            InvalidRecipientError: If the recipient address is missing or invalid
            NotificationTemplateError: If rendering fails
        """
        to_address = validate_recipient(recipient.email)
        rendered = self.template_renderer.render(template_kind, template_data)

        message = EmailMessage()
        message["Subject"] = rendered["subject"]
        message["From"] = build_sender_address(self.env_config)
        message["To"] = to_address
        message.set_content(rendered["text_body"])
        message.add_alternative(rendered["html_body"], subtype="html")
        return message

    def send(
        self,
        recipient: Recipient,
        template_kind: TemplateKind,
        template_data: Mapping[str, Any],
    ) -> None:
        """Render and deliver one notification.

        Raises:
            DispatchFailure: Any subclass, on invalid recipient, template or SMTP failure
        """
        message = self.build_message(recipient, template_kind, template_data)
        self.smtp_client.send(message, self.env_config, self.email_config.use_tls)
        logger.debug(f"Delivered {template_kind.value} email to user {recipient.user_id}")
