"""Template rendering for email notifications using Jinja2.

Each TemplateKind maps to three files in the email_templates package
directory: <kind>_subject.j2, <kind>_body.html.j2 and <kind>_body.txt.j2.
"""

import logging
from typing import Any, Dict, Mapping

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from .models import NotificationTemplateError, TemplateKind

logger = logging.getLogger(__name__)


class TemplateRenderer:
    """Renders email templates using Jinja2.

    Templates are loaded from pet_alerts.notifications.email_templates and
    cached by the Jinja2 environment across renders.
    """

    def __init__(self, template_dir: str = "email_templates"):
        """Initialize template renderer with Jinja2 environment.

        Args:
            template_dir: Directory name within the pet_alerts.notifications package
        """
        self.env = Environment(
            loader=PackageLoader("pet_alerts.notifications", template_dir),
            autoescape=True,
            undefined=StrictUndefined,
        )

        logger.debug(f"Initialized TemplateRenderer with templates from {template_dir}")

    @staticmethod
    def template_names(kind: TemplateKind) -> Dict[str, str]:
        base = kind.value
        return {
            "subject": f"{base}_subject.j2",
            "html_body": f"{base}_body.html.j2",
            "text_body": f"{base}_body.txt.j2",
        }

    def render(self, kind: TemplateKind, context: Mapping[str, Any]) -> Dict[str, str]:
        """Render the subject and both bodies for a template kind.

        Args:
            kind: Which notification to render
            context: Template variables

        Returns:
            Dictionary with subject (single line), html_body and text_body

        Raises:
            NotificationTemplateError: If a template is missing or rendering fails
        """
        try:
            rendered = {
                part: self.env.get_template(name).render(context)
                for part, name in self.template_names(kind).items()
            }
        except TemplateError as e:
            error_msg = f"Template rendering failed for {kind.value}: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

        rendered["subject"] = rendered["subject"].strip().replace("\n", " ")

        logger.debug(f"Rendered {kind.value} templates for listing: {context.get('listing_id', 'unknown')}")

        return rendered
