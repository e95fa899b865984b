"""Template data for listing notifications."""

from typing import Dict, Optional

from pet_alerts.config.models import EmailConfig
from pet_alerts.domain.models import ListingSnapshot, Recipient

UNKNOWN_BREED = "Unknown breed"
DEFAULT_RECIPIENT_NAME = "there"


def build_listing_url(listing: ListingSnapshot, email_config: Optional[EmailConfig]) -> str:
    if email_config is None or not email_config.listing_url_template:
        return ""
    return email_config.listing_url_template.format(listing_id=listing.listing_id)


def build_template_data(
    recipient: Recipient,
    listing: ListingSnapshot,
    email_config: Optional[EmailConfig] = None,
) -> Dict[str, str]:
    """Build the NEW_LISTING_MATCH template variables.

    Args:
        recipient: Who is being notified
        listing: The matched listing
        email_config: Supplies the optional listing URL template

    Returns:
        Dictionary with keys:
        - pet_name, pet_breed, pet_age: listing display fields
        - recipient_name: greeting name ("there" when the profile has none)
        - listing_id: listing reference
        - listing_url: link to the listing, or "" when not configured
    """
    return {
        "pet_name": listing.pet_name,
        "pet_breed": listing.breed_label or UNKNOWN_BREED,
        "pet_age": listing.age_label,
        "recipient_name": (recipient.name or "").strip() or DEFAULT_RECIPIENT_NAME,
        "listing_id": listing.listing_id,
        "listing_url": build_listing_url(listing, email_config),
    }
