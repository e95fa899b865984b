"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Inspect a raw configuration mapping for settings that are legal but risky.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    matching = config_dict.get("matching") or {}
    if isinstance(matching, dict) and str(matching.get("empty_facet", "any")).lower() == "none":
        warning_messages.append(
            "matching.empty_facet is 'none': users with an empty species, breeds "
            "or size list will never receive alerts"
        )

    dispatch = config_dict.get("dispatch") or {}
    if isinstance(dispatch, dict):
        max_workers = dispatch.get("max_workers", 4)
        if isinstance(max_workers, int) and max_workers > 16:
            warning_messages.append(
                f"Large dispatch.max_workers ({max_workers}) may trip SMTP provider rate limits"
            )

        timeout = dispatch.get("timeout_seconds", 30)
        if isinstance(timeout, (int, float)) and timeout < 5:
            warning_messages.append(
                f"Short dispatch.timeout_seconds ({timeout}) may fail slow SMTP handshakes"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message through the warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
