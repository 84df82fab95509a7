"""Non-fatal checks on raw configuration."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration

KNOWN_SECTIONS = ("matching", "messaging", "logging")


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for likely mistakes that still validate.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    for section in config_dict:
        if section not in KNOWN_SECTIONS:
            warning_messages.append(f"Unknown configuration section '{section}' is ignored")

    matching = config_dict.get("matching", {})
    if isinstance(matching, dict):
        page_contexts = matching.get("page_contexts")
        if isinstance(page_contexts, list):
            if not page_contexts:
                warning_messages.append(
                    "matching.page_contexts is empty; pending matches will never be re-checked"
                )
            for name in page_contexts:
                if isinstance(name, str) and name.strip().lower() in (
                    "requirement_form",
                    "vehicle_post",
                ):
                    warning_messages.append(
                        f"Page context '{name}' posts records itself; re-checking there "
                        "may show the same match twice"
                    )

        recheck_delay = matching.get("recheck_delay")
        if isinstance(recheck_delay, str):
            try:
                if parse_duration(recheck_delay) > 60:
                    warning_messages.append(
                        f"Long recheck_delay ({recheck_delay}); users may leave the page first"
                    )
            except DurationParseError:
                # Reported as an error by model validation
                pass

    messaging = config_dict.get("messaging", {})
    if isinstance(messaging, dict) and not messaging.get("whatsapp_number"):
        warning_messages.append(
            "messaging.whatsapp_number is not set; contact links cannot be built"
        )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
