"""
User-Facing Messages
====================
Default English text for OTP form errors.
"""

from typing import Dict, Optional

DEFAULT_MESSAGES: Dict[str, str] = {
    "code_required": "Enter a valid one time password.",
    "code_invalid": "Entered code is invalid.",
    "code_replayed_time": (
        "Entered code has already been used. "
        "Please wait until next code will be generated."
    ),
    "code_replayed_counter": (
        "Entered code has already been used. "
        "Please log in again to request a new code."
    ),
}


class DefaultMessageCatalog:
    """MessageCatalog with English defaults and optional overrides."""

    def __init__(self, overrides: Optional[Dict[str, str]] = None):
        self.messages = {**DEFAULT_MESSAGES, **(overrides or {})}

    def message(self, key: str, **params: object) -> str:
        text = self.messages.get(key, key)
        return text.format(**params) if params else text
