"""Normalisation of service and cleaning-type keys.

Services and cleaning types reach the engine spelled however the booking
form or the admin screen spelled them (``airbnb-cleaning``, ``Airbnb Cleaning``,
``airbnb_cleaning``). Overrides are matched on normalised keys so that any
spelling of the same service finds the same override.
"""

import re
from typing import Optional

_SEPARATORS = re.compile(r"[\s\-_]+")

CLEANING_TYPE_SYNONYMS = {
    "checkin_checkout": "check_in_check_out",
    "check_in_check_out": "check_in_check_out",
    "midstay": "midstay_cleaning",
    "midstay_cleaning": "midstay_cleaning",
    "light": "light_cleaning",
    "light_cleaning": "light_cleaning",
    "deep": "deep_cleaning",
    "deep_cleaning": "deep_cleaning",
}


def _canonical(value: str) -> str:
    return _SEPARATORS.sub("_", value.strip().lower()).strip("_")


def normalize_service_type(value: Optional[str]) -> Optional[str]:
    """Canonical key for a service type.

    Every spelling of an Airbnb service collapses to ``airbnb``.
    """
    if not value or not value.strip():
        return None
    key = _canonical(value)
    if "airbnb" in key:
        return "airbnb"
    return key


def normalize_cleaning_type(value: Optional[str]) -> Optional[str]:
    """Canonical key for a cleaning type, or None for "all cleaning types"."""
    if not value or not value.strip():
        return None
    key = _canonical(value)
    return CLEANING_TYPE_SYNONYMS.get(key, key)
