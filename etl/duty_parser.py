# WORKFLOW: Duty rate parser for tariff code candidates.
# Used by: Code normalizer
# Functions:
# 1. parse_duty_rate() - Parse a reported duty rate into a percent value or None
# 2. is_no_rate_marker() - Detect "-" style placeholders printed instead of a rate
#
# Parsing flow: Oracle value (number | string | null) -> Marker check -> Numeric extraction -> float | None
# A missing rate stays unknown (None). A printed "-" is ambiguous between exemption and
# "no rate given", so it is also kept unknown rather than coerced to 0.

import logging
import math
import re
from typing import Optional, Union

logger = logging.getLogger(__name__)

NO_RATE_MARKERS = {"-", "–", "—", "--", "n/a", "na", "/"}

AD_VALOREM_PATTERN = re.compile(r'^\s*(-?\d+(?:[.,]\d+)?)\s*%?\s*$')


def is_no_rate_marker(value: str) -> bool:
    """
    Check whether a printed duty value is a placeholder rather than a rate.

    Args:
        value: Duty string as printed

    Returns:
        True for "-", "–", "n/a" and similar
    """
    return value.strip().lower() in NO_RATE_MARKERS


def parse_duty_rate(value: Union[float, int, str, None]) -> Optional[float]:
    """
    Parse an ad valorem duty rate.

    Args:
        value: Duty as reported (e.g. 10, "10", "2,5 %", "-", None)

    Returns:
        Rate in percent, or None when the rate is unknown
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            return None
        return float(value)

    text = str(value).strip()
    if not text or is_no_rate_marker(text):
        return None

    match = AD_VALOREM_PATTERN.match(text)
    if not match:
        logger.debug(f"Unrecognized duty format kept as unknown: {text!r}")
        return None

    return float(match.group(1).replace(",", "."))
