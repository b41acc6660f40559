"""
Phone number normalization for matching SMS senders to recipients.
"""
import re
from typing import Optional

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(raw: Optional[str]) -> Optional[str]:
    """
    Reduce a phone number to its digits, dropping a leading US country code.

    "+1 (555) 010-2000", "15550102000" and "555-010-2000" all give "5550102000".
    """
    if not raw:
        return None
    digits = _NON_DIGITS.sub("", raw)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits or None
