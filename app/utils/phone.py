"""
Phone number validation against the allow-listed country codes
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from app.core.config import settings


@dataclass(frozen=True)
class CountryRule:
    iso: str
    name: str
    country_code: str  # digits only, no "+"
    national_pattern: str
    example: str


ALLOWED_COUNTRIES: Dict[str, CountryRule] = {
    "SA": CountryRule("SA", "Saudi Arabia", "966", r"5\d{8}", "+966501234567"),
    "AE": CountryRule("AE", "UAE", "971", r"5\d{8}", "+971501234567"),
    "SY": CountryRule("SY", "Syria", "963", r"9\d{8}", "+963901234567"),
    "BH": CountryRule("BH", "Bahrain", "973", r"[3-9]\d{7}", "+97336123456"),
    "QA": CountryRule("QA", "Qatar", "974", r"[357]\d{7}", "+97450123456"),
    "KW": CountryRule("KW", "Kuwait", "965", r"[569]\d{7}", "+96550123456"),
    "OM": CountryRule("OM", "Oman", "968", r"[79]\d{7}", "+96870123456"),
    "EG": CountryRule("EG", "Egypt", "20", r"1\d{9}", "+201012345678"),
}

_SEPARATORS = re.compile(r"[\s\-().]")


def _candidate_digits(raw: str) -> Optional[str]:
    """Strip formatting and international prefixes; return bare digits"""
    cleaned = _SEPARATORS.sub("", raw or "")
    if cleaned.startswith("+"):
        cleaned = cleaned[1:]
    elif cleaned.startswith("00"):
        cleaned = cleaned[2:]
    elif re.fullmatch(r"05\d{8}", cleaned):
        # Saudi local format 05XXXXXXXX
        cleaned = "966" + cleaned[1:]
    if not cleaned.isdigit():
        return None
    return cleaned


def validate_phone(raw: str, allowed: Optional[Iterable[str]] = None) -> Tuple[bool, Optional[str], Optional[str]]:
    """Validate a phone number.

    Returns ``(is_valid, normalized_phone, country_iso)``. The normalized form
    is ``+<country code><national number>``.
    """
    digits = _candidate_digits(raw)
    if digits is None:
        return False, None, None

    enabled = list(allowed) if allowed is not None else settings.ALLOWED_PHONE_COUNTRIES
    for iso in enabled:
        rule = ALLOWED_COUNTRIES.get(iso)
        if rule is None:
            continue
        if not digits.startswith(rule.country_code):
            continue
        national = digits[len(rule.country_code):]
        if re.fullmatch(rule.national_pattern, national):
            return True, f"+{rule.country_code}{national}", iso
    return False, None, None


def allowed_examples() -> str:
    return ", ".join(
        ALLOWED_COUNTRIES[iso].example for iso in settings.ALLOWED_PHONE_COUNTRIES if iso in ALLOWED_COUNTRIES
    )
