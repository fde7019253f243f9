"""Ethiopian phone number helpers"""
import re

ETHIOPIAN_PHONE_RE = re.compile(r"^\+251\d{9}$")


def normalize_phone_number(phone: str) -> str:
    """
    Normalize to +251XXXXXXXXX.

    0912345678, 912345678, 251912345678 and +251 91 234 5678 all map to
    +251912345678.
    """
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("251"):
        return f"+{digits}"
    if digits.startswith("0"):
        digits = digits[1:]
    return f"+251{digits}"


def is_valid_ethiopian_phone(phone: str) -> bool:
    if not phone:
        return False
    return bool(ETHIOPIAN_PHONE_RE.match(normalize_phone_number(phone)))


def phone_search_variants(term: str) -> list:
    """
    Forms a phone-like search term may be stored in, so "0911" also
    matches "+251911..."
    """
    digits = re.sub(r"\D", "", term or "")
    if not digits:
        return []
    variants = {digits}
    if digits.startswith("0") and len(digits) > 1:
        variants.add("251" + digits[1:])
    return sorted(variants)
