import re
from datetime import datetime
from typing import Iterable, Optional, Tuple

from einbot.core import mappings as m

DEFAULT_PHONE = "2812173123"
DEFAULT_BUSINESS_DESCRIPTION = "Any and lawful business"

# Accepted formation-date layouts, tried in order
DATE_LAYOUTS = ("%Y-%m-%dT%H:%M:%S", "%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d")

_WS = re.compile(r"\s+")
_NAME_JUNK = re.compile(r"[^\w\s\-&]")


def normalize_state(state: Optional[str]) -> str:
    """Full state name or code -> two-letter code. Unknown values pass through upper-cased."""
    clean = (state or "").strip().upper()
    if not clean:
        raise ValueError("State cannot be empty")
    if clean in m.STATE_CODES:
        return m.STATE_CODES[clean]
    return clean


def map_category(entity_type: Optional[str]) -> Tuple[str, str]:
    """Entity type -> (category label, radio id). Unknown types map to ("", "")."""
    category = m.ENTITY_CATEGORY.get((entity_type or "").strip(), "")
    return category, m.CATEGORY_RADIO.get(category, "")


def resolve_sub_type(entity_type: Optional[str], business_description: Optional[str]) -> Tuple[str, str]:
    et = (entity_type or "").strip()
    if et == "Non-Profit Corporation":
        desc = (business_description or "").lower()
        if any(k in desc for k in m.NONPROFIT_KEYWORDS):
            label = m.NONPROFIT_SUB_TYPE
        else:
            label = m.OTHER_SUB_TYPE
    else:
        label = m.SUB_TYPE.get(et, m.OTHER_SUB_TYPE)
    radio = m.SUB_TYPE_RADIO.get(label)
    if not radio:
        # "N/A" rows and unknown labels land on the catch-all option
        label = m.OTHER_SUB_TYPE
        radio = m.SUB_TYPE_RADIO[m.OTHER_SUB_TYPE]
    return label, radio


def strip_suffixes(name: Optional[str], suffixes: Iterable[str]) -> str:
    """
    Remove trailing legal suffixes until none is left, then drop punctuation.
    Repeated application returns the same value.
    """
    suffixes = tuple(suffixes)
    current = (name or "").strip()
    while True:
        before = current
        for suffix in suffixes:
            pattern = rf"\b{re.escape(suffix)}\s*$"
            if re.search(pattern, current, flags=re.IGNORECASE):
                current = re.sub(pattern, "", current, count=1, flags=re.IGNORECASE)
                break
        current = _NAME_JUNK.sub("", current).strip()
        if current == before:
            return current


def normalize_business_name(name: Optional[str], suffix_group: str) -> str:
    return strip_suffixes(name, m.LEGAL_SUFFIXES.get(suffix_group, ()))


def normalize_trade_name(name: Optional[str], suffix_group: Optional[str]) -> str:
    return strip_suffixes(name, m.TRADE_NAME_SUFFIXES.get(suffix_group, ()))


def normalize_trust_name(name: Optional[str]) -> str:
    # Long-form endings carry dots ("L.L.C."), so punctuation is dropped after matching
    cleaned = (name or "").strip()
    alternation = "|".join(re.escape(s) for s in m.TRUST_NAME_SUFFIXES)
    cleaned = re.sub(rf"\b(?:{alternation})\.?$", "", cleaned, flags=re.IGNORECASE).strip()
    return _NAME_JUNK.sub("", cleaned).strip()


def parse_formation_date(value: Optional[str]) -> Tuple[Optional[str], int]:
    """Returns (month number as str, year); (None, 0) when no layout matches."""
    s = (value or "").strip()
    if not s:
        return None, 0
    for layout in DATE_LAYOUTS:
        try:
            parsed = datetime.strptime(s, layout)
        except ValueError:
            continue
        return str(parsed.month), parsed.year
    return None, 0


def normalize_closing_month(raw: Optional[str]) -> Optional[str]:
    key = (raw or "").strip().lower()
    if key.isdigit():
        key = str(int(key))
    return m.CLOSING_MONTHS.get(key)


def parse_member_count(raw) -> int:
    """Numeric-like input -> int >= 1; anything unparseable becomes 1."""
    try:
        n = int(float(str(raw).strip()))
    except (TypeError, ValueError):
        return 1
    return max(1, n)


def digits_only(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def phone_or_default(value: Optional[str]) -> str:
    return digits_only(value) or DEFAULT_PHONE


def split_phone(phone: str) -> Optional[Tuple[str, str, str]]:
    if len(phone) != 10:
        return None
    return phone[:3], phone[3:6], phone[6:]


def split_tax_id(value: Optional[str]) -> Tuple[str, str, str]:
    raw = (value or "").replace("-", "")
    return raw[:3], raw[3:5], raw[5:]


def full_address(*parts: Optional[str]) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())


def _squash(s: str) -> str:
    return _WS.sub(" ", (s or "").strip()).lower()


def wants_mailing_address(mailing_street: Optional[str], physical_full: str) -> bool:
    """True when a distinct mailing street is present."""
    if not (mailing_street or "").strip():
        return False
    return _squash(mailing_street) != _squash(physical_full)
