"""Data normalization utilities for imported and hand-entered records."""

import re

US_STATES = {
    "alabama": "AL",
    "alaska": "AK",
    "arizona": "AZ",
    "arkansas": "AR",
    "california": "CA",
    "colorado": "CO",
    "connecticut": "CT",
    "delaware": "DE",
    "florida": "FL",
    "georgia": "GA",
    "hawaii": "HI",
    "idaho": "ID",
    "illinois": "IL",
    "indiana": "IN",
    "iowa": "IA",
    "kansas": "KS",
    "kentucky": "KY",
    "louisiana": "LA",
    "maine": "ME",
    "maryland": "MD",
    "massachusetts": "MA",
    "michigan": "MI",
    "minnesota": "MN",
    "mississippi": "MS",
    "missouri": "MO",
    "montana": "MT",
    "nebraska": "NE",
    "nevada": "NV",
    "new hampshire": "NH",
    "new jersey": "NJ",
    "new mexico": "NM",
    "new york": "NY",
    "north carolina": "NC",
    "north dakota": "ND",
    "ohio": "OH",
    "oklahoma": "OK",
    "oregon": "OR",
    "pennsylvania": "PA",
    "rhode island": "RI",
    "south carolina": "SC",
    "south dakota": "SD",
    "tennessee": "TN",
    "texas": "TX",
    "utah": "UT",
    "vermont": "VT",
    "virginia": "VA",
    "washington": "WA",
    "west virginia": "WV",
    "wisconsin": "WI",
    "wyoming": "WY",
    "district of columbia": "DC",
    "washington dc": "DC",
    "puerto rico": "PR",
}

VALID_STATE_CODES = frozenset(US_STATES.values())

_WHITESPACE = re.compile(r"\s+")


def clean_text(value: object) -> str | None:
    """Collapse whitespace; return None for empty/missing values."""
    if value is None:
        return None
    text = _WHITESPACE.sub(" ", str(value)).strip()
    return text or None


def normalize_state(value: str | None) -> str | None:
    """
    Normalize a state to its 2-letter code.

    Unrecognized values are kept as entered (trimmed) rather than
    rejected; imports are permissive.
    """
    text = clean_text(value)
    if text is None:
        return None
    upper = text.upper()
    if upper in VALID_STATE_CODES:
        return upper
    return US_STATES.get(text.lower().replace(".", ""), text)


def normalize_email(value: str | None) -> str | None:
    text = clean_text(value)
    return text.lower() if text else None


def normalize_zip(value: object) -> str:
    """Zip codes keep leading zeros; spreadsheets sometimes emit floats."""
    text = clean_text(value)
    if text is None:
        return ""
    if re.fullmatch(r"\d+\.0", text):
        text = text[:-2]
    return text


def parse_int(value: object) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def parse_float(value: object) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user search text matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
