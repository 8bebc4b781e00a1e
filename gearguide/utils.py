import re


def normalize_key(text: str) -> str:
    """Purpose: Produce a case- and spacing-insensitive lookup key.
    Inputs/Outputs: Input is a raw identifier (SKU, order number, email); output is
        an uppercase string with whitespace and a leading "#" removed.
    Side Effects / State: None; pure function.
    Dependencies: Used by the catalog lookups on both the index and the query side.
    Failure Modes: Returns an empty string for falsy input.
    If Removed: "#ab123" and "AB123" would stop matching the same order.
    Testing Notes: Ensure "#ab 123" and "AB123" produce the same key.
    """
    # Collapse whitespace, drop the order-number marker, and fold case.
    if not text:
        return ""
    cleaned = re.sub(r"\s+", "", text).lstrip("#")
    return cleaned.upper()


def normalize_email(email: str) -> str:
    """Lowercase and trim an email address for comparisons."""
    return (email or "").strip().lower()


def mask_email(value: object) -> str:
    """Purpose: Mask an email address for safe logging.
    Inputs/Outputs: Input is any value; output keeps the first character of the
        local part and the full domain.
    Side Effects / State: None.
    Dependencies: None.
    Failure Modes: Values without "@" yield a generic mask.
    If Removed: Logs may expose customer email addresses.
    Testing Notes: "jane@example.com" becomes "j***@example.com".
    """
    # Keep just enough of the address to correlate log lines.
    if value is None:
        return ""
    text = str(value)
    local, sep, domain = text.partition("@")
    if not sep or not local:
        return "***"
    return f"{local[0]}***@{domain}"
