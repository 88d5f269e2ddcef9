# core/utils.py

from typing import Optional

from fastapi import Request


# Characters that are significant in HTML / attribute context
_ESCAPES = {
    "&": "&amp;",
    '"': "&quot;",
    "'": "&#x27;",
    "<": "&lt;",
    ">": "&gt;",
    "/": "&#x2F;",
    "\\": "&#x5C;",
    "`": "&#96;",
}

GMAIL_DOMAINS = {"gmail.com", "googlemail.com"}

# Providers that treat `<local>+<tag>` (or `-` for Yahoo) as the same inbox
SUBADDRESS_SEPARATORS = {
    "outlook.com": "+",
    "hotmail.com": "+",
    "live.com": "+",
    "icloud.com": "+",
    "me.com": "+",
    "yahoo.com": "-",
    "ymail.com": "-",
    "rocketmail.com": "-",
}


def sanitize_text(value: Optional[str]) -> str:
    """
    Clean free-text form input:
    - None → ""
    - Strip surrounding whitespace
    - Escape markup-significant characters as HTML entities
    """
    if value is None:
        return ""

    stripped = value.strip()
    return "".join(_ESCAPES.get(ch, ch) for ch in stripped)


def normalize_email(email: str) -> str:
    """
    Canonical form used for storage and duplicate comparison.

    The address is lower-cased. Gmail drops dots and `+tag` from the local
    part and is always stored as gmail.com. Other known providers drop their
    sub-address tag.
    """
    email = email.strip().lower()
    local, sep, domain = email.rpartition("@")
    if not sep:
        return email

    if domain in GMAIL_DOMAINS:
        local = local.split("+", 1)[0].replace(".", "")
        domain = "gmail.com"
    elif domain in SUBADDRESS_SEPARATORS:
        local = local.split(SUBADDRESS_SEPARATORS[domain], 1)[0]

    if not local:
        return email

    return f"{local}@{domain}"


def get_client_ip(request: Request, trust_forwarded: bool = False) -> str:
    """Caller address as seen by the server, or the first forwarded hop."""
    if trust_forwarded:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # Take the first IP (original client)
            return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"
