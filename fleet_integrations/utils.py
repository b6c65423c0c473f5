"""Utility helpers for the integrations app."""

import re

_WHITESPACE_RE = re.compile(r"\s+")


def to_external_id(prefix, native_id):
    """Build the composite external id stored on webhook-sourced orders.

    Webhook orders from different platforms share one ``external_id``
    column, so the platform prefix keeps a WooCommerce order 501 apart
    from a Shopify order 501.

    Examples::

        >>> to_external_id("woo", 501)
        'woo_501'
        >>> to_external_id("shopify", "820982911946154508")
        'shopify_820982911946154508'
    """
    return f"{prefix}_{native_id}"


def normalize_external_id(value):
    """Return ``value`` as a stripped string, or ``None`` when empty."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def normalize_phone(phone):
    """Strip all whitespace from a phone number."""
    if not phone:
        return phone
    return _WHITESPACE_RE.sub("", str(phone)).strip()


def first_non_empty(*candidates):
    """Return the first candidate that is not ``None`` or blank."""
    for candidate in candidates:
        if candidate is None:
            continue
        if isinstance(candidate, (dict, list)) and not candidate:
            continue
        if isinstance(candidate, str):
            candidate = candidate.strip()
            if not candidate:
                continue
        return candidate
    return None


def join_non_empty(parts, separator=", "):
    """Join the non-blank parts with ``separator``."""
    cleaned = []
    for part in parts:
        if part is None:
            continue
        part = str(part).strip()
        if part:
            cleaned.append(part)
    return separator.join(cleaned)


def full_name(first, last):
    """Assemble ``"first last"`` from optional parts, or ``""``."""
    return join_non_empty([first, last], separator=" ")


def drop_none(fields):
    """Return a copy of ``fields`` without ``None`` values."""
    return {key: value for key, value in fields.items() if value is not None}


def key_prefix(api_key):
    """Return a log-safe prefix of an api key."""
    if not api_key:
        return ""
    return f"{api_key[:6]}..."
