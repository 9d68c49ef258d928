"""
Template personalization for scheduled content.

Tokens are double-brace and case-insensitive (``{{First_Name}}`` and
``{{ first_name }}`` are the same token). Tokens with no value for the
contact render as the empty string.
"""

from __future__ import annotations

import re
from typing import Any

from .types import Contact

TOKEN_PATTERN = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")


def contact_tokens(contact: Contact) -> dict[str, str]:
    """Build the lower-cased token table for a contact."""
    tokens: dict[str, str] = {}
    for key, value in contact.extra.items():
        if value is not None:
            tokens[str(key).lower()] = str(value)
    tokens.update(
        {
            "first_name": contact.first_name or "",
            "last_name": contact.last_name or "",
            "email": contact.email or "",
            "company": contact.company or "",
            "title": contact.title or "",
            "name": contact.full_name,
        }
    )
    return tokens


def personalize(template: str | None, contact: Contact, tokens: dict[str, Any] | None = None) -> str:
    """Substitute every ``{{token}}`` in ``template`` for ``contact``."""
    if not template:
        return ""
    table = tokens if tokens is not None else contact_tokens(contact)

    def _sub(match: re.Match[str]) -> str:
        return str(table.get(match.group(1).lower(), ""))

    return TOKEN_PATTERN.sub(_sub, template)


__all__ = ["TOKEN_PATTERN", "contact_tokens", "personalize"]
