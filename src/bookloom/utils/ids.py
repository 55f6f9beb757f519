"""ID utilities."""

from __future__ import annotations

import uuid


def new_document_id() -> str:
    """Return a fresh document id (UUID4, hex form with dashes)."""

    return str(uuid.uuid4())


def format_section_key(document_id: str, index: int) -> str:
    """Format the persistence key of a section.

    Uses zero-padded indices (e.g. ``<doc>:s003``) so keys sort in outline order.
    """

    return f"{document_id}:s{index:03d}"
