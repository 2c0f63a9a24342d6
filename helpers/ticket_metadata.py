"""
Ticket metadata codec.

A ticket's lifecycle fields are a flat key/value map. Its text form, used in
channel topics, is ``key=value`` pairs joined by ``"; "``::

    ticket_owner=123; ticket_type=pre_sale; ticket_status=open; ticket_created_at=1700000000000

Updates are merges: keys that this module does not know about survive every
rewrite unchanged.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from utils.types import Ticket, TicketStatus

KEY_OWNER = "ticket_owner"
KEY_TYPE = "ticket_type"
KEY_STATUS = "ticket_status"
KEY_CREATED_AT = "ticket_created_at"
KEY_CLOSE_AT = "ticket_close_at"
KEY_CLOSED_AT = "ticket_closed_at"
KEY_DELETE_AT = "ticket_delete_at"
KEY_LAST_ACTIVITY_AT = "ticket_last_activity_at"

PAIR_SEPARATOR = "; "

Metadata = dict[str, str]


def decode(text: str | None) -> Metadata:
    """Parse a metadata string into an ordered dict. Malformed pairs are skipped."""
    result: Metadata = {}
    for chunk in (text or "").split(";"):
        pair = chunk.strip()
        if not pair or "=" not in pair:
            continue
        key, value = pair.split("=", 1)
        key = key.strip()
        if key:
            result[key] = value.strip()
    return result


def encode(metadata: Mapping[str, object]) -> str:
    return PAIR_SEPARATOR.join(f"{k}={v}" for k, v in metadata.items())


def merge(metadata: Mapping[str, str] | str | None, updates: Mapping[str, object]) -> Metadata:
    """Return a copy of ``metadata`` with ``updates`` applied; existing keys keep their position."""
    merged = decode(metadata) if isinstance(metadata, str) or metadata is None else dict(metadata)
    for key, value in updates.items():
        merged[key] = _format_value(value)
    return merged


def upsert(text: str | None, updates: Mapping[str, object]) -> str:
    """Merge ``updates`` into a metadata string and re-encode it."""
    return encode(merge(text, updates))


def _format_value(value: object) -> str:
    if isinstance(value, TicketStatus):
        return value.value
    return str(value)


def find_int(metadata: Mapping[str, str] | str | None, key: str) -> int | None:
    """
    Look up a numeric field.

    Works on both the decoded map and the raw string; the string form uses a
    per-key capture so ``ticket_close_at`` never matches ``ticket_closed_at``.
    """
    if metadata is None:
        return None
    if isinstance(metadata, str):
        match = re.search(rf"(?:^|;)\s*{re.escape(key)}=([0-9]+)", metadata)
        return int(match.group(1)) if match else None
    raw = metadata.get(key)
    if raw is None or not re.fullmatch(r"[0-9]+", raw):
        return None
    return int(raw)


def is_ticket(metadata: Mapping[str, str] | None) -> bool:
    return bool(metadata) and bool(metadata.get(KEY_OWNER))


def status_of(metadata: Mapping[str, str] | None) -> TicketStatus | None:
    if not metadata:
        return None
    try:
        return TicketStatus(metadata.get(KEY_STATUS, ""))
    except ValueError:
        return None


def owner_of(metadata: Mapping[str, str] | None) -> int | None:
    return find_int(metadata, KEY_OWNER) if metadata else None


def to_ticket(channel_id: int, metadata: Mapping[str, str] | None) -> Ticket | None:
    """Build a Ticket view, or None when the map lacks an owner or a known status."""
    owner_id = owner_of(metadata)
    status = status_of(metadata)
    if owner_id is None or status is None:
        return None
    return Ticket(
        channel_id=channel_id,
        owner_id=owner_id,
        status=status,
        category=metadata.get(KEY_TYPE),
        created_at=find_int(metadata, KEY_CREATED_AT),
        close_at=find_int(metadata, KEY_CLOSE_AT),
        closed_at=find_int(metadata, KEY_CLOSED_AT),
        delete_at=find_int(metadata, KEY_DELETE_AT),
        last_activity_at=find_int(metadata, KEY_LAST_ACTIVITY_AT),
    )


def initial_metadata(
    owner_id: int, category: str, created_at: int, close_at: int
) -> Metadata:
    return {
        KEY_OWNER: str(owner_id),
        KEY_TYPE: category,
        KEY_STATUS: TicketStatus.OPEN.value,
        KEY_CREATED_AT: str(created_at),
        KEY_CLOSE_AT: str(close_at),
    }
