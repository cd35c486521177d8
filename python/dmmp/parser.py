"""Parsing of multipathd raw listings.

A ``show ... raw format`` reply is a sequence of newline separated lines,
each holding ``|`` separated fields. Empty lines are skipped; empty fields
are kept so that positional indexing stays stable (a faulty path prints an
empty wwid).

Splitting works on an immutable ``str``, so callers keep their reply intact.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import BugError

if TYPE_CHECKING:
    from .context import Context


RAW_DELIM = "|"
UINT32_MAX = 0xFFFFFFFF


def split_string(ctx: Context, text: str, delim: str, skip_empty: bool) -> list[str]:
    """Split ``text`` on ``delim``, optionally dropping empty items."""
    items: list[str] = []
    for item in text.split(delim):
        if skip_empty and not item:
            continue
        ctx.debug("Got item: '%s'", item)
        items.append(item)
    return items


def parse_listing(ctx: Context, reply: str) -> list[list[str]]:
    """Turn a raw reply into one field vector per non-empty line."""
    return [
        split_string(ctx, line, RAW_DELIM, skip_empty=False)
        for line in split_string(ctx, reply, "\n", skip_empty=True)
    ]


def field_at(ctx: Context, fields: list[str], index: int, name: str,
             allow_empty: bool = False) -> str:
    """Positional field ``index``; missing or (unless allowed) empty is a BUG."""
    if index >= len(fields):
        ctx.error("BUG: Got NULL %s", name)
        raise BugError(f"Got NULL {name}")
    value = fields[index]
    if not value and not allow_empty:
        ctx.error("BUG: Got empty %s", name)
        raise BugError(f"Got empty {name}")
    return value


def str_to_uint32(ctx: Context, text: str) -> int:
    """Parse a base-10 unsigned 32-bit integer.

    Negative, non-numeric and overflowing input is a BUG.
    """
    if not text.isascii() or not text.isdigit() or int(text) > UINT32_MAX:
        ctx.error("BUG: Got invalid string for uint32_t: '%s'", text)
        raise BugError(f"Got invalid string for uint32_t: '{text}'")
    return int(text)
