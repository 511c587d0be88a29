"""Texture table packing.

Each table entry is 72 bytes: name[64] (NUL padded), size (u32), offset
(u32). Offsets are file-relative; blobs follow the table in table order.
"""

from __future__ import annotations

import struct
from typing import Callable, List, Sequence

from .constants import TEXTURE_ENTRY_SIZE, TEXTURE_NAME_SIZE
from .errors import E_INVALID_TEXTURE_TABLE, format_error
from .layout import pack_name_string, unpack_name_string
from .models import TextureEntry, TextureTable

__all__ = [
    "pack_texture_entry",
    "pack_texture_table",
    "unpack_texture_entries",
    "unpack_texture_table",
    "ENTRY_STRUCT",
]

ENTRY_STRUCT = struct.Struct(f"<{TEXTURE_NAME_SIZE}sII")
assert ENTRY_STRUCT.size == TEXTURE_ENTRY_SIZE


def pack_texture_entry(entry: TextureEntry) -> bytes:
    return ENTRY_STRUCT.pack(
        pack_name_string(entry.name, TEXTURE_NAME_SIZE),
        int(entry.size),
        int(entry.offset),
    )


def pack_texture_table(
    entries: Sequence[TextureEntry], blobs: Sequence[bytes]
) -> bytes:
    """Emit the entries followed by the concatenated blobs.

    Entries must already carry the offsets the blobs land at, contiguous
    from ``entries[0].offset``.
    """
    if len(entries) != len(blobs):
        raise format_error(
            E_INVALID_TEXTURE_TABLE,
            "Texture entry/blob count mismatch",
            entries=len(entries),
            blobs=len(blobs),
        )
    if not entries:
        return b""
    table = b"".join(pack_texture_entry(e) for e in entries)
    cursor = entries[0].offset
    for i, (entry, blob) in enumerate(zip(entries, blobs)):
        if entry.size != len(blob):
            raise format_error(
                E_INVALID_TEXTURE_TABLE,
                "Texture entry size does not match blob",
                index=i,
                declared=entry.size,
                actual=len(blob),
            )
        if entry.offset != cursor:
            raise format_error(
                E_INVALID_TEXTURE_TABLE,
                "Texture blobs must be contiguous in table order",
                index=i,
                offset=entry.offset,
                expected=cursor,
            )
        cursor += entry.size
    return table + b"".join(bytes(b) for b in blobs)


def unpack_texture_entries(
    data: bytes, count: int, file_length: int
) -> List[TextureEntry]:
    required = count * TEXTURE_ENTRY_SIZE
    if len(data) < required:
        raise format_error(
            E_INVALID_TEXTURE_TABLE,
            "Texture table shorter than declared count",
            count=count,
            available=len(data),
            required=required,
        )
    entries: List[TextureEntry] = []
    for i in range(count):
        name_raw, size, offset = ENTRY_STRUCT.unpack_from(
            data, i * TEXTURE_ENTRY_SIZE
        )
        entry = TextureEntry(unpack_name_string(name_raw), size, offset)
        if entry.end > file_length:
            raise format_error(
                E_INVALID_TEXTURE_TABLE,
                "Texture blob exceeds file length",
                index=i,
                name=entry.name,
                offset=entry.offset,
                size=entry.size,
                file_length=file_length,
            )
        entries.append(entry)
    return entries


def unpack_texture_table(
    data: bytes,
    count: int,
    file_length: int,
    reader: Callable[[int, int], bytes],
) -> TextureTable:
    """Decode ``count`` entries and bind them to ``reader`` for lazy reads."""
    return TextureTable(unpack_texture_entries(data, count, file_length), reader)
