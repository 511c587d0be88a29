"""Fixed 192-byte header packing.

Parsing here is pure: magic, version and flag policy are checked by
:mod:`ntsm.format.validator`.
"""

from __future__ import annotations

import struct

from .constants import (
    HEADER_SIZE,
    HEADER_NAME_SIZE,
    HEADER_RESERVED_SIZE,
    HEADER_TAIL_SIZE,
)
from .errors import E_MALFORMED_HEADER, format_error
from .layout import pack_name_string, unpack_name_string
from .models import Header

__all__ = ["pack_header", "unpack_header", "HEADER_STRUCT"]

# magic, version, name, flags, reserved, glb off/size, particle off/size,
# texture count, texture table offset, reserved tail
HEADER_STRUCT = struct.Struct(
    f"<4sI{HEADER_NAME_SIZE}sB{HEADER_RESERVED_SIZE}x6I{HEADER_TAIL_SIZE}x"
)
assert HEADER_STRUCT.size == HEADER_SIZE


def pack_header(header: Header) -> bytes:
    out = HEADER_STRUCT.pack(
        bytes(header.magic),
        int(header.version),
        pack_name_string(header.name, HEADER_NAME_SIZE),
        int(header.flags),
        int(header.glb_offset),
        int(header.glb_size),
        int(header.particle_offset),
        int(header.particle_size),
        int(header.texture_count),
        int(header.texture_offset),
    )
    if len(out) != HEADER_SIZE:
        raise format_error(
            E_MALFORMED_HEADER, f"Header size mismatch: {len(out)}"
        )
    return out


def unpack_header(data: bytes) -> Header:
    if len(data) < HEADER_SIZE:
        raise format_error(
            E_MALFORMED_HEADER,
            "Short read for header",
            available=len(data),
            required=HEADER_SIZE,
        )
    (
        magic,
        version,
        name_raw,
        flags,
        glb_offset,
        glb_size,
        particle_offset,
        particle_size,
        texture_count,
        texture_offset,
    ) = HEADER_STRUCT.unpack_from(data, 0)
    return Header(
        name=unpack_name_string(name_raw),
        flags=flags,
        glb_offset=glb_offset,
        glb_size=glb_size,
        particle_offset=particle_offset,
        particle_size=particle_size,
        texture_count=texture_count,
        texture_offset=texture_offset,
        version=version,
        magic=magic,
    )
