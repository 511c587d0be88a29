"""Binary layout constants for the NTSM container format."""

from __future__ import annotations

from enum import IntEnum, IntFlag

MAGIC = b"NTSM"
VERSION = 1
FILE_EXTENSION = ".ntsm"

HEADER_SIZE = 192
HEADER_NAME_SIZE = 128
HEADER_RESERVED_SIZE = 3
# Bytes 164..191 carry no fields.
HEADER_TAIL_SIZE = 28

PARTICLE_RECORD_SIZE = 128
PARTICLE_FIELDS_SIZE = 112

TEXTURE_ENTRY_SIZE = 72
TEXTURE_NAME_SIZE = 64

GLB_MAGIC = b"glTF"
GLB_MIN_SIZE = 12

U32_MAX = 0xFFFFFFFF
I32_MIN = -(2**31)
I32_MAX = 2**31 - 1
F32_MAX = 3.4028234663852886e38

# texture_index value selecting the built-in spark texture
DEFAULT_TEXTURE_INDEX = -1


class HeaderFlags(IntFlag):
    NONE = 0
    HAS_PARTICLES = 0x01
    WORLD_SPACE = 0x02
    ANIMATE_UV = 0x04
    ENABLE_COLLISION = 0x08


KNOWN_FLAGS_MASK = 0x0F
RESERVED_FLAGS_MASK = 0xF0


class BlendMode(IntEnum):
    ADDITIVE = 0
    ALPHA = 1


__all__ = [
    "MAGIC",
    "VERSION",
    "FILE_EXTENSION",
    "HEADER_SIZE",
    "HEADER_NAME_SIZE",
    "HEADER_RESERVED_SIZE",
    "HEADER_TAIL_SIZE",
    "PARTICLE_RECORD_SIZE",
    "PARTICLE_FIELDS_SIZE",
    "TEXTURE_ENTRY_SIZE",
    "TEXTURE_NAME_SIZE",
    "GLB_MAGIC",
    "GLB_MIN_SIZE",
    "U32_MAX",
    "I32_MIN",
    "I32_MAX",
    "F32_MAX",
    "DEFAULT_TEXTURE_INDEX",
    "HeaderFlags",
    "KNOWN_FLAGS_MASK",
    "RESERVED_FLAGS_MASK",
    "BlendMode",
]
