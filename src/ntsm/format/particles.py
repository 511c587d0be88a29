"""Particle emitter record packing (128 bytes per record)."""

from __future__ import annotations

import struct
from typing import Iterable, List

from .constants import PARTICLE_RECORD_SIZE
from .errors import E_TRUNCATED_SECTION, format_error
from .models import ParticleEmitter

__all__ = [
    "pack_emitter",
    "pack_emitters",
    "unpack_emitter",
    "unpack_emitters",
    "EMITTER_STRUCT",
]

# position(3f) direction(3f) spread rate lifetime start_size end_size (5f)
# start_color(4f) end_color(4f) velocity_min(3f) velocity_max(3f) gravity(f)
# texture_index(i) blend_mode(B) loop(B) reserved(2x) reserved tail (16x)
EMITTER_STRUCT = struct.Struct("<3f3f5f4f4f3f3ffiBB2x16x")
assert EMITTER_STRUCT.size == PARTICLE_RECORD_SIZE


def pack_emitter(emitter: ParticleEmitter) -> bytes:
    out = EMITTER_STRUCT.pack(
        *emitter.position,
        *emitter.direction,
        float(emitter.spread_angle),
        float(emitter.emission_rate),
        float(emitter.lifetime),
        float(emitter.start_size),
        float(emitter.end_size),
        *emitter.start_color,
        *emitter.end_color,
        *emitter.velocity_min,
        *emitter.velocity_max,
        float(emitter.gravity),
        int(emitter.texture_index),
        int(emitter.blend_mode),
        1 if emitter.loop else 0,
    )
    if len(out) != PARTICLE_RECORD_SIZE:
        raise format_error(
            E_TRUNCATED_SECTION, f"Emitter record size mismatch: {len(out)}"
        )
    return out


def pack_emitters(emitters: Iterable[ParticleEmitter]) -> bytes:
    """Concatenate records in input order."""
    return b"".join(pack_emitter(e) for e in emitters)


def unpack_emitter(data: bytes, offset: int = 0) -> ParticleEmitter:
    v = EMITTER_STRUCT.unpack_from(data, offset)
    return ParticleEmitter(
        position=v[0:3],
        direction=v[3:6],
        spread_angle=v[6],
        emission_rate=v[7],
        lifetime=v[8],
        start_size=v[9],
        end_size=v[10],
        start_color=v[11:15],
        end_color=v[15:19],
        velocity_min=v[19:22],
        velocity_max=v[22:25],
        gravity=v[25],
        texture_index=v[26],
        blend_mode=v[27],
        loop=bool(v[28]),
    )


def unpack_emitters(data: bytes, count: int) -> List[ParticleEmitter]:
    """Decode exactly ``count`` records; nothing is returned on failure."""
    if len(data) % PARTICLE_RECORD_SIZE:
        raise format_error(
            E_TRUNCATED_SECTION,
            "Particle data is not a whole number of records",
            size=len(data),
            record_size=PARTICLE_RECORD_SIZE,
        )
    required = count * PARTICLE_RECORD_SIZE
    if len(data) < required:
        raise format_error(
            E_TRUNCATED_SECTION,
            "Particle data shorter than declared",
            available=len(data),
            required=required,
        )
    return [
        unpack_emitter(data, i * PARTICLE_RECORD_SIZE) for i in range(count)
    ]
