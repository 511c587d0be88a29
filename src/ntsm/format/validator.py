"""Structural validation for NTSM containers.

Checks (raised as :class:`~ntsm.format.errors.FormatError` subclasses, first
failure wins):
 1. magic is ``NTSM``                                   E_MALFORMED_HEADER
 2. version is 1                                        E_UNSUPPORTED_VERSION
 3. particle flag agrees with particle size             E_INCONSISTENT_FLAGS
 4. GLB is at least 12 bytes and starts with ``glTF``   E_INVALID_GLB
 5. texture table offset/entries lie inside the file    E_INVALID_TEXTURE_TABLE
 6. sections are disjoint and follow the header         E_SECTION_OVERLAP /
                                                        E_TRUNCATED_SECTION
 7. reserved bits are zero (encode only)                E_INCONSISTENT_FLAGS

The same header checks run on decode (post-read acceptance) and on encode
(pre-write sanity over the planned header).
"""

from __future__ import annotations
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from .constants import (
    MAGIC,
    VERSION,
    HEADER_SIZE,
    PARTICLE_RECORD_SIZE,
    TEXTURE_ENTRY_SIZE,
    GLB_MAGIC,
    GLB_MIN_SIZE,
    RESERVED_FLAGS_MASK,
    HeaderFlags,
    BlendMode,
    I32_MIN,
    I32_MAX,
    F32_MAX,
)
from .errors import (
    E_MALFORMED_HEADER,
    E_UNSUPPORTED_VERSION,
    E_INCONSISTENT_FLAGS,
    E_INVALID_GLB,
    E_INVALID_TEXTURE_TABLE,
    E_TRUNCATED_SECTION,
    E_SECTION_OVERLAP,
    E_OFFSET_RANGE,
    format_error,
)
from .models import (
    Header,
    HeaderFields,
    ParticleEmitter,
    Texture,
    TextureEntry,
)

__all__ = [
    "Span",
    "validate_header",
    "validate_glb",
    "validate_emitters",
    "validate_texture_entries",
    "check_spans",
    "header_spans",
    "validate_for_encode",
]

# (label, offset, size)
Span = Tuple[str, int, int]


def _check_magic(header: Header) -> None:
    if bytes(header.magic) != MAGIC:
        raise format_error(
            E_MALFORMED_HEADER,
            "Header magic mismatch",
            magic=bytes(header.magic).hex(),
        )


def _check_version(version: int) -> None:
    if version != VERSION:
        raise format_error(
            E_UNSUPPORTED_VERSION,
            f"Unsupported version {version} (expected {VERSION})",
            version=version,
        )


def _check_particle_flag(header: Header, *, strict: bool) -> None:
    size = header.particle_size
    if header.has_particles:
        if size == 0:
            raise format_error(
                E_INCONSISTENT_FLAGS,
                "has_particles set but particle size is zero",
            )
        if size % PARTICLE_RECORD_SIZE:
            raise format_error(
                E_INCONSISTENT_FLAGS,
                f"Particle size {size} is not a multiple of {PARTICLE_RECORD_SIZE}",
                particle_size=size,
            )
    elif strict and size:
        raise format_error(
            E_INCONSISTENT_FLAGS,
            "has_particles clear but particle size is non-zero",
            particle_size=size,
        )


def header_spans(header: Header) -> List[Span]:
    """Spans the header declares, excluding texture blobs."""
    spans: List[Span] = [("glb", header.glb_offset, header.glb_size)]
    if header.has_particles and header.particle_size:
        spans.append(
            ("particles", header.particle_offset, header.particle_size)
        )
    if header.texture_count:
        spans.append(
            (
                "texture_table",
                header.texture_offset,
                header.texture_count * TEXTURE_ENTRY_SIZE,
            )
        )
    return spans


def check_spans(spans: Iterable[Span], file_length: Optional[int]) -> None:
    ordered = sorted((s for s in spans if s[2]), key=lambda s: s[1])
    for label, offset, size in ordered:
        if offset < HEADER_SIZE:
            raise format_error(
                E_SECTION_OVERLAP,
                f"Section {label} overlaps the header",
                section=label,
                offset=offset,
            )
        if file_length is not None and offset + size > file_length:
            raise format_error(
                E_TRUNCATED_SECTION,
                f"Section {label} exceeds file length",
                section=label,
                offset=offset,
                size=size,
                file_length=file_length,
            )
    for (a_label, a_off, a_size), (b_label, b_off, _) in zip(
        ordered, ordered[1:]
    ):
        if a_off + a_size > b_off:
            raise format_error(
                E_SECTION_OVERLAP,
                f"Sections {a_label} and {b_label} overlap",
                first=a_label,
                second=b_label,
                first_end=a_off + a_size,
                second_offset=b_off,
            )


def validate_header(
    header: Header, *, file_length: Optional[int] = None, strict: bool = False
) -> None:
    """Header-level checks.

    ``strict`` additionally rejects a non-zero particle size with the
    particle flag clear; decode leaves it off and simply reads no records.
    ``file_length`` is ``None`` when decoding from a sequential stream.
    """
    _check_magic(header)
    _check_version(header.version)
    _check_particle_flag(header, strict=strict)
    if header.glb_size < GLB_MIN_SIZE:
        raise format_error(
            E_INVALID_GLB,
            f"GLB section too small: {header.glb_size} < {GLB_MIN_SIZE}",
            glb_size=header.glb_size,
        )
    if header.texture_count:
        if header.texture_offset == 0:
            raise format_error(
                E_INVALID_TEXTURE_TABLE,
                "Texture count is non-zero but table offset is zero",
                texture_count=header.texture_count,
            )
        if file_length is not None:
            table_end = (
                header.texture_offset
                + header.texture_count * TEXTURE_ENTRY_SIZE
            )
            if header.texture_offset >= file_length or table_end > file_length:
                raise format_error(
                    E_INVALID_TEXTURE_TABLE,
                    "Texture table lies outside the file",
                    texture_offset=header.texture_offset,
                    table_end=table_end,
                    file_length=file_length,
                )
    check_spans(header_spans(header), file_length)


def validate_glb(glb: bytes, *, check_magic: bool = True) -> None:
    if len(glb) < GLB_MIN_SIZE:
        raise format_error(
            E_INVALID_GLB,
            f"GLB blob too small: {len(glb)} < {GLB_MIN_SIZE}",
            size=len(glb),
        )
    if check_magic and bytes(glb[:4]) != GLB_MAGIC:
        raise format_error(
            E_INVALID_GLB,
            "GLB blob does not start with 'glTF'",
            magic=bytes(glb[:4]).hex(),
        )


def validate_emitters(
    header: Header, emitters: Sequence[ParticleEmitter]
) -> None:
    expected = header.particle_count
    if len(emitters) != expected:
        raise format_error(
            E_TRUNCATED_SECTION,
            "Decoded emitter count differs from declared particle size",
            expected=expected,
            actual=len(emitters),
        )


def validate_texture_entries(
    header: Header, entries: Sequence[TextureEntry], file_length: int
) -> None:
    """Blobs must stay inside the file and clear of every other section.

    Blobs are not checked against each other.
    """
    others = header_spans(header)
    for i, e in enumerate(entries):
        if e.end > file_length:
            raise format_error(
                E_INVALID_TEXTURE_TABLE,
                "Texture blob exceeds file length",
                index=i,
                offset=e.offset,
                size=e.size,
                file_length=file_length,
            )
        if not e.size:
            continue
        check_spans([*others, (f"texture[{i}]", e.offset, e.size)], file_length)


def _check_u8(value: int, label: str) -> None:
    if not 0 <= value <= 0xFF:
        raise format_error(
            E_OFFSET_RANGE, f"{label} out of u8 range", value=value
        )


_EMITTER_FLOAT_FIELDS = (
    "position",
    "direction",
    "spread_angle",
    "emission_rate",
    "lifetime",
    "start_size",
    "end_size",
    "start_color",
    "end_color",
    "velocity_min",
    "velocity_max",
    "gravity",
)


def _check_f32(emitter: ParticleEmitter, index: int) -> None:
    for name in _EMITTER_FLOAT_FIELDS:
        value = getattr(emitter, name)
        values = value if isinstance(value, tuple) else (value,)
        for v in values:
            if math.isfinite(v) and abs(v) > F32_MAX:
                raise format_error(
                    E_OFFSET_RANGE,
                    f"Emitter {name} out of f32 range",
                    index=index,
                    field=name,
                    value=v,
                )


def _check_name(name: str, code: str, **ctx) -> None:
    try:
        name.encode("utf-8")
    except UnicodeEncodeError as e:
        raise format_error(
            code, f"Name is not encodable as UTF-8: {name!r}", **ctx
        ) from e


def validate_for_encode(
    fields: HeaderFields,
    glb: bytes,
    emitters: Sequence[ParticleEmitter],
    textures: Sequence[Texture],
    *,
    check_glb_magic: bool = True,
) -> None:
    """Reject inconsistent inputs before anything is planned or written."""
    _check_version(fields.version)
    _check_u8(fields.flags, "flags")
    _check_name(fields.name, E_MALFORMED_HEADER, field="name")
    if fields.flags & RESERVED_FLAGS_MASK:
        raise format_error(
            E_INCONSISTENT_FLAGS,
            "Reserved flag bits 4-7 must be zero",
            flags=fields.flags,
        )
    has_particles = bool(fields.flags & HeaderFlags.HAS_PARTICLES)
    if has_particles and not emitters:
        raise format_error(
            E_INCONSISTENT_FLAGS,
            "has_particles set but no emitters supplied",
        )
    if emitters and not has_particles:
        raise format_error(
            E_INCONSISTENT_FLAGS,
            "Emitters supplied but has_particles flag is clear",
            emitters=len(emitters),
        )
    validate_glb(glb, check_magic=check_glb_magic)
    for i, e in enumerate(emitters):
        if not I32_MIN <= int(e.texture_index) <= I32_MAX:
            raise format_error(
                E_OFFSET_RANGE,
                "Emitter texture_index out of i32 range",
                index=i,
                texture_index=e.texture_index,
            )
        if int(e.blend_mode) not in (BlendMode.ADDITIVE, BlendMode.ALPHA):
            raise format_error(
                E_OFFSET_RANGE,
                "Emitter blend_mode must be 0 (additive) or 1 (alpha)",
                index=i,
                blend_mode=e.blend_mode,
            )
        _check_f32(e, i)
    for i, t in enumerate(textures):
        if not isinstance(t.name, str):
            raise format_error(
                E_INVALID_TEXTURE_TABLE,
                "Texture name must be a string",
                index=i,
            )
        _check_name(t.name, E_INVALID_TEXTURE_TABLE, index=i)
        if not isinstance(t.data, (bytes, bytearray, memoryview)):
            raise format_error(
                E_INVALID_TEXTURE_TABLE,
                "Texture data must be bytes",
                index=i,
                name=t.name,
            )
