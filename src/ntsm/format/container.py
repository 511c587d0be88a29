"""Container façade: encode/decode whole NTSM files.

Encode order: validate inputs -> plan layout -> pack header -> GLB ->
particle records -> texture table -> texture blobs.

Decode order: header -> header validation -> GLB -> particles (flag bit 0
only) -> texture table (count > 0 only). Decoding works from bytes, from a
seekable stream, or from a sequential stream; texture blobs are read on
demand through :class:`~ntsm.format.models.TextureTable`.

Both directions are stateless and may run concurrently on independent
inputs.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Sequence, Union

from ..logging import get_logger
from .constants import HEADER_SIZE, TEXTURE_ENTRY_SIZE
from .errors import (
    E_INVALID_TEXTURE_TABLE,
    E_MALFORMED_HEADER,
    E_SECTION_OVERLAP,
    E_TRUNCATED_SECTION,
    TruncatedSectionError,
    format_error,
)
from .header import pack_header, unpack_header
from .layout import LayoutPlan, plan_layout
from .models import (
    Container,
    Header,
    HeaderFields,
    ParticleEmitter,
    Texture,
    TextureEntry,
    TextureTable,
)
from .particles import pack_emitters, unpack_emitters
from .textures import pack_texture_table, unpack_texture_table
from .validator import (
    validate_emitters,
    validate_for_encode,
    validate_glb,
    validate_header,
    validate_texture_entries,
)

__all__ = [
    "plan_container",
    "encode",
    "decode",
    "read_container",
    "write_container",
    "load",
    "save",
    "open_container",
]

BytesLike = Union[bytes, bytearray, memoryview]


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def plan_container(
    fields: HeaderFields,
    glb: BytesLike,
    emitters: Sequence[ParticleEmitter] = (),
    textures: Sequence[Texture] = (),
    *,
    check_glb_magic: bool = True,
) -> tuple[Header, LayoutPlan]:
    """Validate inputs and compute the header + layout without packing."""
    validate_for_encode(
        fields, glb, emitters, textures, check_glb_magic=check_glb_magic
    )
    plan = plan_layout(
        len(glb),
        len(emitters),
        [len(t.data) for t in textures],
        [t.name for t in textures],
    )
    header = Header(
        name=fields.name,
        flags=fields.flags,
        glb_offset=plan.glb.offset,
        glb_size=plan.glb.size,
        particle_offset=plan.particles.offset,
        particle_size=plan.particles.size,
        texture_count=plan.texture_count,
        texture_offset=plan.texture_table.offset,
        version=fields.version,
    )
    validate_header(header, file_length=plan.file_size, strict=True)
    return header, plan


def encode(
    fields: HeaderFields,
    glb: BytesLike,
    emitters: Sequence[ParticleEmitter] = (),
    textures: Sequence[Texture] = (),
    *,
    check_glb_magic: bool = True,
) -> bytes:
    """Return the complete NTSM byte image.

    Raises a ``FormatError`` before producing any output when the inputs are
    inconsistent (for example the particle flag without emitters).
    """
    logger = get_logger()
    header, plan = plan_container(
        fields, glb, emitters, textures, check_glb_magic=check_glb_magic
    )
    entries = [
        TextureEntry(t.name, s.size, s.offset)
        for t, s in zip(textures, plan.texture_blobs)
    ]
    parts = [
        (HEADER_SIZE, pack_header(header)),
        (plan.glb.end, bytes(glb)),
        (plan.particles.end, pack_emitters(emitters)),
        (
            plan.file_size,
            pack_texture_table(entries, [bytes(t.data) for t in textures]),
        ),
    ]
    buf = bytearray()
    for expected_end, chunk in parts:
        buf.extend(chunk)
        if len(buf) != expected_end:
            raise RuntimeError(
                f"Encoder position {len(buf)} diverged from plan {expected_end}"
            )
    logger.debug(
        "encoded %s: glb=%d emitters=%d textures=%d bytes=%d",
        header.name,
        header.glb_size,
        len(emitters),
        len(entries),
        len(buf),
    )
    return bytes(buf)


def write_container(
    stream: BinaryIO,
    fields: HeaderFields,
    glb: BytesLike,
    emitters: Sequence[ParticleEmitter] = (),
    textures: Sequence[Texture] = (),
    *,
    check_glb_magic: bool = True,
) -> int:
    """Encode fully in memory, then write; nothing is written on failure."""
    data = encode(
        fields, glb, emitters, textures, check_glb_magic=check_glb_magic
    )
    stream.write(data)
    return len(data)


def save(
    path: Union[str, Path],
    fields: HeaderFields,
    glb: BytesLike,
    emitters: Sequence[ParticleEmitter] = (),
    textures: Sequence[Texture] = (),
    *,
    check_glb_magic: bool = True,
) -> int:
    data = encode(
        fields, glb, emitters, textures, check_glb_magic=check_glb_magic
    )
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(data)
    return len(data)


# ---------------------------------------------------------------------------
# Decode sources
# ---------------------------------------------------------------------------


class _BufferSource:
    """Random access over an owned byte string."""

    def __init__(self, data: bytes, base: int = 0) -> None:
        self._data = data
        self._base = base
        self.length: Optional[int] = base + len(data)

    def read_at(self, offset: int, size: int, label: str) -> bytes:
        start = offset - self._base
        if start < 0:
            raise format_error(
                E_SECTION_OVERLAP,
                f"Section {label} starts before buffered data",
                section=label,
                offset=offset,
            )
        end = start + size
        if end > len(self._data):
            raise format_error(
                E_TRUNCATED_SECTION,
                f"Out of range read for {label}: {offset}+{size}>{self.length}",
                section=label,
                offset=offset,
                size=size,
            )
        return self._data[start:end]


class _SeekableSource:
    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._start = stream.tell()
        self.length: Optional[int] = stream.seek(0, os.SEEK_END) - self._start
        stream.seek(self._start)

    def read_at(self, offset: int, size: int, label: str) -> bytes:
        self._stream.seek(self._start + offset)
        data = self._stream.read(size)
        if len(data) != size:
            raise format_error(
                E_TRUNCATED_SECTION,
                f"Short read for {label}: got {len(data)} of {size}",
                section=label,
                offset=offset,
                size=size,
            )
        return data


class _SequentialSource:
    """Forward-only reads; offsets must never move backwards."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._pos = 0
        self.length: Optional[int] = None

    def _read(self, size: int) -> bytes:
        chunks = []
        remaining = size
        while remaining:
            chunk = self._stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        data = b"".join(chunks)
        self._pos += len(data)
        return data

    def read_at(self, offset: int, size: int, label: str) -> bytes:
        if offset < self._pos:
            raise format_error(
                E_SECTION_OVERLAP,
                f"Section {label} at {offset} precedes stream position {self._pos}",
                section=label,
                offset=offset,
                position=self._pos,
            )
        skip = offset - self._pos
        if skip and len(self._read(skip)) != skip:
            raise format_error(
                E_TRUNCATED_SECTION,
                f"Stream ended before section {label}",
                section=label,
                offset=offset,
            )
        data = self._read(size)
        if len(data) != size:
            raise format_error(
                E_TRUNCATED_SECTION,
                f"Short read for {label}: got {len(data)} of {size}",
                section=label,
                offset=offset,
                size=size,
            )
        return data

    def buffer_rest(self) -> _BufferSource:
        base = self._pos
        rest = self._stream.read()
        self._pos += len(rest)
        return _BufferSource(rest, base)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def _decode_from(source, *, check_glb_magic: bool) -> Container:
    logger = get_logger()
    try:
        raw_header = source.read_at(0, HEADER_SIZE, "header")
    except TruncatedSectionError as e:
        raise format_error(
            E_MALFORMED_HEADER, "Short read for header", required=HEADER_SIZE
        ) from e
    header = unpack_header(raw_header)
    validate_header(header, file_length=source.length)

    glb = source.read_at(header.glb_offset, header.glb_size, "glb")
    validate_glb(glb, check_magic=check_glb_magic)

    emitters: list[ParticleEmitter] = []
    if header.has_particles:
        raw = source.read_at(
            header.particle_offset, header.particle_size, "particles"
        )
        emitters = unpack_emitters(raw, header.particle_count)
        validate_emitters(header, emitters)

    textures = TextureTable()
    if header.texture_count:
        if isinstance(source, _SequentialSource):
            source = source.buffer_rest()
            validate_header(header, file_length=source.length)
        file_length = source.length
        if file_length is None:  # pragma: no cover
            raise format_error(
                E_INVALID_TEXTURE_TABLE,
                "Texture table needs a known file length",
                texture_count=header.texture_count,
            )
        table_raw = source.read_at(
            header.texture_offset,
            header.texture_count * TEXTURE_ENTRY_SIZE,
            "texture_table",
        )
        textures = unpack_texture_table(
            table_raw,
            header.texture_count,
            file_length,
            _texture_reader(source),
        )
        validate_texture_entries(header, textures.entries, file_length)

    logger.debug(
        "decoded %s: glb=%d emitters=%d textures=%d",
        header.name,
        len(glb),
        len(emitters),
        len(textures),
    )
    return Container(
        header=header, glb=glb, emitters=emitters, textures=textures
    )


def _texture_reader(source):
    def read(offset: int, size: int) -> bytes:
        try:
            return source.read_at(offset, size, "texture")
        except ValueError as e:  # closed caller stream
            raise format_error(
                E_INVALID_TEXTURE_TABLE,
                f"Texture data no longer readable: {e}",
                offset=offset,
                size=size,
            ) from e

    return read


def decode(data: BytesLike, *, check_glb_magic: bool = True) -> Container:
    """Decode an in-memory image. The result owns a copy of ``data``."""
    return _decode_from(
        _BufferSource(bytes(data)), check_glb_magic=check_glb_magic
    )


def read_container(
    stream: BinaryIO, *, check_glb_magic: bool = True
) -> Container:
    """Decode from ``stream`` starting at its current position.

    Seekable streams are read section by section and texture blobs are read
    from the stream on demand (keep it open while using the textures).
    Non-seekable streams are consumed forward; when textures are present the
    remainder of the stream is buffered.
    """
    seekable = getattr(stream, "seekable", lambda: False)()
    source = (
        _SeekableSource(stream) if seekable else _SequentialSource(stream)
    )
    return _decode_from(source, check_glb_magic=check_glb_magic)


def load(
    path: Union[str, Path], *, check_glb_magic: bool = True
) -> Container:
    return decode(Path(path).read_bytes(), check_glb_magic=check_glb_magic)


@contextmanager
def open_container(
    path: Union[str, Path], *, check_glb_magic: bool = True
) -> Iterator[Container]:
    """Decode ``path`` keeping the file open for lazy texture reads."""
    with open(path, "rb") as f:
        yield read_container(f, check_glb_magic=check_glb_magic)

