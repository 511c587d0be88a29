from __future__ import annotations

"""Decoding from seekable and forward-only streams."""

import io

import pytest

from ntsm.format.container import decode, encode, read_container
from ntsm.format.errors import InvalidTextureTableError, SectionOverlapError
from ntsm.format.models import HeaderFields, ParticleEmitter, Texture

from ntsm_fixtures import fake_glb, raw_emitter, raw_header


class _ForwardOnly:
    """Minimal pipe-like stream: read() only, not seekable."""

    def __init__(self, data: bytes) -> None:
        self._buf = io.BytesIO(data)

    def read(self, size: int = -1) -> bytes:
        # short reads, like a socket
        if size is None or size < 0:
            return self._buf.read()
        return self._buf.read(min(size, 50))

    def seekable(self) -> bool:
        return False


def _image() -> bytes:
    return encode(
        HeaderFields(name="stream", flags=1),
        fake_glb(200),
        [ParticleEmitter(texture_index=1)],
        [Texture("a", b"A" * 10), Texture("b", b"B" * 20)],
    )


def test_sequential_stream_decode():  # noqa: N802
    c = read_container(_ForwardOnly(_image()))
    assert c.name == "stream"
    assert c.emitters[0].texture_index == 1
    assert c.textures[1].read() == b"B" * 20


def test_stream_and_buffer_decodes_compare_equal():  # noqa: N802
    data = _image()
    from_stream = read_container(_ForwardOnly(data))
    from_buffer = decode(data)
    assert from_stream.textures.entries[1].offset > 0
    assert from_stream == from_buffer
    assert from_stream.textures == from_buffer.textures


def test_seekable_stream_starts_at_current_position():  # noqa: N802
    f = io.BytesIO(b"prefix" + _image())
    f.seek(6)
    c = read_container(f)
    assert c.textures.find("a").read() == b"A" * 10


def test_seekable_textures_fail_after_close():  # noqa: N802
    f = io.BytesIO(_image())
    c = read_container(f)
    f.close()
    with pytest.raises(InvalidTextureTableError):
        c.textures[0].read()


def test_sequential_stream_cannot_rewind():  # noqa: N802
    # particles placed before the GLB
    data = (
        raw_header(
            flags=1,
            glb_offset=320,
            glb_size=64,
            particle_offset=192,
            particle_size=128,
        )
        + raw_emitter()
        + fake_glb(64)
    )
    with pytest.raises(SectionOverlapError):
        read_container(_ForwardOnly(data))
    assert len(read_container(io.BytesIO(data)).emitters) == 1
