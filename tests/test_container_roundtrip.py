from __future__ import annotations

"""Whole-container encode/decode round trips."""

from pathlib import Path

from ntsm.format.constants import HeaderFlags
from ntsm.format.container import decode, encode, load, open_container, save
from ntsm.format.models import HeaderFields, ParticleEmitter, Texture

from ntsm_fixtures import fake_glb


def _fields(**kw) -> HeaderFields:
    return HeaderFields(
        name=kw.pop("name", "torch"),
        flags=kw.pop(
            "flags", HeaderFlags.HAS_PARTICLES | HeaderFlags.ANIMATE_UV
        ),
    )


EMITTERS = [
    ParticleEmitter(position=(0.0, 1.0, 0.0), texture_index=0, loop=True),
    ParticleEmitter(gravity=-2.0, texture_index=-1, blend_mode=1),
]
TEXTURES = [Texture("flame.png", b"\x89PNG" + b"f" * 60), Texture("smoke", b"s" * 7)]


def test_roundtrip_all_sections():  # noqa: N802
    glb = fake_glb(300)
    data = encode(_fields(), glb, EMITTERS, TEXTURES)
    c = decode(data)
    assert c.name == "torch"
    assert c.header.has_particles and c.header.animate_uv
    assert not c.header.use_world_space
    assert c.glb == glb
    assert c.emitters == EMITTERS
    assert [t.load() for t in c.textures] == TEXTURES
    assert len(data) == 192 + 300 + 256 + 2 * 72 + 64 + 7


def test_roundtrip_glb_only():  # noqa: N802
    glb = fake_glb()
    c = decode(encode(HeaderFields(name="rock"), glb))
    assert c.header.flags == 0
    assert c.emitters == []
    assert len(c.textures) == 0
    assert c.header.texture_offset == 0


def test_texture_offsets_are_file_relative():  # noqa: N802
    data = encode(_fields(), fake_glb(100), EMITTERS, TEXTURES)
    c = decode(data)
    for ref, tex in zip(c.textures, TEXTURES):
        assert data[ref.entry.offset : ref.entry.end] == tex.data


def test_header_fields_roundtrip():  # noqa: N802
    fields = HeaderFields(
        name="flags",
        flags=HeaderFlags.WORLD_SPACE | HeaderFlags.ENABLE_COLLISION,
    )
    c = decode(encode(fields, fake_glb()))
    assert c.header.fields() == fields
    assert c.header.enable_collision


def test_encode_is_deterministic():  # noqa: N802
    a = encode(_fields(), fake_glb(), EMITTERS, TEXTURES)
    b = encode(_fields(), fake_glb(), EMITTERS, TEXTURES)
    assert a == b


def test_save_and_load(tmp_path: Path):  # noqa: N802
    out = tmp_path / "nested" / "torch.ntsm"
    written = save(out, _fields(), fake_glb(), EMITTERS, TEXTURES)
    assert written == out.stat().st_size
    assert load(out).emitters == EMITTERS


def test_open_container_reads_textures_lazily(tmp_path: Path):  # noqa: N802
    out = tmp_path / "torch.ntsm"
    save(out, _fields(), fake_glb(), EMITTERS, TEXTURES)
    with open_container(out) as c:
        assert c.textures.find("smoke").read() == b"s" * 7


def test_decoded_containers_compare_equal():  # noqa: N802
    data = encode(_fields(), fake_glb(), EMITTERS, TEXTURES)
    assert decode(data) == decode(data)
    other = encode(_fields(), fake_glb(), EMITTERS, TEXTURES[:1])
    assert decode(data).textures != decode(other).textures
