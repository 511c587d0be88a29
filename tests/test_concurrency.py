from __future__ import annotations

"""Independent encode/decode calls may run on many threads at once."""

from concurrent.futures import ThreadPoolExecutor

from ntsm.format.container import decode, encode
from ntsm.format.models import HeaderFields, ParticleEmitter, Texture

from ntsm_fixtures import fake_glb


def _roundtrip(i: int):
    emitters = [ParticleEmitter(texture_index=-1, lifetime=float(i))]
    textures = [Texture(f"t{i}", bytes([i % 256]) * (i + 1))]
    data = encode(
        HeaderFields(name=f"obj{i}", flags=1), fake_glb(64 + i), emitters, textures
    )
    c = decode(data)
    return i, c.name, c.emitters, c.textures[0].read()


def test_parallel_roundtrips():  # noqa: N802
    with ThreadPoolExecutor(max_workers=8) as ex:
        results = list(ex.map(_roundtrip, range(64)))
    for i, name, emitters, blob in results:
        assert name == f"obj{i}"
        assert emitters[0].lifetime == float(i)
        assert blob == bytes([i % 256]) * (i + 1)
