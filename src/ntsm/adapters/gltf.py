"""Load an NTSM container straight into a pygltflib document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, List

from pygltflib import GLTF2

from ..format.container import read_container
from ..format.models import Header, ParticleEmitter, TextureTable

__all__ = ["LoadedObject", "load_object"]


@dataclass(slots=True)
class LoadedObject:
    gltf: GLTF2
    header: Header
    emitters: List[ParticleEmitter] = field(default_factory=list)
    textures: TextureTable = field(default_factory=TextureTable)
    glb: bytes = b""

    @property
    def name(self) -> str:
        return self.header.name

    @property
    def mesh_count(self) -> int:
        return len(self.gltf.meshes or [])


def load_object(stream: BinaryIO) -> LoadedObject:
    """Decode ``stream`` and parse its GLB section.

    Texture reads stay lazy; a seekable ``stream`` must remain open while
    they are used.
    """
    container = read_container(stream)
    gltf = GLTF2.load_from_bytes(container.glb)
    return LoadedObject(
        gltf=gltf,
        header=container.header,
        emitters=list(container.emitters),
        textures=container.textures,
        glb=container.glb,
    )
