"""Minimal Wavefront OBJ to GLB conversion.

Only geometry is carried over: ``v``/``vt``/``vn`` records and ``f`` faces
(polygons are fan-triangulated, negative indices are resolved relative to
the end of the list). Materials, groups and smoothing are ignored.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from pygltflib import (
    ARRAY_BUFFER,
    ELEMENT_ARRAY_BUFFER,
    FLOAT,
    GLTF2,
    TRIANGLES,
    UNSIGNED_INT,
    Accessor,
    Attributes,
    Buffer,
    BufferView,
    Mesh,
    Node,
    Primitive,
    Scene,
)

__all__ = ["MeshError", "ObjMesh", "parse_obj", "obj_to_glb", "load_glb"]


class MeshError(ValueError):
    pass


# (position index, texcoord index or None, normal index or None)
_Corner = Tuple[int, Optional[int], Optional[int]]


class ObjMesh:
    def __init__(self) -> None:
        self.positions: List[Sequence[float]] = []
        self.texcoords: List[Sequence[float]] = []
        self.normals: List[Sequence[float]] = []
        self.triangles: List[Tuple[_Corner, _Corner, _Corner]] = []


def _resolve(token: str, count: int, line_no: int) -> int:
    idx = int(token)
    if idx < 0:
        idx += count
    else:
        idx -= 1
    if not 0 <= idx < count:
        raise MeshError(f"line {line_no}: index {token} out of range")
    return idx


def parse_obj(text: str) -> ObjMesh:
    mesh = ObjMesh()
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        tag, *args = line.split()
        try:
            if tag == "v":
                pos = [float(a) for a in args[:3]]
                if len(pos) != 3:
                    raise MeshError(f"line {line_no}: vertex needs 3 components")
                mesh.positions.append(pos)
            elif tag == "vt":
                uv = [float(a) for a in args[:2]]
                if not uv:
                    raise MeshError(f"line {line_no}: texcoord needs a u value")
                # v is optional and defaults to 0
                mesh.texcoords.append(uv + [0.0] * (2 - len(uv)))
            elif tag == "vn":
                nrm = [float(a) for a in args[:3]]
                if len(nrm) != 3:
                    raise MeshError(f"line {line_no}: normal needs 3 components")
                mesh.normals.append(nrm)
            elif tag == "f":
                corners: List[_Corner] = []
                for ref in args:
                    parts = ref.split("/")
                    pos = _resolve(parts[0], len(mesh.positions), line_no)
                    uv = (
                        _resolve(parts[1], len(mesh.texcoords), line_no)
                        if len(parts) > 1 and parts[1]
                        else None
                    )
                    nrm = (
                        _resolve(parts[2], len(mesh.normals), line_no)
                        if len(parts) > 2 and parts[2]
                        else None
                    )
                    corners.append((pos, uv, nrm))
                if len(corners) < 3:
                    raise MeshError(f"line {line_no}: face needs 3 vertices")
                for i in range(1, len(corners) - 1):
                    mesh.triangles.append(
                        (corners[0], corners[i], corners[i + 1])
                    )
        except MeshError:
            raise
        except ValueError as e:
            raise MeshError(f"line {line_no}: {e}") from e
    if not mesh.triangles:
        raise MeshError("OBJ contains no faces")
    return mesh


def _append(blob: bytearray, data: bytes) -> int:
    offset = len(blob)
    blob.extend(data)
    while len(blob) % 4:
        blob.append(0)
    return offset


def obj_to_glb(text: str, name: str = "mesh") -> bytes:
    """Convert OBJ source text to a single-mesh GLB byte string."""
    mesh = parse_obj(text)
    corners = [c for tri in mesh.triangles for c in tri]
    use_uv = all(c[1] is not None for c in corners)
    use_nrm = all(c[2] is not None for c in corners)

    unique: Dict[_Corner, int] = {}
    indices: List[int] = []
    for c in corners:
        key = (c[0], c[1] if use_uv else None, c[2] if use_nrm else None)
        if key not in unique:
            unique[key] = len(unique)
        indices.append(unique[key])
    keys = list(unique)

    positions = np.array(
        [mesh.positions[k[0]] for k in keys], dtype=np.float32
    )
    index_array = np.array(indices, dtype=np.uint32)

    blob = bytearray()
    buffer_views: List[BufferView] = []
    accessors: List[Accessor] = []

    def add_view(data: bytes, target: int) -> int:
        offset = _append(blob, data)
        buffer_views.append(
            BufferView(
                buffer=0, byteOffset=offset, byteLength=len(data), target=target
            )
        )
        return len(buffer_views) - 1

    pos_view = add_view(positions.tobytes(), ARRAY_BUFFER)
    accessors.append(
        Accessor(
            bufferView=pos_view,
            componentType=FLOAT,
            count=len(positions),
            type="VEC3",
            min=positions.min(axis=0).tolist(),
            max=positions.max(axis=0).tolist(),
        )
    )
    attributes = Attributes(POSITION=len(accessors) - 1)

    if use_uv:
        uvs = np.array([mesh.texcoords[k[1]] for k in keys], dtype=np.float32)
        # OBJ v origin is bottom-left, glTF top-left
        uvs[:, 1] = 1.0 - uvs[:, 1]
        view = add_view(uvs.tobytes(), ARRAY_BUFFER)
        accessors.append(
            Accessor(
                bufferView=view,
                componentType=FLOAT,
                count=len(uvs),
                type="VEC2",
            )
        )
        attributes.TEXCOORD_0 = len(accessors) - 1
    if use_nrm:
        normals = np.array(
            [mesh.normals[k[2]] for k in keys], dtype=np.float32
        )
        view = add_view(normals.tobytes(), ARRAY_BUFFER)
        accessors.append(
            Accessor(
                bufferView=view,
                componentType=FLOAT,
                count=len(normals),
                type="VEC3",
            )
        )
        attributes.NORMAL = len(accessors) - 1

    idx_view = add_view(index_array.tobytes(), ELEMENT_ARRAY_BUFFER)
    accessors.append(
        Accessor(
            bufferView=idx_view,
            componentType=UNSIGNED_INT,
            count=len(index_array),
            type="SCALAR",
        )
    )

    gltf = GLTF2(
        scene=0,
        scenes=[Scene(nodes=[0])],
        nodes=[Node(name=name, mesh=0)],
        meshes=[
            Mesh(
                name=name,
                primitives=[
                    Primitive(
                        attributes=attributes,
                        indices=len(accessors) - 1,
                        mode=TRIANGLES,
                    )
                ],
            )
        ],
        accessors=accessors,
        bufferViews=buffer_views,
        buffers=[Buffer(byteLength=len(blob))],
    )
    gltf.set_binary_blob(bytes(blob))
    return b"".join(gltf.save_to_bytes())


def load_glb(data: bytes) -> GLTF2:
    return GLTF2.load_from_bytes(data)
