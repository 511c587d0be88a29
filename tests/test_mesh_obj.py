from __future__ import annotations

"""OBJ -> GLB conversion tests."""

import pytest

from ntsm.mesh import MeshError, load_glb, obj_to_glb, parse_obj

QUAD = """\
# unit quad
v 0 0 0
v 1 0 0
v 1 1 0
v 0 1 0
vt 0 0
vt 1 0
vt 1 1
vt 0 1
vn 0 0 1
f 1/1/1 2/2/1 3/3/1 4/4/1
"""


def test_quad_fan_triangulated():  # noqa: N802
    mesh = parse_obj(QUAD)
    assert len(mesh.triangles) == 2
    assert mesh.triangles[1][0][0] == 0


def test_negative_indices_resolve_from_end():  # noqa: N802
    mesh = parse_obj("v 0 0 0\nv 1 0 0\nv 0 1 0\nf -3 -2 -1\n")
    assert [c[0] for c in mesh.triangles[0]] == [0, 1, 2]


def test_glb_layout():  # noqa: N802
    glb = obj_to_glb(QUAD, name="quad")
    assert glb[:4] == b"glTF"
    assert int.from_bytes(glb[8:12], "little") == len(glb)
    gltf = load_glb(glb)
    prim = gltf.meshes[0].primitives[0]
    assert gltf.accessors[prim.attributes.POSITION].count == 4
    assert gltf.accessors[prim.indices].count == 6
    assert prim.attributes.TEXCOORD_0 is not None
    assert prim.attributes.NORMAL is not None
    assert gltf.accessors[prim.attributes.POSITION].max == [1.0, 1.0, 0.0]


def test_positions_only_mesh_has_no_uvs():  # noqa: N802
    gltf = load_glb(obj_to_glb("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 3\n"))
    prim = gltf.meshes[0].primitives[0]
    assert prim.attributes.TEXCOORD_0 is None


@pytest.mark.parametrize(
    "text",
    [
        "v 0 0 0\n",
        "v 0 0 0\nv 1 0 0\nf 1 2\n",
        "v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 9\n",
        "v 0 zero 0\n",
        "v 0 0\n",
    ],
)
def test_bad_obj_rejected(text: str):  # noqa: N802
    with pytest.raises(MeshError):
        obj_to_glb(text)


def test_texcoord_v_defaults_to_zero():  # noqa: N802
    text = "v 0 0 0\nv 1 0 0\nv 0 1 0\nvt 0.5\nf 1/1 2/1 3/1\n"
    assert parse_obj(text).texcoords == [[0.5, 0.0]]
    gltf = load_glb(obj_to_glb(text))
    prim = gltf.meshes[0].primitives[0]
    assert gltf.accessors[prim.attributes.TEXCOORD_0].count == 3


@pytest.mark.parametrize(
    "text",
    [
        "v 0 0 0\nv 1 0 0\nv 0 1 0\nvt\nf 1/1 2/1 3/1\n",
        "v 0 0 0\nv 1 0 0\nv 0 1 0\nvn 0 1\nf 1//1 2//1 3//1\n",
    ],
)
def test_short_texcoord_or_normal_rejected(text: str):  # noqa: N802
    with pytest.raises(MeshError):
        parse_obj(text)
