from __future__ import annotations

"""Section layout planner tests."""

import pytest

from ntsm.format.constants import U32_MAX
from ntsm.format.errors import OffsetRangeError
from ntsm.format.layout import plan_layout, to_plan_dict


def test_plan_glb_only():  # noqa: N802
    plan = plan_layout(1024)
    assert (plan.glb.offset, plan.glb.size) == (192, 1024)
    assert plan.particles.size == 0
    assert (plan.texture_table.offset, plan.texture_table.size) == (0, 0)
    assert plan.file_size == 1216
    assert [s.name for s in plan.sections()] == ["glb"]


def test_plan_sections_are_contiguous():  # noqa: N802
    plan = plan_layout(100, particle_count=2, texture_sizes=[7, 0, 9])
    assert plan.particles.offset == 292
    assert plan.particles.size == 256
    assert plan.texture_table.offset == 548
    assert plan.texture_table.size == 3 * 72
    blobs = plan.texture_blobs
    assert [b.offset for b in blobs] == [764, 771, 771]
    assert plan.file_size == 780
    assert plan.particle_count == 2
    assert plan.texture_count == 3


def test_plan_dict_is_json_shaped():  # noqa: N802
    d = to_plan_dict(plan_layout(20, 1, [4], ["t"]))
    assert d["header_size"] == 192
    assert d["particles"]["count"] == 1
    assert d["textures"] == [{"name": "t", "offset": 212 + 128 + 72, "size": 4}]


def test_plan_beyond_32_bit_rejected():  # noqa: N802
    with pytest.raises(OffsetRangeError):
        plan_layout(U32_MAX)


def test_plan_rejects_negative_sizes():  # noqa: N802
    with pytest.raises(ValueError):
        plan_layout(-1)
