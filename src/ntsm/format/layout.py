"""Section layout planning and fixed-width name packing.

The planner is the single source of truth for offsets: the encoder writes
sections exactly where the :class:`LayoutPlan` says and checks its position
against the plan as it goes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from .constants import (
    HEADER_SIZE,
    PARTICLE_RECORD_SIZE,
    TEXTURE_ENTRY_SIZE,
    U32_MAX,
)
from .errors import E_OFFSET_RANGE, format_error

__all__ = [
    "pack_name_string",
    "unpack_name_string",
    "SectionPlan",
    "LayoutPlan",
    "plan_layout",
    "to_plan_dict",
]


def pack_name_string(name: str, size: int) -> bytes:
    """Encode ``name`` into a ``size``-byte NUL-padded slot.

    At most ``size - 1`` bytes are kept so a terminator is always present;
    truncation never splits a multi-byte UTF-8 sequence.
    """
    name_bytes = name.encode("utf-8")[: size - 1]
    name_bytes = name_bytes.decode("utf-8", "ignore").encode("utf-8")
    return name_bytes + b"\x00" * (size - len(name_bytes))


def unpack_name_string(raw: bytes) -> str:
    end = raw.find(b"\x00")
    if end >= 0:
        raw = raw[:end]
    return raw.decode("utf-8", "replace")


@dataclass(slots=True)
class SectionPlan:
    name: str
    offset: int
    size: int

    @property
    def end(self) -> int:
        return self.offset + self.size


@dataclass(slots=True)
class LayoutPlan:
    glb: SectionPlan
    particles: SectionPlan
    texture_table: SectionPlan
    texture_blobs: List[SectionPlan] = field(default_factory=list)
    file_size: int = HEADER_SIZE

    @property
    def particle_count(self) -> int:
        return self.particles.size // PARTICLE_RECORD_SIZE

    @property
    def texture_count(self) -> int:
        return len(self.texture_blobs)

    def sections(self) -> List[SectionPlan]:
        """Non-empty sections in file order."""
        out = [self.glb, self.particles, self.texture_table, *self.texture_blobs]
        return [s for s in out if s.size]


def plan_layout(
    glb_size: int,
    particle_count: int = 0,
    texture_sizes: Sequence[int] = (),
    texture_names: Sequence[str] | None = None,
) -> LayoutPlan:
    """Compute contiguous offsets: header, GLB, particles, table, blobs."""
    if glb_size < 0 or particle_count < 0 or any(s < 0 for s in texture_sizes):
        raise ValueError("section sizes must be non-negative")
    names = list(texture_names or [f"texture[{i}]" for i in range(len(texture_sizes))])
    if len(names) != len(texture_sizes):
        raise ValueError("texture_names and texture_sizes length mismatch")

    glb = SectionPlan("glb", HEADER_SIZE, glb_size)
    particles = SectionPlan(
        "particles", glb.end, particle_count * PARTICLE_RECORD_SIZE
    )
    blobs: List[SectionPlan] = []
    if texture_sizes:
        table = SectionPlan(
            "texture_table",
            particles.end,
            len(texture_sizes) * TEXTURE_ENTRY_SIZE,
        )
        cursor = table.end
        for name, size in zip(names, texture_sizes):
            blobs.append(SectionPlan(name, cursor, size))
            cursor += size
        file_size = cursor
    else:
        table = SectionPlan("texture_table", 0, 0)
        file_size = particles.end

    if file_size > U32_MAX:
        raise format_error(
            E_OFFSET_RANGE,
            "Layout exceeds 32-bit offset range",
            file_size=file_size,
        )
    return LayoutPlan(
        glb=glb,
        particles=particles,
        texture_table=table,
        texture_blobs=blobs,
        file_size=file_size,
    )


def to_plan_dict(plan: LayoutPlan) -> Dict[str, Any]:
    def section(s: SectionPlan) -> Dict[str, Any]:
        return {"name": s.name, "offset": s.offset, "size": s.size}

    return {
        "header_size": HEADER_SIZE,
        "file_size": plan.file_size,
        "glb": section(plan.glb),
        "particles": {
            **section(plan.particles),
            "count": plan.particle_count,
        },
        "texture_table": {
            **section(plan.texture_table),
            "count": plan.texture_count,
        },
        "textures": [section(b) for b in plan.texture_blobs],
    }
