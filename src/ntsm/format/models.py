"""Dataclass models for NTSM records."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple, Callable

from .constants import (
    MAGIC,
    VERSION,
    DEFAULT_TEXTURE_INDEX,
    HeaderFlags,
    KNOWN_FLAGS_MASK,
    PARTICLE_RECORD_SIZE,
    BlendMode,
)

Vec3 = Tuple[float, float, float]
Vec4 = Tuple[float, float, float, float]


def _vec(values: Sequence[float], n: int, label: str) -> tuple:
    out = tuple(float(v) for v in values)
    if len(out) != n:
        raise ValueError(f"{label} expects {n} components, got {len(out)}")
    return out


@dataclass(slots=True)
class HeaderFields:
    """Caller-controlled header fields; offsets and sizes are planned."""

    name: str = ""
    flags: int = 0
    version: int = VERSION


@dataclass(slots=True)
class Header:
    name: str = ""
    flags: int = 0
    glb_offset: int = 0
    glb_size: int = 0
    particle_offset: int = 0
    particle_size: int = 0
    texture_count: int = 0
    texture_offset: int = 0
    version: int = VERSION
    magic: bytes = MAGIC

    @property
    def known_flags(self) -> HeaderFlags:
        return HeaderFlags(self.flags & KNOWN_FLAGS_MASK)

    @property
    def has_particles(self) -> bool:
        return bool(self.flags & HeaderFlags.HAS_PARTICLES)

    @property
    def use_world_space(self) -> bool:
        return bool(self.flags & HeaderFlags.WORLD_SPACE)

    @property
    def animate_uv(self) -> bool:
        return bool(self.flags & HeaderFlags.ANIMATE_UV)

    @property
    def enable_collision(self) -> bool:
        return bool(self.flags & HeaderFlags.ENABLE_COLLISION)

    @property
    def particle_count(self) -> int:
        if not self.has_particles:
            return 0
        return self.particle_size // PARTICLE_RECORD_SIZE

    def fields(self) -> HeaderFields:
        return HeaderFields(
            name=self.name, flags=self.flags, version=self.version
        )


@dataclass(slots=True)
class ParticleEmitter:
    position: Vec3 = (0.0, 0.0, 0.0)
    direction: Vec3 = (0.0, 1.0, 0.0)
    spread_angle: float = 0.0
    emission_rate: float = 10.0
    lifetime: float = 1.0
    start_size: float = 1.0
    end_size: float = 0.0
    start_color: Vec4 = (1.0, 1.0, 1.0, 1.0)
    end_color: Vec4 = (1.0, 1.0, 1.0, 0.0)
    velocity_min: Vec3 = (0.0, 0.0, 0.0)
    velocity_max: Vec3 = (0.0, 0.0, 0.0)
    gravity: float = 0.0
    texture_index: int = DEFAULT_TEXTURE_INDEX
    blend_mode: int = BlendMode.ADDITIVE
    loop: bool = False

    def __post_init__(self) -> None:
        self.position = _vec(self.position, 3, "position")
        self.direction = _vec(self.direction, 3, "direction")
        self.start_color = _vec(self.start_color, 4, "start_color")
        self.end_color = _vec(self.end_color, 4, "end_color")
        self.velocity_min = _vec(self.velocity_min, 3, "velocity_min")
        self.velocity_max = _vec(self.velocity_max, 3, "velocity_max")

    @property
    def uses_default_texture(self) -> bool:
        return self.texture_index == DEFAULT_TEXTURE_INDEX


@dataclass(slots=True)
class Texture:
    """Named texture blob supplied to encode."""

    name: str
    data: bytes = b""


@dataclass(slots=True)
class TextureEntry:
    name: str
    size: int
    offset: int

    @property
    def end(self) -> int:
        return self.offset + self.size


@dataclass(slots=True)
class TextureRef:
    """Texture table entry paired with an on-demand blob reader."""

    index: int
    entry: TextureEntry
    _reader: Callable[[int, int], bytes] = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.entry.name

    def read(self) -> bytes:
        return self._reader(self.entry.offset, self.entry.size)

    def load(self) -> Texture:
        return Texture(name=self.entry.name, data=self.read())


class TextureTable(Sequence[TextureRef]):
    """Finite, restartable sequence of texture lookups keyed by table index.

    Blobs are only read when :meth:`TextureRef.read` is called, so callers
    interested in a subset of textures never materialise the others.
    """

    def __init__(
        self,
        entries: Sequence[TextureEntry] = (),
        reader: Optional[Callable[[int, int], bytes]] = None,
    ) -> None:
        self._entries: Tuple[TextureEntry, ...] = tuple(entries)
        self._reader = reader or _no_reader

    @property
    def entries(self) -> Tuple[TextureEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        if index < 0:
            index += len(self._entries)
        if index < 0 or index >= len(self._entries):
            raise IndexError(f"texture index out of range: {index}")
        return TextureRef(index, self._entries[index], self._reader)

    def __iter__(self) -> Iterator[TextureRef]:
        for i in range(len(self._entries)):
            yield self[i]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TextureTable):
            return NotImplemented
        return self._entries == other._entries

    __hash__ = None  # type: ignore[assignment]

    def find(self, name: str) -> Optional[TextureRef]:
        for ref in self:
            if ref.name == name:
                return ref
        return None

    def load_all(self) -> List[Texture]:
        return [ref.load() for ref in self]

    def __repr__(self) -> str:
        names = ", ".join(e.name for e in self._entries)
        return f"TextureTable([{names}])"


def _no_reader(offset: int, size: int) -> bytes:
    if size:
        raise LookupError("texture table has no backing data")
    return b""


@dataclass(slots=True)
class Container:
    header: Header
    glb: bytes
    emitters: List[ParticleEmitter] = field(default_factory=list)
    textures: TextureTable = field(default_factory=TextureTable)

    @property
    def name(self) -> str:
        return self.header.name


__all__ = [
    "Vec3",
    "Vec4",
    "HeaderFields",
    "Header",
    "ParticleEmitter",
    "Texture",
    "TextureEntry",
    "TextureRef",
    "TextureTable",
    "Container",
]
