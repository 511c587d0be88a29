"""NTSM inspection utilities.

Public functions:
- inspect_ntsm(path) -> dict   best-effort structural summary, never raises
                               on malformed content
- validate_ntsm(path) -> list  issues found by a full decode (empty == ok)
"""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List

from .constants import (
    MAGIC,
    VERSION,
    HEADER_SIZE,
    GLB_MAGIC,
    TEXTURE_ENTRY_SIZE,
    RESERVED_FLAGS_MASK,
    HeaderFlags,
)
from .container import decode
from .errors import FormatError
from .header import unpack_header
from .textures import ENTRY_STRUCT
from .layout import unpack_name_string

__all__ = ["inspect_ntsm", "inspect_bytes", "validate_ntsm"]


def inspect_bytes(data: bytes) -> Dict[str, Any]:
    result: Dict[str, Any] = {"file_size": len(data)}
    if len(data) < HEADER_SIZE:
        result["header"] = None
        result["issues"] = ["File shorter than header"]
        return result
    header = unpack_header(data)
    result["header"] = {
        **asdict(header),
        "magic": bytes(header.magic).decode("latin-1"),
        "magic_ok": bytes(header.magic) == MAGIC,
        "version_ok": header.version == VERSION,
        "flags": {
            "raw": header.flags,
            "has_particles": header.has_particles,
            "use_world_space": header.use_world_space,
            "animate_uv": header.animate_uv,
            "enable_collision": header.enable_collision,
            "reserved_bits": header.flags & RESERVED_FLAGS_MASK,
            "names": [
                f.name.lower()
                for f in HeaderFlags
                if f.value and f in header.known_flags
            ],
        },
        "reserved_zero": all(b == 0 for b in data[137:140])
        and all(b == 0 for b in data[164:HEADER_SIZE]),
    }
    glb_end = header.glb_offset + header.glb_size
    result["glb"] = {
        "offset": header.glb_offset,
        "size": header.glb_size,
        "in_bounds": glb_end <= len(data),
        "magic_ok": data[header.glb_offset : header.glb_offset + 4]
        == GLB_MAGIC,
    }
    result["particles"] = {
        "offset": header.particle_offset,
        "size": header.particle_size,
        "count": header.particle_count,
        "in_bounds": header.particle_offset + header.particle_size
        <= len(data),
    }
    entries: List[Dict[str, Any]] = []
    table_end = header.texture_offset + header.texture_count * TEXTURE_ENTRY_SIZE
    if header.texture_count and table_end <= len(data):
        for i in range(header.texture_count):
            name_raw, size, offset = ENTRY_STRUCT.unpack_from(
                data, header.texture_offset + i * TEXTURE_ENTRY_SIZE
            )
            entries.append(
                {
                    "name": unpack_name_string(name_raw),
                    "offset": offset,
                    "size": size,
                    "in_bounds": offset + size <= len(data),
                }
            )
    result["texture_table"] = {
        "offset": header.texture_offset,
        "count": header.texture_count,
        "in_bounds": table_end <= len(data),
        "entries": entries,
    }
    result["issues"] = _decode_issues(data)
    return result


def inspect_ntsm(path: str | Path) -> Dict[str, Any]:
    return inspect_bytes(Path(path).read_bytes())


def _decode_issues(data: bytes) -> List[str]:
    try:
        container = decode(data)
        for ref in container.textures:
            ref.read()
    except FormatError as e:
        return [f"{e.code}: {e.message}"]
    return []


def validate_ntsm(path: str | Path) -> List[str]:
    return _decode_issues(Path(path).read_bytes())
