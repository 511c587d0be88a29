"""High-level API for ntsm tooling.

Used by the CLI; also importable by build scripts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from .format.container import load, plan_container, save
from .format.inspector import (
    inspect_ntsm as _inspect_ntsm_impl,
    validate_ntsm as _validate_ntsm_impl,
)
from .format.layout import LayoutPlan, to_plan_dict
from .logging import get_logger
from .reporting import get_reporter, task
from .spec.loader import load_spec_dict, resolve_spec
from .spec.models import PackSpec
from .spec.validator import run_validation_pipeline

__all__ = [
    "PackOptions",
    "PackResult",
    "ExtractResult",
    "pack_ntsm",
    "plan_dry_run",
    "inspect_ntsm",
    "validate_ntsm",
    "extract_ntsm",
    "load_models",
    "PackSpec",
    "LayoutPlan",
]


@dataclass(slots=True)
class PackOptions:
    input_spec: Path
    output_path: Path
    force: bool = False
    # skip the glTF magic check (test fixtures with placeholder GLBs)
    check_glb_magic: bool = True


@dataclass(slots=True)
class PackResult:
    output_file: Path
    bytes_written: int
    emitters: int = 0
    textures: int = 0


@dataclass(slots=True)
class ExtractResult:
    glb_path: Path
    texture_paths: List[Path]


def load_models(path: str | Path) -> PackSpec:
    """Load a spec file, failing with ValueError on validation errors."""
    p = Path(path)
    data = load_spec_dict(p)
    val_errors = run_validation_pipeline(data)
    if val_errors:
        raise ValueError(
            "Spec validation failed: "
            + "; ".join(f"{e.code}:{e.path}:{e.message}" for e in val_errors)
        )
    return resolve_spec(data, p.parent)


def pack_ntsm(options: PackOptions) -> PackResult:
    logger = get_logger()
    rep = get_reporter()
    out = Path(options.output_path)
    if out.exists() and not options.force:
        raise FileExistsError(f"Output exists (use force): {out}")
    spec = load_models(options.input_spec)
    rep.status(
        "Spec summary: "
        + f"name={spec.name} emitters={len(spec.emitters)} textures={len(spec.textures)} validation=ok"
    )
    with task("pack.write", "Encode container") as t:
        bytes_written = save(
            out,
            spec.header_fields(),
            spec.glb,
            spec.emitters,
            spec.textures,
            check_glb_magic=options.check_glb_magic,
        )
        t.verbose(f"wrote {bytes_written} bytes to {out}")
    logger.info(
        "Packed NTSM: %s (%d bytes, emitters=%d textures=%d)",
        out.name,
        bytes_written,
        len(spec.emitters),
        len(spec.textures),
    )
    rep.status(
        "Pack summary: file="
        + f"{out.name} bytes={bytes_written} emitters={len(spec.emitters)} textures={len(spec.textures)}"
    )
    return PackResult(
        output_file=out,
        bytes_written=bytes_written,
        emitters=len(spec.emitters),
        textures=len(spec.textures),
    )


def plan_dry_run(
    spec_path: str | Path, check_glb_magic: bool = True
) -> Tuple[LayoutPlan, dict]:
    """Compute the section layout for a spec file without writing output.

    Returns (LayoutPlan, plan_dict) where plan_dict is JSON-serialisable.
    """
    spec = load_models(spec_path)
    header, plan = plan_container(
        spec.header_fields(),
        spec.glb,
        spec.emitters,
        spec.textures,
        check_glb_magic=check_glb_magic,
    )
    plan_dict = to_plan_dict(plan)
    plan_dict["name"] = header.name
    plan_dict["flags"] = header.flags
    return plan, plan_dict


def inspect_ntsm(path: str | Path) -> dict:
    return _inspect_ntsm_impl(path)


def validate_ntsm(path: str | Path) -> list[str]:
    return _validate_ntsm_impl(path)


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_name(name: str, fallback: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", name).strip("._")
    return cleaned or fallback


def extract_ntsm(path: str | Path, out_dir: str | Path) -> ExtractResult:
    """Write the GLB section and every texture blob of ``path`` to ``out_dir``.

    Texture files are prefixed with their table index so duplicate or empty
    names never collide.
    """
    rep = get_reporter()
    src = Path(path)
    out = Path(out_dir)
    container = load(src)
    out.mkdir(parents=True, exist_ok=True)
    glb_path = out / f"{_safe_name(container.name, src.stem)}.glb"
    glb_path.write_bytes(container.glb)
    texture_paths: List[Path] = []
    with task(
        "extract.textures", "Extract textures", total=len(container.textures)
    ) as t:
        for ref in container.textures:
            target = out / f"{ref.index:03d}_{_safe_name(ref.name, 'texture')}"
            target.write_bytes(ref.read())
            texture_paths.append(target)
            t.advance("extract.textures")
    rep.status(
        "Extract summary: file="
        + f"{src.name} glb={glb_path.name} textures={len(texture_paths)}"
    )
    return ExtractResult(glb_path=glb_path, texture_paths=texture_paths)

