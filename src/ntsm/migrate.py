"""Batch conversion of ``.obj``/``.glb`` source trees into ``.ntsm`` files.

Each source file becomes one container named after its stem, with no
emitters and no textures. Files are converted on a bounded thread pool;
one failing file never stops the others.
"""

from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from .format.constants import FILE_EXTENSION
from .format.container import encode
from .format.models import HeaderFields
from .logging import get_logger
from .mesh import obj_to_glb
from .reporting import task

__all__ = [
    "SOURCE_SUFFIXES",
    "MigrateOptions",
    "MigrationStats",
    "find_source_files",
    "destination_for",
    "convert_file",
    "migrate",
]

SOURCE_SUFFIXES = (".obj", ".glb")


@dataclass(slots=True)
class MigrateOptions:
    source_dir: Path
    dest_dir: Path
    concurrency: int = 0  # 0 -> os.cpu_count()
    dry_run: bool = False


@dataclass
class MigrationStats:
    files: int = 0
    converted: int = 0
    failed: int = 0
    bytes: int = 0
    failures: List[Tuple[Path, str]] = field(default_factory=list)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def record_success(self, size: int) -> None:
        with self._lock:
            self.converted += 1
            self.bytes += size

    def record_failure(self, path: Path, reason: str) -> None:
        with self._lock:
            self.failed += 1
            self.failures.append((path, reason))

    @property
    def ok(self) -> bool:
        return self.failed == 0


def find_source_files(source_dir: Path) -> List[Path]:
    root = Path(source_dir)
    if not root.is_dir():
        raise NotADirectoryError(root)
    return sorted(
        p
        for p in root.rglob("*")
        if p.is_file() and p.suffix.lower() in SOURCE_SUFFIXES
    )


def destination_for(src: Path, source_dir: Path, dest_dir: Path) -> Path:
    rel = Path(src).relative_to(source_dir)
    return Path(dest_dir) / rel.with_suffix(FILE_EXTENSION)


def convert_file(src: Path, dst: Path, dry_run: bool = False) -> int:
    """Encode one source file; returns the container size in bytes."""
    src = Path(src)
    if src.suffix.lower() == ".obj":
        glb = obj_to_glb(src.read_text(encoding="utf-8"), name=src.stem)
    else:
        glb = src.read_bytes()
    data = encode(HeaderFields(name=src.stem), glb)
    if not dry_run:
        dst = Path(dst)
        dst.parent.mkdir(parents=True, exist_ok=True)
        dst.write_bytes(data)
    return len(data)


def migrate(options: MigrateOptions) -> MigrationStats:
    logger = get_logger()
    sources = find_source_files(options.source_dir)
    stats = MigrationStats(files=len(sources))
    workers = options.concurrency or os.cpu_count() or 1
    with task(
        "migrate", "Convert source files", total=len(sources)
    ) as rep:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            pending = {
                executor.submit(
                    convert_file,
                    src,
                    destination_for(src, options.source_dir, options.dest_dir),
                    options.dry_run,
                ): src
                for src in sources
            }
            for future in as_completed(pending):
                src = pending[future]
                try:
                    size = future.result()
                except Exception as e:
                    stats.record_failure(src, str(e))
                    logger.warning("Failed to convert %s: %s", src.name, e)
                else:
                    stats.record_success(size)
                    rep.verbose(f"converted {src.name} ({size} bytes)")
                rep.advance(
                    "migrate", converted=stats.converted, failed=stats.failed
                )
    rep.status(
        "Migration summary: "
        + f"files={stats.files} converted={stats.converted} failed={stats.failed} "
        + f"bytes={stats.bytes} dry_run={str(options.dry_run).lower()}"
    )
    return stats
