"""IO helpers for pack-spec payload extraction."""

from __future__ import annotations
from pathlib import Path
from typing import Any

from .paths import safe_file_path

__all__ = ["DataError", "safe_read_file", "read_data_from_spec"]

MAX_PAYLOAD_SIZE = 512 * 1024 * 1024
MAX_HEX_STRING_LENGTH = 2 * 1024 * 1024


class DataError(RuntimeError):
    pass


def safe_read_file(path: Path, max_size: int = MAX_PAYLOAD_SIZE) -> bytes:
    if not path.exists():
        raise DataError(f"File not found: {path}")
    size = path.stat().st_size
    if size > max_size:
        raise DataError(f"File too large: {size}>{max_size}")
    return path.read_bytes()


def read_data_from_spec(
    entry: dict[str, Any], base_dir: Path, max_size: int = MAX_PAYLOAD_SIZE
) -> bytes:
    """Return the payload an entry points at.

    Exactly one of ``file`` / ``path`` (relative to ``base_dir``),
    ``data_hex`` or ``data`` (inline text/bytes) must be given.
    """
    sources = [
        k
        for k in ("data_hex", "file", "path", "data")
        if entry.get(k) is not None
    ]
    if not sources:
        raise DataError("No data source (data_hex|file|path|data) provided")
    if len(sources) > 1:
        raise DataError(f"Multiple data sources: {sources}")
    src = sources[0]
    if src == "data_hex":
        raw = entry["data_hex"]
        if not isinstance(raw, str):
            raise DataError("data_hex must be string")
        h = raw.replace(" ", "").replace("\n", "")
        if len(h) > MAX_HEX_STRING_LENGTH:
            raise DataError("hex string too long")
        if len(h) % 2:
            raise DataError("hex string must have even length")
        try:
            return bytes.fromhex(h)
        except ValueError as e:
            raise DataError(f"invalid hex: {e}") from e
    if src in ("file", "path"):
        p = entry[src]
        if not isinstance(p, str):
            raise DataError(f"{src} path must be string")
        try:
            resolved = safe_file_path(base_dir, p)
        except ValueError as e:
            raise DataError(f"{src} escapes spec directory: {p}") from e
        return safe_read_file(resolved, max_size)
    d = entry["data"]
    if isinstance(d, str):
        return d.encode("utf-8")
    if isinstance(d, bytes):
        return d
    raise DataError("data must be str or bytes")
