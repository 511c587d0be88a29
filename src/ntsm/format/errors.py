"""Error definitions for the NTSM container codec.

Every failure raised by encode/decode is a :class:`FormatError` subclass
carrying a stable ``code`` so callers (and the JSON reporter) can tell which
structural invariant was violated.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

E_MALFORMED_HEADER = "E_MALFORMED_HEADER"
E_UNSUPPORTED_VERSION = "E_UNSUPPORTED_VERSION"
E_INCONSISTENT_FLAGS = "E_INCONSISTENT_FLAGS"
E_INVALID_GLB = "E_INVALID_GLB"
E_INVALID_TEXTURE_TABLE = "E_INVALID_TEXTURE_TABLE"
E_TRUNCATED_SECTION = "E_TRUNCATED_SECTION"
E_SECTION_OVERLAP = "E_SECTION_OVERLAP"
E_OFFSET_RANGE = "E_OFFSET_RANGE"


@dataclass
class FormatError(Exception):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}" + (
            f" | ctx={self.context}" if self.context else ""
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context or {},
        }


class MalformedHeaderError(FormatError):
    pass


class UnsupportedVersionError(FormatError):
    pass


class InconsistentFlagsError(FormatError):
    pass


class InvalidGLBSectionError(FormatError):
    pass


class InvalidTextureTableError(FormatError):
    pass


class TruncatedSectionError(FormatError):
    pass


class SectionOverlapError(FormatError):
    pass


class OffsetRangeError(FormatError):
    pass


_ERROR_TYPES: Dict[str, Type[FormatError]] = {
    E_MALFORMED_HEADER: MalformedHeaderError,
    E_UNSUPPORTED_VERSION: UnsupportedVersionError,
    E_INCONSISTENT_FLAGS: InconsistentFlagsError,
    E_INVALID_GLB: InvalidGLBSectionError,
    E_INVALID_TEXTURE_TABLE: InvalidTextureTableError,
    E_TRUNCATED_SECTION: TruncatedSectionError,
    E_SECTION_OVERLAP: SectionOverlapError,
    E_OFFSET_RANGE: OffsetRangeError,
}


def format_error(code: str, message: str, **context: Any) -> FormatError:
    """Build the error subclass registered for ``code``."""
    cls = _ERROR_TYPES.get(code, FormatError)
    return cls(code=code, message=message, context=context or None)


__all__ = [
    "FormatError",
    "MalformedHeaderError",
    "UnsupportedVersionError",
    "InconsistentFlagsError",
    "InvalidGLBSectionError",
    "InvalidTextureTableError",
    "TruncatedSectionError",
    "SectionOverlapError",
    "OffsetRangeError",
    "format_error",
    "E_MALFORMED_HEADER",
    "E_UNSUPPORTED_VERSION",
    "E_INCONSISTENT_FLAGS",
    "E_INVALID_GLB",
    "E_INVALID_TEXTURE_TABLE",
    "E_TRUNCATED_SECTION",
    "E_SECTION_OVERLAP",
    "E_OFFSET_RANGE",
]
