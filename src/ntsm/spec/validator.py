"""Pack-spec validation.

Phases:
 1. schema: structural & type checks
 2. semantic: cross-field logic, references, limits

Returns a list of ValidationErrorRecord; an empty list means success.
Binary-level checks happen later, in the codec's own validator.
"""

from __future__ import annotations
from numbers import Real
from typing import Any, Dict, List

from ..format.constants import TEXTURE_NAME_SIZE
from .models import BLEND_MODE_NAMES, FLAG_KEYS

MAX_EMITTERS = 4096
MAX_TEXTURES = 1024

_VECTOR_FIELDS = {
    "position": 3,
    "direction": 3,
    "start_color": 4,
    "end_color": 4,
    "velocity_min": 3,
    "velocity_max": 3,
}
_SCALAR_FIELDS = (
    "spread_angle",
    "emission_rate",
    "lifetime",
    "start_size",
    "end_size",
    "gravity",
)
_NON_NEGATIVE = ("emission_rate", "lifetime", "start_size", "end_size")

__all__ = [
    "ValidationErrorRecord",
    "run_validation_pipeline",
    "MAX_EMITTERS",
    "MAX_TEXTURES",
]


class ValidationErrorRecord:
    def __init__(self, code: str, message: str, path: str = "") -> None:
        self.code = code
        self.message = message
        self.path = path

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "path": self.path}

    def __repr__(self) -> str:  # convenience for tests
        return f"ValidationErrorRecord(code={self.code}, path={self.path}, message={self.message})"


def _err(
    errors: List[ValidationErrorRecord], code: str, message: str, path: str
):
    errors.append(ValidationErrorRecord(code, message, path))


def _is_number(v: Any) -> bool:
    return isinstance(v, Real) and not isinstance(v, bool)


def _schema_phase(spec: Dict[str, Any]) -> List[ValidationErrorRecord]:
    errors: List[ValidationErrorRecord] = []
    if not isinstance(spec.get("name"), str):
        _err(errors, "E_FIELD", "Missing or invalid name", "name")

    sources = [k for k in ("glb", "mesh") if spec.get(k) is not None]
    if len(sources) != 1:
        _err(
            errors,
            "E_FIELD",
            "Exactly one of 'glb' or 'mesh' is required",
            "glb",
        )
    elif "mesh" in sources and not isinstance(spec["mesh"], str):
        _err(errors, "E_TYPE", "'mesh' must be a path string", "mesh")
    elif "glb" in sources and not isinstance(spec["glb"], (str, dict)):
        _err(
            errors, "E_TYPE", "'glb' must be a path or an object", "glb"
        )

    flags = spec.get("flags", {}) or {}
    if not isinstance(flags, dict):
        _err(errors, "E_TYPE", "'flags' must be an object", "flags")
    else:
        for key, value in flags.items():
            if key not in FLAG_KEYS:
                _err(errors, "E_FIELD", f"Unknown flag '{key}'", f"flags.{key}")
            elif not isinstance(value, bool):
                _err(errors, "E_TYPE", "Flag must be boolean", f"flags.{key}")

    for plural in ("emitters", "textures"):
        if plural in spec and not isinstance(spec[plural] or [], list):
            _err(errors, "E_TYPE", f"'{plural}' must be a list", plural)

    for i, t in enumerate(_list(spec, "textures")):
        path = f"textures[{i}]"
        if not isinstance(t, dict):
            _err(errors, "E_TYPE", "Entry must be object", path)
            continue
        name = t.get("name")
        if not isinstance(name, str) or not name:
            _err(errors, "E_FIELD", "Missing or invalid name", path)
        elif len(name.encode("utf-8")) > TEXTURE_NAME_SIZE - 1:
            _err(errors, "E_NAME_LEN", "Name too long", path + ".name")

    for i, e in enumerate(_list(spec, "emitters")):
        path = f"emitters[{i}]"
        if not isinstance(e, dict):
            _err(errors, "E_TYPE", "Entry must be object", path)
            continue
        for key, n in _VECTOR_FIELDS.items():
            if key not in e:
                continue
            v = e[key]
            if (
                not isinstance(v, list)
                or len(v) != n
                or not all(_is_number(x) for x in v)
            ):
                _err(
                    errors,
                    "E_TYPE",
                    f"'{key}' must be a list of {n} numbers",
                    f"{path}.{key}",
                )
        for key in _SCALAR_FIELDS:
            if key in e and not _is_number(e[key]):
                _err(errors, "E_TYPE", f"'{key}' must be a number", f"{path}.{key}")
        if "loop" in e and not isinstance(e["loop"], bool):
            _err(errors, "E_TYPE", "'loop' must be boolean", f"{path}.loop")
        if "texture" in e and "texture_index" in e:
            _err(
                errors,
                "E_FIELD",
                "Use either 'texture' or 'texture_index'",
                path,
            )
    return errors


def _list(spec: Dict[str, Any], key: str) -> list:
    value = spec.get(key) or []
    return value if isinstance(value, list) else []


def _semantic_phase(spec: Dict[str, Any]) -> List[ValidationErrorRecord]:
    errors: List[ValidationErrorRecord] = []
    textures = [t for t in _list(spec, "textures") if isinstance(t, dict)]
    emitters = [e for e in _list(spec, "emitters") if isinstance(e, dict)]

    if len(textures) > MAX_TEXTURES:
        _err(errors, "E_COUNT", "Too many textures", "textures")
    if len(emitters) > MAX_EMITTERS:
        _err(errors, "E_COUNT", "Too many emitters", "emitters")

    seen: Dict[str, int] = {}
    for i, t in enumerate(textures):
        name = t.get("name")
        if not isinstance(name, str):
            continue
        if name in seen:
            _err(
                errors,
                "E_DUP",
                f"Duplicate texture name '{name}' (first at {seen[name]})",
                f"textures[{i}].name",
            )
        else:
            seen[name] = i

    for i, e in enumerate(emitters):
        path = f"emitters[{i}]"
        for key in _NON_NEGATIVE:
            v = e.get(key)
            if _is_number(v) and v < 0:
                _err(errors, "E_RANGE", f"'{key}' must be >= 0", f"{path}.{key}")
        blend = e.get("blend_mode", 0)
        if isinstance(blend, str):
            if blend.lower() not in BLEND_MODE_NAMES:
                _err(
                    errors,
                    "E_RANGE",
                    f"Unknown blend_mode '{blend}'",
                    f"{path}.blend_mode",
                )
        elif not isinstance(blend, int) or blend not in (0, 1):
            _err(
                errors,
                "E_RANGE",
                "blend_mode must be 0/1 or additive/alpha",
                f"{path}.blend_mode",
            )
        tex = e.get("texture")
        if tex is not None and (not isinstance(tex, str) or tex not in seen):
            _err(
                errors,
                "E_REF",
                f"Unknown texture reference '{tex}'",
                f"{path}.texture",
            )
        idx = e.get("texture_index")
        if idx is not None:
            if not isinstance(idx, int) or isinstance(idx, bool):
                _err(
                    errors,
                    "E_TYPE",
                    "'texture_index' must be an integer",
                    f"{path}.texture_index",
                )
            elif idx != -1 and not 0 <= idx < len(textures):
                _err(
                    errors,
                    "E_REF",
                    f"texture_index {idx} does not name an embedded texture",
                    f"{path}.texture_index",
                )
    return errors


def run_validation_pipeline(spec: Dict[str, Any]) -> List[ValidationErrorRecord]:
    errors = _schema_phase(spec)
    if errors:
        return errors
    return _semantic_phase(spec)
