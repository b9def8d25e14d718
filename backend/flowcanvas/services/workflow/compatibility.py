"""Parameter type compatibility matrix.

Models the runtime coercion risk of feeding a value of one declared type
into an input of another. The table is directional: a string can carry any
scalar, but a string fed into a number input may fail to parse.
"""

from __future__ import annotations

from typing import Any

from flowcanvas.models.enums import CompatibilityLevel, ParamDataType

_C = CompatibilityLevel.COMPATIBLE
_W = CompatibilityLevel.CONDITIONAL
_X = CompatibilityLevel.INCOMPATIBLE

# Column order for every row of the matrix.
_TYPE_ORDER: tuple[ParamDataType, ...] = (
    ParamDataType.STRING,
    ParamDataType.NUMBER,
    ParamDataType.BOOLEAN,
    ParamDataType.OBJECT,
    ParamDataType.ARRAY,
    ParamDataType.DATETIME,
)

# Rows are the target (consuming) type, columns the source type.
_MATRIX: dict[ParamDataType, tuple[CompatibilityLevel, ...]] = {
    ParamDataType.STRING: (_C, _C, _C, _X, _X, _C),
    ParamDataType.NUMBER: (_W, _C, _W, _X, _X, _X),
    ParamDataType.BOOLEAN: (_W, _W, _C, _X, _X, _X),
    ParamDataType.OBJECT: (_W, _X, _X, _C, _X, _X),
    ParamDataType.ARRAY: (_W, _X, _X, _X, _C, _X),
    ParamDataType.DATETIME: (_W, _W, _X, _X, _X, _C),
}

COMPATIBILITY_MATRIX: dict[tuple[ParamDataType, ParamDataType], CompatibilityLevel] = {
    (source, target): row[column]
    for target, row in _MATRIX.items()
    for column, source in enumerate(_TYPE_ORDER)
}


def _as_type(value: Any) -> ParamDataType | None:
    if not value:
        return None
    try:
        return ParamDataType(str(value))
    except ValueError:
        return None


def check_compatibility(source_type: Any, target_type: Any) -> CompatibilityLevel:
    """Look up how safely ``source_type`` values feed a ``target_type`` input.

    Unknown, empty or None types on either side are treated as compatible
    so that graphs using types this table does not know keep working.

    Args:
        source_type: Declared type of the producing parameter.
        target_type: Declared type of the consuming parameter.

    Returns:
        The compatibility level for the directed pair.
    """
    source = _as_type(source_type)
    target = _as_type(target_type)
    if source is None or target is None:
        return CompatibilityLevel.COMPATIBLE
    return COMPATIBILITY_MATRIX[(source, target)]


def can_convert(source_type: Any, target_type: Any) -> bool:
    """True unless the pair is incompatible."""
    return check_compatibility(source_type, target_type) != CompatibilityLevel.INCOMPATIBLE


def is_fully_compatible(source_type: Any, target_type: Any) -> bool:
    return check_compatibility(source_type, target_type) == CompatibilityLevel.COMPATIBLE


def get_compatibility_message(source_type: Any, target_type: Any) -> str | None:
    """Warning or error text for a pair, None when it is fully compatible."""
    level = check_compatibility(source_type, target_type)
    if level == CompatibilityLevel.CONDITIONAL:
        return (
            f"Type {source_type} to {target_type} conversion may fail, "
            "make sure the value has a compatible format"
        )
    if level == CompatibilityLevel.INCOMPATIBLE:
        return f"Type {source_type} cannot be converted to {target_type}"
    return None


def get_compatibility_info(source_type: Any, target_type: Any) -> dict[str, Any]:
    """Bundle level, message and usability for display.

    Returns:
        Dict with ``level``, ``message`` and ``can_use`` keys.
    """
    level = check_compatibility(source_type, target_type)
    return {
        "level": level,
        "message": get_compatibility_message(source_type, target_type),
        "can_use": level != CompatibilityLevel.INCOMPATIBLE,
    }


__all__ = [
    "COMPATIBILITY_MATRIX",
    "can_convert",
    "check_compatibility",
    "get_compatibility_info",
    "get_compatibility_message",
    "is_fully_compatible",
]
