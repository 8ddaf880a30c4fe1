"""Normalize point addresses and type names; register footprint rules per type."""

import re
from typing import Any

from .types import PointType

DEFAULT_STRING_LENGTH = 10
DEFAULT_ARRAY_LENGTH = 5

# bool | short | int | float | string, optionally followed by []
_TYPE_PATTERN = re.compile(r"^(bool|short|int|float|string)\s*(\[\])?$", re.IGNORECASE)


def normalize_address(raw: Any) -> str:
    """
    Normalize a value, trigger or return address to its numeric register form.

    - None / empty -> "0".
    - Trim and uppercase; a single leading non-numeric character (address-space
      letter such as D) is dropped: "d200" -> "200", "D0007" -> "0007".

    Numbers coming straight from a spreadsheet cell are accepted as-is.
    """
    if raw is None:
        return "0"
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    s = str(raw).strip().upper()
    if s and not s[0].isdigit():
        s = s[1:]
    return s or "0"


def address_to_int(raw: Any) -> int:
    """Normalized address as a register number; raises ValueError if not purely numeric."""
    s = normalize_address(raw)
    if not s.isdigit():
        raise ValueError(f"Address {raw!r} does not normalize to a register number (got {s!r})")
    return int(s)


def parse_point_type(raw: Any) -> PointType:
    """Parse a Type cell ("float", "Int[]", "short []") into a PointType; ValueError if unknown."""
    s = str(raw or "").strip()
    m = _TYPE_PATTERN.match(s)
    if not m:
        raise ValueError(f"Unknown point type: {raw!r}")
    return PointType(base=m.group(1).lower(), is_array=m.group(2) is not None)


def element_width(point_type: PointType) -> int:
    """Registers (coils for bool) per array element; a string[] element is one register (two characters)."""
    if point_type.base in ("int", "float"):
        return 2
    return 1


def array_length(point_type: PointType, length: int | None) -> int:
    """Element count: the Length cell for arrays (default 5), 1 for scalars."""
    if not point_type.is_array:
        return 1
    return length or DEFAULT_ARRAY_LENGTH


def register_length(point_type: PointType, length: int | None) -> int:
    """
    Registers (coils for bool) a point occupies.

    bool/short -> 1, int/float -> 2, string -> Length (default 10),
    T[] -> element count x element width (2 for int/float, 1 otherwise).
    """
    if point_type.is_array:
        return array_length(point_type, length) * element_width(point_type)
    if point_type.base == "string":
        return length or DEFAULT_STRING_LENGTH
    return element_width(point_type)
