"""Cross-table validation of a raw configuration snapshot; fails fast on the first violation."""

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from .errors import (
    DuplicateIPError,
    DuplicatePropertyNameError,
    InvalidPointError,
    MissingDeviceMappingError,
    SchemaError,
    TriggerPeriodConflictError,
)
from .normalize import address_to_int, normalize_address, parse_point_type
from .types import DEFAULT_PORT, DeviceEndpoint, PointDefinition, SheetGroup, ValidatedConfig

logger = logging.getLogger(__name__)

DEVICE_TABLE = "IP_Port"

Row = Mapping[str, Any]


def device_name_for(sheet: str, module: int) -> str:
    """Device-table name expected for a sheet instantiated as the given module."""
    return f"{sheet}_M{module}"


def _cell(row: Row, *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value is not None and str(value).strip() != "":
            return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _parse_port(value: Any) -> int:
    """Port cell -> int; blank or non-numeric falls back to 502."""
    try:
        port = int(float(str(value).strip()))
    except (TypeError, ValueError):
        return DEFAULT_PORT
    return port or DEFAULT_PORT


def _parse_devices(rows: Sequence[Row]) -> list[DeviceEndpoint]:
    devices: list[DeviceEndpoint] = []
    for row in rows:
        name = _text(_cell(row, "Device", "DeviceName"))
        if not name:
            continue
        devices.append(
            DeviceEndpoint(
                name=name,
                ip=_text(_cell(row, "IP")),
                port=_parse_port(_cell(row, "Port", "PORT")),
            )
        )
    return devices


def _parse_point(row: Row, sheet: str) -> PointDefinition:
    name = _text(row.get("PropertyName"))
    try:
        point_type = parse_point_type(row.get("Type"))
    except ValueError as e:
        raise InvalidPointError(name, sheet, f"Point {name!r} in sheet {sheet!r}: {e}") from None

    raw_length = _cell(row, "Length")
    raw_period = _cell(row, "Period")
    try:
        raw_length = float(raw_length) if raw_length is not None else None
        period = float(raw_period) if raw_period is not None else 0.0
        if not math.isfinite(period) or (raw_length is not None and not math.isfinite(raw_length)):
            raise ValueError("not finite")
        length = int(raw_length) if raw_length is not None else None
    except (TypeError, ValueError, OverflowError):
        raise InvalidPointError(
            name, sheet, f"Point {name!r} in sheet {sheet!r}: Length and Period must be finite numbers"
        ) from None
    if length is not None and length < 0:
        raise InvalidPointError(name, sheet, f"Point {name!r} in sheet {sheet!r}: negative Length {length}")

    address = _text(row.get("ValueAddress"))
    try:
        address_to_int(address)
    except ValueError as e:
        raise InvalidPointError(name, sheet, f"Point {name!r} in sheet {sheet!r}: {e}") from None

    return PointDefinition(
        property_name=name,
        display_name=_text(row.get("KeyName")),
        address=address,
        point_type=point_type,
        length=length or None,
        trigger_address=_text(row.get("TriggerAddress")) or None,
        return_address=_text(row.get("ReturnAddress")) or None,
        period=period,
    )


def check_unique_ips(devices: Sequence[DeviceEndpoint]) -> None:
    seen: set[str] = set()
    for d in devices:
        if d.ip in seen:
            raise DuplicateIPError(d.ip)
        seen.add(d.ip)


def check_unique_property_names(sheet_rows: Mapping[str, Sequence[Row]]) -> None:
    """Scan sheets and rows in source order; the first repeated name is reported."""
    seen: set[str] = set()
    for sheet, rows in sheet_rows.items():
        for row in rows:
            name = _text(row.get("PropertyName"))
            if not name:
                continue
            if name in seen:
                raise DuplicatePropertyNameError(name, sheet)
            seen.add(name)


def check_trigger_periods(sheet: SheetGroup) -> None:
    """Points sharing a (normalized) trigger address must share one period."""
    periods: dict[str, float] = {}
    for p in sheet.points:
        if not p.trigger_address:
            continue
        key = normalize_address(p.trigger_address)
        if key in periods and periods[key] != p.period:
            raise TriggerPeriodConflictError(p.trigger_address, sheet.name)
        periods.setdefault(key, p.period)


def check_device_mapping(
    sheets: Sequence[SheetGroup],
    devices: Sequence[DeviceEndpoint],
    max_modules: int,
) -> None:
    names = {d.name for d in devices}
    for module in range(1, max_modules + 1):
        for sheet in sheets:
            expected = device_name_for(sheet.name, module)
            if expected not in names:
                raise MissingDeviceMappingError(expected, sheet=sheet.name, module=module)


def validate_config(
    device_rows: Sequence[Row] | None,
    sheet_rows: Mapping[str, Sequence[Row]],
    max_modules: int,
) -> ValidatedConfig:
    """
    Validate a raw configuration and return it as typed, ordered data.

    Checks run in this order and stop at the first violation: device table
    present, unique IPs, globally unique property names, per-sheet
    trigger/period consistency, one device per (sheet, module).
    """
    if max_modules < 1:
        raise ValueError(f"max_modules must be >= 1, got {max_modules}")
    if device_rows is None:
        raise SchemaError(DEVICE_TABLE, f"Missing required table {DEVICE_TABLE!r}")

    devices = _parse_devices(device_rows)
    check_unique_ips(devices)
    logger.debug("Device table: %d devices", len(devices))

    check_unique_property_names(sheet_rows)

    sheets: list[SheetGroup] = []
    for raw_name, rows in sheet_rows.items():
        name = str(raw_name).strip()
        points = tuple(_parse_point(row, name) for row in rows if _text(row.get("PropertyName")))
        sheets.append(SheetGroup(name=name, points=points))
        logger.debug("Sheet %s: %d points", name, len(points))

    for sheet in sheets:
        check_trigger_periods(sheet)

    check_device_mapping(sheets, devices, max_modules)

    return ValidatedConfig(devices=tuple(devices), sheets=tuple(sheets), max_modules=max_modules)
