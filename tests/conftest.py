"""Shared raw workbook fixtures: one device table and two point sheets."""

from typing import Any

import pytest


def point(
    name: str,
    address: Any,
    type_: str = "short",
    period: Any = 0,
    *,
    length: Any = None,
    trigger: Any = None,
    ret: Any = None,
    key: str | None = None,
) -> dict[str, Any]:
    return {
        "PropertyName": name,
        "KeyName": key if key is not None else name.lower(),
        "ValueAddress": address,
        "Type": type_,
        "Length": length,
        "TriggerAddress": trigger,
        "ReturnAddress": ret,
        "Period": period,
    }


def device(name: str, ip: str, port: Any = 502) -> dict[str, Any]:
    return {"Device": name, "IP": ip, "Port": port}


@pytest.fixture
def device_rows() -> list[dict[str, Any]]:
    return [
        device("TempZone_M1", "10.0.0.1"),
        device("TempZone_M2", "10.0.0.2", ""),
        device("Press_M1", "10.0.1.1", 5020),
        device("Press_M2", "10.0.1.2"),
    ]


@pytest.fixture
def sheet_rows() -> dict[str, list[dict[str, Any]]]:
    return {
        "TempZone": [
            point("Temp", "D100", "float", 1000),
            point("Humidity", "D105", "short", 1000),
            point("Label", "D130", "string", 0, length=4),
            point("Alarm", "M10", "bool", 0.2),
            point("Batch", "D200", "int", -5, trigger="D300", ret="D301"),
            point("Serial", "D210", "string", -5, trigger="D300", ret="D301", length=6),
        ],
        "Press": [
            point("Pressure", "D0", "float[]", 0.5, length=3),
            point("Valves", "M0", "bool[]", 0, length=8),
            point("Counter", "d20", "short", -2, trigger="D50", ret="D51"),
        ],
    }
