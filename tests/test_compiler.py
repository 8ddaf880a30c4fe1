"""Tests for the one-call build and its JSON document."""

import copy
import json
from typing import Any

import pytest

from pyplcpoint import CompileResult, MissingDeviceMappingError, SchemaError, compile_config, to_dict
from pyplcpoint.types import BuildOptions, ModbusTable


@pytest.fixture
def result(device_rows: list[dict[str, Any]], sheet_rows: dict[str, list[dict[str, Any]]]) -> CompileResult:
    return compile_config(device_rows, sheet_rows, BuildOptions(max_modules=2))


def test_request_blocks_keyed_per_unit_and_table(result: CompileResult) -> None:
    assert list(result.request_blocks)[:3] == [
        ("TempZone", 1, ModbusTable.COIL),
        ("TempZone", 1, ModbusTable.HOLDING_REGISTER),
        ("Press", 1, ModbusTable.COIL),
    ]
    regs = result.blocks_for("Press", 2, ModbusTable.HOLDING_REGISTER)
    assert [(b.start_address, b.length) for b in regs] == [(0, 21)]
    assert [t.name for t in regs[0].tags] == ["Pressure_M2", "Counter_M2"]
    assert len(result.blocks_for("TempZone", 1)) == 4


def test_services(result: CompileResult) -> None:
    assert [(s.service_name, s.ip, s.port) for s in result.services] == [
        ("_1TempZone", "10.0.0.1", 502),
        ("_1Press", "10.0.1.1", 5020),
        ("_2TempZone", "10.0.0.2", 502),
        ("_2Press", "10.0.1.2", 502),
    ]


def test_ui_bindings(result: CompileResult) -> None:
    assert result.ui_bindings[0] == ("CurrentTemp", "Temp_M")
    assert len(result.ui_bindings) == 9


def test_default_options(device_rows: list[dict[str, Any]], sheet_rows: dict[str, list[dict[str, Any]]]) -> None:
    result = compile_config(device_rows, sheet_rows)
    assert result.options == BuildOptions()
    assert {u.module for u in result.ir.units} == {1}


def test_rebuild_is_deterministic(device_rows: list[dict[str, Any]], sheet_rows: dict[str, list[dict[str, Any]]]) -> None:
    options = BuildOptions(max_modules=2, byte_order="CDAB")
    first = to_dict(compile_config(device_rows, sheet_rows, options))
    second = to_dict(compile_config(copy.deepcopy(device_rows), copy.deepcopy(sheet_rows), options))
    assert first == second
    assert json.dumps(first) == json.dumps(second)


def test_document_shape(result: CompileResult) -> None:
    doc = to_dict(result)
    assert list(doc) == ["options", "services", "units", "request_blocks", "tasks", "storage_tables", "ui_bindings"]
    json.dumps(doc)

    unit = doc["units"][0]
    assert unit["device"] == "TempZone_M1"
    assert unit["groups"][2] == {
        "key": "-5@300",
        "period": "-5",
        "trigger_address": "300",
        "return_address": "301",
        "tags": ["Batch_M1", "Serial_M1"],
    }
    block = doc["request_blocks"][1]
    assert block["task"] == "TempZone_M1_Regs_0"
    assert block["bindings"][1] == {
        "name": "Humidity_M1",
        "offset": 5,
        "type": "short",
        "register_length": 1,
        "array_length": 1,
    }
    pressure = doc["storage_tables"][3]["columns"][0]
    assert pressure == {"property": "Pressure", "description": "pressure", "type": "float[]", "json": True}


def test_errors_abort_the_build(device_rows: list[dict[str, Any]], sheet_rows: dict[str, list[dict[str, Any]]]) -> None:
    with pytest.raises(SchemaError):
        compile_config(None, sheet_rows)
    with pytest.raises(MissingDeviceMappingError):
        compile_config(device_rows, sheet_rows, BuildOptions(max_modules=3))


@pytest.mark.parametrize(
    "kwargs",
    [{"max_modules": 0}, {"max_gap": -1}, {"max_batch_size": 0}, {"byte_order": "WXYZ"}, {"handshake_poll_ms": 0}],
)
def test_build_options_validation(kwargs: dict[str, Any]) -> None:
    with pytest.raises(ValueError):
        BuildOptions(**kwargs)
