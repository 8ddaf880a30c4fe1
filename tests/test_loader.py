"""Tests for workbook loading from .xlsx files, JSON files and CSV directories."""

import json
import zipfile
from pathlib import Path

import openpyxl
import pytest

from pyplcpoint import load_workbook, validate_config
from pyplcpoint.loader import load_strict_xlsx_workbook


def test_load_json_workbook(tmp_path: Path) -> None:
    path = tmp_path / "points.json"
    path.write_text(
        json.dumps(
            {
                "IP_Port": [{"Device": "Temp_M1", "IP": "10.0.0.1", "Port": 502}],
                "Temp": [{" PropertyName ": "T1", "ValueAddress": "D100", "Type": "float", "Period": 1000}],
            }
        ),
        encoding="utf-8",
    )
    devices, sheets = load_workbook(path)
    assert devices == [{"Device": "Temp_M1", "IP": "10.0.0.1", "Port": 502}]
    assert list(sheets) == ["Temp"]
    assert sheets["Temp"][0]["PropertyName"] == "T1"


def test_json_without_device_table(tmp_path: Path) -> None:
    path = tmp_path / "points.json"
    path.write_text(json.dumps({"Temp": []}), encoding="utf-8")
    devices, sheets = load_workbook(str(path))
    assert devices is None
    assert sheets == {"Temp": []}


@pytest.mark.parametrize("content", ["[]", '{"Temp": {"a": 1}}'])
def test_json_bad_shape(tmp_path: Path, content: str) -> None:
    path = tmp_path / "points.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_workbook(path)


def test_load_csv_directory(tmp_path: Path) -> None:
    (tmp_path / "IP_Port.csv").write_text("\ufeffDevice,IP,Port\nTemp_M1,10.0.0.1,\n", encoding="utf-8")
    (tmp_path / "Temp.csv").write_text(
        "PropertyName,KeyName,ValueAddress,Type,Length,TriggerAddress,ReturnAddress,Period\n"
        "T1,Temperature,D100,float,,,,1000\n"
        "Name,Label,D120,string,4,,,0\n",
        encoding="utf-8",
    )
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    devices, sheets = load_workbook(tmp_path)
    assert devices is not None
    assert devices[0]["Device"] == "Temp_M1"
    assert list(sheets) == ["Temp"]

    config = validate_config(devices, sheets, 1)
    assert config.device("Temp_M1").port == 502
    t1, name = config.sheets[0].points
    assert (t1.display_name, t1.period, t1.length) == ("Temperature", 1000.0, None)
    assert name.length == 4


def test_missing_workbook(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_workbook(tmp_path / "missing.json")


MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"


def _sheet_xml(rows: list[list[str]]) -> str:
    body = []
    for r, values in enumerate(rows, start=1):
        cells = "".join(
            f'<c r="{"ABCDEFGH"[i]}{r}" t="inlineStr"><is><t>{v}</t></is></c>' for i, v in enumerate(values) if v != ""
        )
        body.append(f'<row r="{r}">{cells}</row>')
    return f'<worksheet xmlns="{MAIN_NS}"><sheetData>{"".join(body)}</sheetData></worksheet>'


def write_xlsx(path: Path, sheets: dict[str, list[list[str]]]) -> None:
    entries = "".join(
        f'<sheet name="{name}" sheetId="{i}" r:id="rId{i}"/>' for i, name in enumerate(sheets, start=1)
    )
    rels = "".join(
        f'<Relationship Id="rId{i}" Type="{REL_NS}/worksheet" Target="worksheets/sheet{i}.xml"/>'
        for i in range(1, len(sheets) + 1)
    )
    with zipfile.ZipFile(path, "w") as z:
        z.writestr("xl/workbook.xml", f'<workbook xmlns="{MAIN_NS}" xmlns:r="{REL_NS}"><sheets>{entries}</sheets></workbook>')
        z.writestr(
            "xl/_rels/workbook.xml.rels",
            f'<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">{rels}</Relationships>',
        )
        for i, rows in enumerate(sheets.values(), start=1):
            z.writestr(f"xl/worksheets/sheet{i}.xml", _sheet_xml(rows))


def test_load_xlsx_workbook(tmp_path: Path) -> None:
    path = tmp_path / "points.xlsx"
    write_xlsx(
        path,
        {
            "Temp": [
                ["PropertyName", "KeyName", "ValueAddress", "Type", "Length", "TriggerAddress", "ReturnAddress", "Period"],
                ["T1", "Temperature", "D100", "float", "", "", "", "1000"],
                [],
                ["Batch", "Batch no.", "D200", "int", "", "D300", "D301", "-5"],
            ],
            "IP_Port": [["Device", "IP", "Port"], ["Temp_M1", "10.0.0.1", "5020"]],
        },
    )
    devices, sheets = load_workbook(path)
    assert devices == [{"Device": "Temp_M1", "IP": "10.0.0.1", "Port": "5020"}]
    assert list(sheets) == ["Temp"]
    assert [r["PropertyName"] for r in sheets["Temp"]] == ["T1", "Batch"]

    config = validate_config(devices, sheets, 1)
    t1, batch = config.sheets[0].points
    assert t1.period == 1000.0
    assert (batch.trigger_address, batch.return_address, batch.period) == ("D300", "D301", -5.0)


def test_xlsx_shared_strings(tmp_path: Path) -> None:
    path = tmp_path / "points.xlsx"
    write_xlsx(path, {"IP_Port": [["Device", "IP"]]})
    sheet = (
        f'<worksheet xmlns="{MAIN_NS}"><sheetData>'
        '<row r="1"><c r="A1" t="s"><v>0</v></c><c r="B1" t="s"><v>1</v></c></row>'
        '<row r="2"><c r="A2" t="s"><v>2</v></c><c r="B2"><v>502</v></c></row>'
        "</sheetData></worksheet>"
    )
    strings = (
        f'<sst xmlns="{MAIN_NS}"><si><t>Device</t></si><si><t>Port</t></si>'
        "<si><r><t>Temp</t></r><r><t>_M1</t></r></si></sst>"
    )
    with zipfile.ZipFile(path, "a") as z:
        z.writestr("xl/sharedStrings.xml", strings)
    with zipfile.ZipFile(path) as z:
        parts = {n: z.read(n) for n in z.namelist()}
    parts["xl/worksheets/sheet1.xml"] = sheet.encode()
    with zipfile.ZipFile(path, "w") as z:
        for name, data in parts.items():
            z.writestr(name, data)

    devices, _ = load_workbook(path)
    assert devices == [{"Device": "Temp_M1", "Port": "502"}]


def test_xlsx_not_a_zip(tmp_path: Path) -> None:
    path = tmp_path / "points.xlsx"
    path.write_text("not a workbook", encoding="utf-8")
    with pytest.raises(ValueError):
        load_workbook(path)


def test_load_openpyxl_workbook(tmp_path: Path) -> None:
    path = tmp_path / "points.xlsx"
    wb = openpyxl.Workbook()
    devices_ws = wb.active
    devices_ws.title = "IP_Port"
    devices_ws.append(["Device", "IP", "Port"])
    devices_ws.append(["Temp_M1", "10.0.0.1", 5020])
    points_ws = wb.create_sheet("Temp")
    points_ws.append(["PropertyName", "KeyName", "ValueAddress", "Type", "Length", "TriggerAddress", "ReturnAddress", "Period"])
    points_ws.append(["T1", "Temperature", "D100", "float", None, None, None, 1000])
    points_ws.append([None, None, None, None, None, None, None, None])
    points_ws.append(["Recipe", "Recipe", "D120", "string", 4, None, None, 0.5])
    wb.save(path)

    devices, sheets = load_workbook(path)
    assert devices == [{"Device": "Temp_M1", "IP": "10.0.0.1", "Port": 5020}]
    assert [r["PropertyName"] for r in sheets["Temp"]] == ["T1", "Recipe"]

    config = validate_config(devices, sheets, 1)
    assert config.device("Temp_M1").port == 5020
    t1, recipe = config.sheets[0].points
    assert (t1.period, t1.length) == (1000.0, None)
    assert (recipe.length, recipe.period) == (4, 0.5)


def test_strict_reader_on_hand_built_workbook(tmp_path: Path) -> None:
    path = tmp_path / "points.xlsx"
    write_xlsx(path, {"IP_Port": [["Device", "IP"], ["Temp_M1", "10.0.0.1"]]})
    devices, sheets = load_strict_xlsx_workbook(path)
    assert devices == [{"Device": "Temp_M1", "IP": "10.0.0.1"}]
    assert sheets == {}
