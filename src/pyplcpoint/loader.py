"""Read raw workbook rows from an .xlsx file, a JSON file or a directory of CSV sheets. No validation here."""

import csv
import json
import logging
import zipfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

import openpyxl

from .validate import DEVICE_TABLE

logger = logging.getLogger(__name__)

RawRows = list[dict[str, Any]]

# Transitional and strict OOXML spell the relationship namespace differently.
_REL_NAMESPACES = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "http://purl.oclc.org/ooxml/officeDocument/relationships",
)


def _clean_row(row: dict[Any, Any]) -> dict[str, Any]:
    return {str(k).strip(): v for k, v in row.items() if k is not None}


def _split(tables: dict[str, RawRows]) -> tuple[RawRows | None, dict[str, RawRows]]:
    devices: RawRows | None = None
    sheets: dict[str, RawRows] = {}
    for name, rows in tables.items():
        name = name.strip()
        if name == DEVICE_TABLE:
            devices = rows
        else:
            sheets[name] = rows
    return devices, sheets


def load_json_workbook(path: Path) -> tuple[RawRows | None, dict[str, RawRows]]:
    """``{"IP_Port": [...], "<sheet>": [...]}``; sheet order is the file's key order."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected an object mapping sheet names to row lists")
    tables: dict[str, RawRows] = {}
    for name, rows in data.items():
        if not isinstance(rows, list):
            raise ValueError(f"{path}: sheet {name!r} must be a list of rows")
        tables[str(name)] = [_clean_row(r) for r in rows if isinstance(r, dict)]
    return _split(tables)


def load_csv_sheet(path: Path) -> RawRows:
    # utf-8-sig: spreadsheet exports usually carry a BOM
    with open(path, newline="", encoding="utf-8-sig") as f:
        return [_clean_row(row) for row in csv.DictReader(f)]


def load_csv_directory(path: Path) -> tuple[RawRows | None, dict[str, RawRows]]:
    """``IP_Port.csv`` plus one CSV per sheet; sheets are ordered by file name."""
    tables = {p.stem: load_csv_sheet(p) for p in sorted(path.glob("*.csv"))}
    return _split(tables)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, name: str) -> list[ET.Element]:
    return [c for c in elem.iter() if _local(c.tag) == name]


def _column(ref: str) -> str:
    """Column letters of a cell reference: 'AB12' -> 'AB'."""
    return "".join(c for c in ref if c.isalpha())


def _shared_strings(z: zipfile.ZipFile) -> list[str]:
    try:
        root = ET.fromstring(z.read("xl/sharedStrings.xml"))
    except KeyError:
        return []
    # rich text splits one string over several <t> runs
    return ["".join(t.text or "" for t in _children(si, "t")) for si in _children(root, "si")]


def _cell_value(cell: ET.Element, strings: list[str]) -> str:
    kind = cell.get("t")
    if kind == "inlineStr":
        return "".join(t.text or "" for t in _children(cell, "t"))
    v = next((c for c in cell if _local(c.tag) == "v"), None)
    text = v.text if v is not None and v.text is not None else ""
    if kind == "s" and text:
        try:
            return strings[int(text)]
        except (ValueError, IndexError):
            return ""
    return text


def _sheet_rows(sheet_xml: bytes, strings: list[str]) -> RawRows:
    """First row is the header; every later non-empty row becomes {header: cell text}."""
    rows = _children(ET.fromstring(sheet_xml), "row")
    if not rows:
        return []
    header = {_column(c.get("r", "")): _cell_value(c, strings).strip() for c in _children(rows[0], "c")}
    out: RawRows = []
    for row in rows[1:]:
        data: dict[str, Any] = {}
        for cell in _children(row, "c"):
            name = header.get(_column(cell.get("r", "")))
            if name:
                data[name] = _cell_value(cell, strings)
        if any(str(v).strip() for v in data.values()):
            out.append(data)
    return out


def load_strict_xlsx_workbook(path: Path) -> tuple[RawRows | None, dict[str, RawRows]]:
    """
    Read the workbook XML directly; cells come back as text. Handles strict
    OOXML files that openpyxl loads without any sheets.
    """
    tables: dict[str, RawRows] = {}
    try:
        z = zipfile.ZipFile(path)
    except zipfile.BadZipFile as e:
        raise ValueError(f"{path}: not an .xlsx workbook") from e

    with z:
        try:
            rels = ET.fromstring(z.read("xl/_rels/workbook.xml.rels"))
            book = ET.fromstring(z.read("xl/workbook.xml"))
        except KeyError as e:
            raise ValueError(f"{path}: workbook part missing ({e})") from e
        strings = _shared_strings(z)

        rid_to_file: dict[str, str] = {}
        for rel in _children(rels, "Relationship"):
            target = rel.get("Target", "")
            if "worksheets/" in target:
                rid_to_file[rel.get("Id", "")] = "xl/worksheets/" + target.split("/")[-1]

        for sheet in _children(book, "sheet"):
            name = sheet.get("name")
            rid = next((sheet.get(f"{{{ns}}}id") for ns in _REL_NAMESPACES if sheet.get(f"{{{ns}}}id")), None)
            if not name or rid not in rid_to_file:
                continue
            try:
                sheet_xml = z.read(rid_to_file[rid])
            except KeyError:
                logger.warning("%s: worksheet %s for sheet %r is missing", path, rid_to_file[rid], name)
                continue
            tables[name] = [_clean_row(r) for r in _sheet_rows(sheet_xml, strings)]
    return _split(tables)


def _worksheet_rows(ws: Any) -> RawRows:
    rows = ws.iter_rows(values_only=True)
    header = [str(c).strip() if c is not None else "" for c in next(rows, ())]
    out: RawRows = []
    for values in rows:
        data = {h: v for h, v in zip(header, values) if h and v is not None}
        if any(str(v).strip() for v in data.values()):
            out.append(data)
    return out


def load_xlsx_workbook(path: Path) -> tuple[RawRows | None, dict[str, RawRows]]:
    """One table per worksheet, in workbook tab order; first row is the header."""
    try:
        wb = openpyxl.load_workbook(str(path), read_only=True, data_only=True)
    except Exception as e:
        logger.debug("openpyxl cannot open %s (%s); reading the workbook XML directly", path, e)
        return load_strict_xlsx_workbook(path)
    try:
        if not wb.worksheets:
            logger.debug("openpyxl found no sheets in %s; reading the workbook XML directly", path)
            return load_strict_xlsx_workbook(path)
        tables = {ws.title: [_clean_row(r) for r in _worksheet_rows(ws)] for ws in wb.worksheets}
    finally:
        wb.close()
    return _split(tables)


def load_workbook(path: str | Path) -> tuple[RawRows | None, dict[str, RawRows]]:
    """Return (device rows or None when the device table is absent, {sheet: rows})."""
    p = Path(path)
    if p.is_dir():
        devices, sheets = load_csv_directory(p)
    elif p.is_file() and p.suffix.lower() in (".xlsx", ".xlsm"):
        devices, sheets = load_xlsx_workbook(p)
    elif p.is_file():
        devices, sheets = load_json_workbook(p)
    else:
        raise FileNotFoundError(f"Workbook not found: {p}")
    logger.debug("Loaded %s: device table %s, %d sheets", p, "present" if devices is not None else "missing", len(sheets))
    return devices, sheets
