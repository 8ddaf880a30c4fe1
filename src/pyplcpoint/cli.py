#!/usr/bin/env python3
"""Command-line front end for pyplcpoint using Typer."""

import json
import logging
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .codec import decode_value
from .compiler import CompileResult, block_task_name, compile_config, task_dict, to_dict
from .errors import ConfigError, DecodeError
from .loader import load_workbook
from .normalize import array_length, normalize_address, parse_point_type, register_length
from .types import BuildOptions, ByteOrder, StringByteOrder, TaskKind
from .validate import validate_config

app = typer.Typer(
    name="pyplcpoint",
    help="Compile PLC point tables into request blocks, task descriptors and storage schema.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

SourceArgument = Annotated[
    Path,
    typer.Argument(help="Workbook: .xlsx, JSON file or directory of CSV sheets (IP_Port.csv + one per sheet)"),
]
MaxModulesOption = Annotated[
    int,
    typer.Option("--max-modules", "-m", help="Number of modules every sheet is instantiated for", envvar="PYPLCPOINT_MAX_MODULES"),
]
MaxGapOption = Annotated[
    int,
    typer.Option("--max-gap", help="Largest address gap merged into one read", envvar="PYPLCPOINT_MAX_GAP"),
]
MaxBatchOption = Annotated[
    int,
    typer.Option("--max-batch-size", help="Largest register span of one read", envvar="PYPLCPOINT_MAX_BATCH_SIZE"),
]
ByteOrderOption = Annotated[
    str,
    typer.Option("--byte-order", "-b", help="32-bit layout: ABCD, CDAB, BADC or DCBA", envvar="PYPLCPOINT_BYTE_ORDER"),
]
StringOrderOption = Annotated[
    str,
    typer.Option("--string-byte-order", help="String byte order: ABCD or BADC", envvar="PYPLCPOINT_STRING_BYTE_ORDER"),
]
MonitorOption = Annotated[
    int,
    typer.Option("--monitor-interval", help="Monitor task interval in ms", envvar="PYPLCPOINT_MONITOR_INTERVAL"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def fail(e: BaseException, verbose: bool = False) -> NoReturn:
    """Report an error on stderr and exit: 2 config/usage, 3 decode, 4 unexpected."""
    if isinstance(e, (ConfigError, ValueError, FileNotFoundError)):
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    if isinstance(e, DecodeError):
        typer.echo(f"Error: Decode error: {e}", err=True)
        raise typer.Exit(3)
    typer.echo(f"Error: Unexpected error: {e}", err=True)
    if verbose:
        import traceback
        traceback.print_exception(e)
    raise typer.Exit(4)


def make_options(
    max_modules: int,
    max_gap: int,
    max_batch_size: int,
    byte_order: str,
    string_byte_order: str,
    monitor_interval: int = 1000,
) -> BuildOptions:
    return BuildOptions(
        max_modules=max_modules,
        max_gap=max_gap,
        max_batch_size=max_batch_size,
        byte_order=ByteOrder(byte_order.strip().upper()),
        string_byte_order=StringByteOrder(string_byte_order.strip().upper()),
        monitor_interval_ms=monitor_interval,
    )


def compile_source(source: Path, options: BuildOptions) -> CompileResult:
    devices, sheets = load_workbook(source)
    return compile_config(devices, sheets, options)


def parse_word(value: str) -> int:
    """Parse one 16-bit register word: decimal or 0x hex."""
    v = value.strip()
    num = int(v, 16) if v.lower().startswith("0x") else int(v)
    if not (0 <= num <= 0xFFFF):
        raise ValueError(f"Register word out of range 0..65535: {value!r}")
    return num


def format_decoded(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, list):
        return "[" + ", ".join(format_decoded(v) for v in value) + "]"
    return str(value)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def validate(
    source: SourceArgument,
    max_modules: MaxModulesOption = 1,
    verbose: VerboseOption = False,
) -> None:
    """
    Check a workbook: device table, unique IPs and property names,
    trigger/period consistency and one device per sheet and module.
    """
    setup_logging(verbose)
    try:
        devices, sheets = load_workbook(source)
        config = validate_config(devices, sheets, max_modules)
    except Exception as e:
        fail(e, verbose)
    points = sum(len(s.points) for s in config.sheets)
    typer.echo(f"OK: {len(config.devices)} devices, {len(config.sheets)} sheets, {points} points")


@app.command()
def build(
    source: SourceArgument,
    max_modules: MaxModulesOption = 1,
    max_gap: MaxGapOption = 20,
    max_batch_size: MaxBatchOption = 100,
    byte_order: ByteOrderOption = "ABCD",
    string_byte_order: StringOrderOption = "BADC",
    monitor_interval: MonitorOption = 1000,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write the JSON document to this file")] = None,
) -> None:
    """
    Run the whole pipeline and print a summary, or the full JSON document
    with --json / --output.
    """
    setup_logging(verbose)
    try:
        options = make_options(max_modules, max_gap, max_batch_size, byte_order, string_byte_order, monitor_interval)
        result = compile_source(source, options)
    except Exception as e:
        fail(e, verbose)

    if output is not None:
        output.write_text(json.dumps(to_dict(result), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        typer.echo(f"OK: Wrote {output}")
        return
    if json_output:
        typer.echo(json.dumps(to_dict(result), indent=2, ensure_ascii=False))
        return

    for unit in result.ir.units:
        unit_blocks = result.blocks_for(unit.sheet, unit.module)
        unit_tasks = [t for t in result.tasks if t.sheet == unit.sheet and t.module == unit.module]
        typer.echo(
            f"{unit.sheet} M{unit.module} -> {unit.device.ip}:{unit.device.port}: "
            f"{len(unit.tags)} tags, {len(unit_blocks)} blocks, {len(unit_tasks)} tasks"
        )
    typer.echo(f"Storage tables: {', '.join(t.name for t in result.storage_tables) or '-'}")


@app.command()
def blocks(
    source: SourceArgument,
    max_modules: MaxModulesOption = 1,
    max_gap: MaxGapOption = 20,
    max_batch_size: MaxBatchOption = 100,
    sheet: Annotated[Optional[str], typer.Option("--sheet", "-s", help="Only this sheet")] = None,
    module: Annotated[Optional[int], typer.Option("--module", help="Only this module")] = None,
    verbose: VerboseOption = False,
) -> None:
    """Show the batched read requests per sheet, module and table."""
    setup_logging(verbose)
    try:
        options = make_options(max_modules, max_gap, max_batch_size, "ABCD", "BADC")
        result = compile_source(source, options)
    except Exception as e:
        fail(e, verbose)

    for (s, m, table), table_blocks in result.request_blocks.items():
        if sheet is not None and s != sheet:
            continue
        if module is not None and m != module:
            continue
        for i, block in enumerate(table_blocks):
            names = ",".join(f"{b.name}@{b.offset}" for b in block.bindings())
            typer.echo(
                f"{block_task_name(s, m, table, i)} start={block.start_address} length={block.length} tags={names}"
            )


@app.command()
def tasks(
    source: SourceArgument,
    max_modules: MaxModulesOption = 1,
    monitor_interval: MonitorOption = 1000,
    include_monitors: Annotated[bool, typer.Option("--monitors/--no-monitors", help="Include per-point monitor tasks")] = True,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """List task descriptors: kind, name, timing and storage table."""
    setup_logging(verbose)
    try:
        options = make_options(max_modules, 20, 100, "ABCD", "BADC", monitor_interval)
        result = compile_source(source, options)
    except Exception as e:
        fail(e, verbose)

    selected = [t for t in result.tasks if include_monitors or t.kind != TaskKind.MONITOR]
    if json_output:
        typer.echo(json.dumps([task_dict(t) for t in selected], indent=2))
        return
    for t in selected:
        extra = f" -> {t.storage_name}" if t.storage_name else ""
        if t.handshake is not None:
            extra += f" (trigger {t.trigger_address}, return {t.return_address})"
        typer.echo(f"{t.kind.value:<9} {t.name} every {t.timing_ms} ms{extra}")


@app.command()
def decode(
    type_name: Annotated[str, typer.Argument(metavar="TYPE", help="bool, short, int, float, string or an array such as float[]")],
    words: Annotated[list[str], typer.Argument(help="Register words (decimal or 0x hex); bits for bool types")],
    offset: Annotated[int, typer.Option("--offset", help="Offset of the value in WORDS")] = 0,
    length: Annotated[Optional[int], typer.Option("--length", "-l", help="String registers or array elements")] = None,
    byte_order: ByteOrderOption = "ABCD",
    string_byte_order: StringOrderOption = "BADC",
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Decode literal register words the way generated readers do.

    Example: pyplcpoint decode int 0x5678 0x1234 --byte-order CDAB
    """
    setup_logging(verbose)
    try:
        point_type = parse_point_type(type_name)
        data = [parse_word(w) for w in words]
        value = decode_value(
            data,
            offset,
            point_type,
            register_length=register_length(point_type, length),
            array_length=array_length(point_type, length),
            byte_order=ByteOrder(byte_order.strip().upper()),
            string_byte_order=StringByteOrder(string_byte_order.strip().upper()),
        )
    except Exception as e:
        fail(e, verbose)

    if json_output:
        typer.echo(json.dumps({"type": str(point_type), "value": value}))
    else:
        typer.echo(format_decoded(value))


@app.command()
def normalize(
    address: Annotated[str, typer.Argument(help="Address as written in the table (e.g. D200, d0007)")],
    json_output: JsonOption = False,
) -> None:
    """Show the normalized register form of an address."""
    normalized = normalize_address(address)
    if json_output:
        typer.echo(json.dumps({"address": address, "normalized": normalized}))
    else:
        typer.echo(normalized)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pyplcpoint {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """pyplcpoint - compile PLC point tables for generated monitoring applications."""
    pass


if __name__ == "__main__":
    app()
