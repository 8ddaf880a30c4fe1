"""One-call build: validate -> IR -> request blocks + task descriptors + schema, and its JSON form."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .builder import build_ir
from .optimizer import plan_requests
from .tasks import classify_tasks, storage_tables
from .types import (
    BuildOptions,
    ModbusTable,
    ProgramIR,
    RequestBlock,
    ServiceBinding,
    StorageTable,
    Tag,
    TaskDescriptor,
    format_period,
)
from .validate import Row, validate_config

logger = logging.getLogger(__name__)

BlockKey = tuple[str, int, ModbusTable]


def block_task_name(sheet: str, module: int, table: ModbusTable, index: int) -> str:
    kind = "Coils" if table == ModbusTable.COIL else "Regs"
    return f"{sheet}_M{module}_{kind}_{index}"


@dataclass(frozen=True)
class CompileResult:
    """Everything the artifact emitters consume for one configuration snapshot."""

    options: BuildOptions
    ir: ProgramIR
    request_blocks: dict[BlockKey, list[RequestBlock]]
    tasks: list[TaskDescriptor]
    storage_tables: list[StorageTable]
    services: list[ServiceBinding]
    ui_bindings: list[tuple[str, str]]

    def blocks_for(self, sheet: str, module: int, table: ModbusTable | None = None) -> list[RequestBlock]:
        out: list[RequestBlock] = []
        for (s, m, t), blocks in self.request_blocks.items():
            if s == sheet and m == module and (table is None or t == table):
                out.extend(blocks)
        return out


def service_bindings(ir: ProgramIR) -> list[ServiceBinding]:
    return [
        ServiceBinding(
            service_name=f"_{u.module}{u.sheet}",
            device_name=u.device.name,
            sheet=u.sheet,
            module=u.module,
            ip=u.device.ip,
            port=u.device.port,
        )
        for u in ir.units
    ]


def ui_bindings(ir: ProgramIR) -> list[tuple[str, str]]:
    """("Current{property}", "{property}_M") pairs; the UI appends the selected module index."""
    return [
        (f"Current{p.property_name}", f"{p.property_name}_M")
        for sheet in ir.config.sheets
        for p in sheet.points
    ]


def compile_config(
    device_rows: Sequence[Row] | None,
    sheet_rows: Mapping[str, Sequence[Row]],
    options: BuildOptions | None = None,
) -> CompileResult:
    """Full, deterministic rebuild of every derived structure from one configuration snapshot."""
    options = options or BuildOptions()
    config = validate_config(device_rows, sheet_rows, options.max_modules)
    ir = build_ir(config)

    request_blocks: dict[BlockKey, list[RequestBlock]] = {}
    for unit in ir.units:
        plan = plan_requests(unit.tags, options.max_gap, options.max_batch_size)
        for table, blocks in plan.items():
            request_blocks[(unit.sheet, unit.module, table)] = blocks

    result = CompileResult(
        options=options,
        ir=ir,
        request_blocks=request_blocks,
        tasks=classify_tasks(ir, options),
        storage_tables=storage_tables(config),
        services=service_bindings(ir),
        ui_bindings=ui_bindings(ir),
    )
    logger.debug(
        "Compiled %d units: %d request blocks, %d tasks, %d storage tables",
        len(ir.units),
        sum(len(b) for b in request_blocks.values()),
        len(result.tasks),
        len(result.storage_tables),
    )
    return result


def _tag_dict(tag: Tag) -> dict[str, Any]:
    return {
        "name": tag.name,
        "property": tag.property_name,
        "address": tag.address,
        "register_length": tag.register_length,
        "type": str(tag.point_type),
        "table": tag.table.value,
        "array_length": tag.array_length,
    }


def _block_dict(key: BlockKey, index: int, block: RequestBlock) -> dict[str, Any]:
    sheet, module, table = key
    return {
        "task": block_task_name(sheet, module, table, index),
        "sheet": sheet,
        "module": module,
        "table": table.value,
        "start_address": block.start_address,
        "length": block.length,
        "bindings": [
            {
                "name": b.name,
                "offset": b.offset,
                "type": b.type_name,
                "register_length": b.register_length,
                "array_length": b.array_length,
            }
            for b in block.bindings()
        ],
    }


def task_dict(task: TaskDescriptor) -> dict[str, Any]:
    out: dict[str, Any] = {
        "kind": task.kind.value,
        "name": task.name,
        "sheet": task.sheet,
        "module": task.module,
        "group_key": task.group_key,
        "timing_ms": task.timing_ms,
        "tags": [t.name for t in task.tags],
    }
    if task.storage_name is not None:
        out["storage"] = task.storage_name
    if task.handshake is not None:
        hs = task.handshake
        out["handshake"] = {
            "trigger_address": hs.trigger_address,
            "return_address": hs.return_address,
            "trigger_value": hs.trigger_value,
            "ack_value": hs.ack_value,
            "reset_value": hs.reset_value,
            "timeout_ms": hs.timeout_ms,
            "poll_ms": hs.poll_ms,
        }
    return out


def to_dict(result: CompileResult) -> dict[str, Any]:
    """JSON-ready document of a compile result; key and list order are deterministic."""
    opts = result.options
    return {
        "options": {
            "max_modules": opts.max_modules,
            "max_gap": opts.max_gap,
            "max_batch_size": opts.max_batch_size,
            "byte_order": opts.byte_order.value,
            "string_byte_order": opts.string_byte_order.value,
            "monitor_interval_ms": opts.monitor_interval_ms,
        },
        "services": [
            {
                "service": s.service_name,
                "device": s.device_name,
                "sheet": s.sheet,
                "module": s.module,
                "ip": s.ip,
                "port": s.port,
            }
            for s in result.services
        ],
        "units": [
            {
                "sheet": u.sheet,
                "module": u.module,
                "device": u.device_name,
                "tags": [_tag_dict(t) for t in u.tags],
                "groups": [
                    {
                        "key": g.group_key,
                        "period": format_period(g.period),
                        "trigger_address": g.trigger_address,
                        "return_address": g.return_address,
                        "tags": [t.name for t in g.tags],
                    }
                    for g in u.period_groups
                ],
            }
            for u in result.ir.units
        ],
        "request_blocks": [
            _block_dict(key, i, block)
            for key, blocks in result.request_blocks.items()
            for i, block in enumerate(blocks)
        ],
        "tasks": [task_dict(t) for t in result.tasks],
        "storage_tables": [
            {
                "name": t.name,
                "sheet": t.sheet,
                "period": format_period(t.period),
                "columns": [
                    {
                        "property": c.property_name,
                        "description": c.display_name,
                        "type": c.type_name,
                        "json": c.is_json,
                    }
                    for c in t.columns
                ],
            }
            for t in result.storage_tables
        ],
        "ui_bindings": [{"name": ui, "prefix": prefix} for ui, prefix in result.ui_bindings],
    }
