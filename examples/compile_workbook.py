#!/usr/bin/env python3
"""Example: compile a point workbook and print its read plan and tasks."""

import sys
from pathlib import Path

from pyplcpoint import BuildOptions, ConfigError, compile_config, load_workbook
from pyplcpoint.compiler import block_task_name


def main() -> None:
    source = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(__file__).with_name("points.json")
    options = BuildOptions(max_modules=2, byte_order="CDAB")

    try:
        devices, sheets = load_workbook(source)
        result = compile_config(devices, sheets, options)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except (ValueError, FileNotFoundError) as e:
        print(f"Cannot read {source}: {e}", file=sys.stderr)
        sys.exit(1)

    for service in result.services:
        print(f"{service.service_name}: {service.ip}:{service.port}")

    # One batched read per block
    for (sheet, module, table), blocks in result.request_blocks.items():
        for i, block in enumerate(blocks):
            names = ", ".join(t.name for t in block.tags)
            print(f"{block_task_name(sheet, module, table, i)}: {block.start_address}+{block.length} [{names}]")

    for task in result.tasks:
        if task.storage_name:
            print(f"{task.kind.value}: {task.name} every {task.timing_ms} ms -> {task.storage_name}")


if __name__ == "__main__":
    main()
