"""Task classifier: turn period groups into monitor / periodic / change / handshake descriptors."""

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from .types import (
    BuildOptions,
    HandshakeProtocol,
    ModuleSheet,
    PeriodGroup,
    ProgramIR,
    StorageColumn,
    StorageTable,
    TaskDescriptor,
    TaskKind,
    ValidatedConfig,
    format_period,
)

logger = logging.getLogger(__name__)


def storage_name(sheet: str, period: float) -> str:
    """Storage table / class identifier: ``{sheet}_PeriodAbs_{|period|}`` with '.' -> '_'."""
    return f"{sheet}_PeriodAbs_{format_period(abs(period)).replace('.', '_')}"


def _round(value: float) -> int:
    # half away from zero; values here are never negative
    return int(math.floor(value + 0.5))


def classify_period(period: float) -> TaskKind:
    if period == 0:
        return TaskKind.MONITOR
    if period < 0:
        return TaskKind.HANDSHAKE
    if period < 1:
        return TaskKind.CHANGE
    return TaskKind.PERIODIC


def timing_ms(period: float) -> int:
    """
    Tick interval in ms. Periodic groups give milliseconds directly; change
    groups (0 < p < 1) and handshake groups (p < 0) give seconds.
    """
    kind = classify_period(period)
    if kind in (TaskKind.CHANGE, TaskKind.HANDSHAKE):
        return _round(abs(period) * 1000)
    return _round(period)


def monitor_tasks(unit: ModuleSheet, interval_ms: int = 1000) -> list[TaskDescriptor]:
    """One live-display task per point, independent of any period grouping."""
    return [
        TaskDescriptor(
            kind=TaskKind.MONITOR,
            name=f"Monitor_{tag.name}",
            sheet=unit.sheet,
            module=unit.module,
            group_key=tag.name,
            timing_ms=interval_ms,
            tags=(tag,),
        )
        for tag in unit.tags
    ]


def classify_group(group: PeriodGroup, options: BuildOptions | None = None) -> TaskDescriptor:
    options = options or BuildOptions()
    kind = classify_period(group.period)
    prefix = f"{group.sheet}_M{group.module}"
    if kind == TaskKind.MONITOR:
        raise ValueError(f"Period 0 points of {prefix} are monitor-only and have no group task")

    if kind == TaskKind.HANDSHAKE:
        trigger = group.trigger_address or "0"
        return_address = group.return_address or "0"
        return TaskDescriptor(
            kind=kind,
            name=f"{prefix}_Handshake_T{trigger}",
            sheet=group.sheet,
            module=group.module,
            group_key=group.group_key,
            timing_ms=timing_ms(group.period),
            tags=group.tags,
            storage_name=storage_name(group.sheet, group.period),
            trigger_address=trigger,
            return_address=return_address,
            handshake=HandshakeProtocol(
                trigger_address=trigger,
                return_address=return_address,
                timeout_ms=options.handshake_timeout_ms,
                poll_ms=options.handshake_poll_ms,
            ),
        )

    return TaskDescriptor(
        kind=kind,
        name=f"{prefix}_Period_{format_period(group.period)}",
        sheet=group.sheet,
        module=group.module,
        group_key=group.group_key,
        timing_ms=timing_ms(group.period),
        tags=group.tags,
        storage_name=storage_name(group.sheet, group.period),
    )


def classify_tasks(ir: ProgramIR, options: BuildOptions | None = None) -> list[TaskDescriptor]:
    """All monitor tasks first, then one task per period group; both in IR order."""
    options = options or BuildOptions()
    tasks: list[TaskDescriptor] = []
    for unit in ir.units:
        tasks.extend(monitor_tasks(unit, options.monitor_interval_ms))
    names = {t.name for t in tasks}
    for unit in ir.units:
        for group in unit.period_groups:
            task = classify_group(group, options)
            if task.name in names:
                # blank triggers all normalize to "0"; tell those groups apart by period
                renamed = f"{task.name}_P{format_period(abs(group.period)).replace('.', '_')}"
                logger.warning(
                    "Task name %s is already used; group %s renamed to %s", task.name, group.group_key, renamed
                )
                task = replace(task, name=renamed)
            names.add(task.name)
            tasks.append(task)
    logger.debug("Classified %d tasks", len(tasks))
    return tasks


def storage_tables(config: ValidatedConfig) -> list[StorageTable]:
    """
    Persistence schema, one table per sheet and distinct |period|.

    Module-independent (rows carry ModuleNum). When -5 and 5 both occur in a
    sheet they share a name and the first group seen defines the columns.
    """
    tables: dict[str, StorageTable] = {}
    for sheet in config.sheets:
        by_period: dict[float, list[StorageColumn]] = {}
        for p in sheet.points:
            if p.period == 0:
                continue
            by_period.setdefault(p.period, []).append(
                StorageColumn(
                    property_name=p.property_name,
                    display_name=p.display_name,
                    type_name=str(p.point_type),
                    is_json=p.point_type.is_array,
                )
            )
        for period, columns in by_period.items():
            name = storage_name(sheet.name, period)
            if name in tables:
                logger.warning("Storage table %s already defined; group with period %s dropped", name, period)
                continue
            tables[name] = StorageTable(name=name, sheet=sheet.name, period=period, columns=tuple(columns))
    return list(tables.values())


def has_changed(previous: Mapping[str, Any] | None, current: Mapping[str, Any]) -> bool:
    """
    Change-log rule: store when there is no previous snapshot or any field
    differs. Sequence fields compare element by element.
    """
    if previous is None:
        return True
    if previous.keys() != current.keys():
        return True
    for key, value in current.items():
        old = previous[key]
        if isinstance(value, Sequence) and not isinstance(value, str):
            if not isinstance(old, Sequence) or isinstance(old, str) or list(old) != list(value):
                return True
        elif old != value:
            return True
    return False
