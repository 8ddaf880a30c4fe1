"""IR builder: instantiate every sheet per module, derive tags, group points by period and trigger."""

import logging

from .normalize import address_to_int, array_length, normalize_address, register_length
from .types import ModuleSheet, PeriodGroup, PointDefinition, ProgramIR, SheetGroup, Tag, ValidatedConfig
from .validate import device_name_for

logger = logging.getLogger(__name__)


def tag_name(property_name: str, module: int) -> str:
    """Module-qualified point identifier used by every generated artifact."""
    return f"{property_name}_M{module}"


def make_tag(point: PointDefinition, module: int) -> Tag:
    return Tag(
        name=tag_name(point.property_name, module),
        property_name=point.property_name,
        address=address_to_int(point.address),
        register_length=register_length(point.point_type, point.length),
        point_type=point.point_type,
        array_length=array_length(point.point_type, point.length),
    )


def group_by_period(sheet: SheetGroup, module: int, tags: tuple[Tag, ...]) -> tuple[PeriodGroup, ...]:
    """
    Period groups for one sheet/module, in first-seen order.

    Period 0 points are live-only and get no group. Negative periods are split
    again by normalized trigger address; the first point of each trigger group
    supplies its return address.
    """
    by_period: dict[float, list[tuple[PointDefinition, Tag]]] = {}
    for point, tag in zip(sheet.points, tags):
        if point.period == 0:
            continue
        by_period.setdefault(point.period, []).append((point, tag))

    groups: list[PeriodGroup] = []
    for period, members in by_period.items():
        if period > 0:
            groups.append(PeriodGroup(sheet.name, module, period, tuple(t for _, t in members)))
            continue

        by_trigger: dict[str, list[tuple[PointDefinition, Tag]]] = {}
        for point, tag in members:
            by_trigger.setdefault(normalize_address(point.trigger_address), []).append((point, tag))
        for trigger, trigger_members in by_trigger.items():
            returns = {normalize_address(p.return_address) for p, _ in trigger_members}
            return_address = normalize_address(trigger_members[0][0].return_address)
            if len(returns) > 1:
                logger.warning(
                    "Sheet %s trigger %s: points disagree on return address %s; using %s",
                    sheet.name,
                    trigger,
                    sorted(returns),
                    return_address,
                )
            groups.append(
                PeriodGroup(
                    sheet.name,
                    module,
                    period,
                    tuple(t for _, t in trigger_members),
                    trigger_address=trigger,
                    return_address=return_address,
                )
            )
    return tuple(groups)


def build_ir(config: ValidatedConfig) -> ProgramIR:
    """Build the full IR from a validated configuration; modules outer, sheets inner."""
    units: list[ModuleSheet] = []
    for module in range(1, config.max_modules + 1):
        for sheet in config.sheets:
            name = device_name_for(sheet.name, module)
            device = config.device(name)
            if device is None:
                # validate_config guarantees the mapping; reaching here means it was skipped.
                raise KeyError(f"No device {name!r} for sheet {sheet.name!r} module {module}")
            tags = tuple(make_tag(p, module) for p in sheet.points)
            units.append(
                ModuleSheet(
                    sheet=sheet.name,
                    module=module,
                    device=device,
                    tags=tags,
                    period_groups=group_by_period(sheet, module, tags),
                )
            )
    logger.debug(
        "Built IR: %d sheets x %d modules, %d tags",
        len(config.sheets),
        config.max_modules,
        sum(len(u.tags) for u in units),
    )
    return ProgramIR(config=config, units=tuple(units))
