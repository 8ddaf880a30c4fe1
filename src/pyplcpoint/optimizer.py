"""Merge scattered tag addresses into batched read requests (greedy, left to right)."""

import logging
from collections.abc import Iterable

from .types import ModbusTable, RequestBlock, Tag

logger = logging.getLogger(__name__)

DEFAULT_MAX_GAP = 20
DEFAULT_MAX_BATCH_SIZE = 100


def optimize_requests(
    tags: Iterable[Tag],
    max_gap: int = DEFAULT_MAX_GAP,
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
) -> list[RequestBlock]:
    """
    Group tags of one table into request blocks.

    Tags are visited in ascending address order (ties keep input order). A tag
    joins the current block when the gap after the block is <= max_gap and the
    grown block still spans <= max_batch_size; overlaps always qualify on gap.
    A tag wider than max_batch_size is never split and becomes its own block.
    """
    ordered = sorted(tags, key=lambda t: t.address)
    if not ordered:
        return []
    tables = {t.table for t in ordered}
    if len(tables) > 1:
        raise ValueError("Coil and register tags must be optimized separately")
    table = ordered[0].table

    blocks: list[RequestBlock] = []
    start = ordered[0].address
    length = ordered[0].register_length
    group: list[Tag] = [ordered[0]]

    for tag in ordered[1:]:
        gap = tag.address - (start + length)
        candidate = max(length, tag.end - start)
        if gap <= max_gap and candidate <= max_batch_size:
            length = candidate
            group.append(tag)
        else:
            blocks.append(RequestBlock(table, start, length, tuple(group)))
            start = tag.address
            length = tag.register_length
            group = [tag]
    blocks.append(RequestBlock(table, start, length, tuple(group)))

    for block in blocks:
        if block.length > max_batch_size:
            logger.warning(
                "Block at %s spans %d %s, above max batch size %d (single tag %s)",
                block.start_address,
                block.length,
                "coils" if table == ModbusTable.COIL else "registers",
                max_batch_size,
                block.tags[0].name,
            )
    logger.debug("Optimized %d %s tags into %d blocks", len(ordered), table.value, len(blocks))
    return blocks


def plan_requests(
    tags: Iterable[Tag],
    max_gap: int = DEFAULT_MAX_GAP,
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
) -> dict[ModbusTable, list[RequestBlock]]:
    """Split tags by table (coils, then registers) and optimize each table on its own."""
    by_table: dict[ModbusTable, list[Tag]] = {table: [] for table in ModbusTable}
    for tag in tags:
        by_table[tag.table].append(tag)
    return {
        table: optimize_requests(table_tags, max_gap, max_batch_size)
        for table, table_tags in by_table.items()
        if table_tags
    }
