"""
Table-Collision Filter
======================
Layout extraction re-emits the text of table cells as free-standing
paragraphs. Such a paragraph shares its exact geometry with the cell,
so a four-edge match identifies the duplicate.
"""

from __future__ import annotations

import logging

from .geometry import exact_match
from .models import Table, TextBlock

logger = logging.getLogger(__name__)


def remove_table_collisions(
    blocks: list[TextBlock],
    tables: list[Table],
    tolerance: float = 0.0,
) -> list[TextBlock]:
    """
    Return `blocks` without those whose quad matches a table cell.

    Args:
        blocks: Text blocks of one page (all with geometry).
        tables: Tables detected on the same page.
        tolerance: Per-edge tolerance; 0 means exact equality.

    Returns:
        The surviving blocks, in their original order.
    """
    cells = [cell for table in tables for cell in table.cells]
    if not cells:
        return list(blocks)

    kept: list[TextBlock] = []
    for block in blocks:
        if any(exact_match(block.quad, cell, tolerance) for cell in cells):
            logger.debug(f"Dropping table cell duplicate: {block.content[:40]!r}")
            continue
        kept.append(block)

    removed = len(blocks) - len(kept)
    if removed:
        logger.debug(f"Removed {removed} table cell duplicates")
    return kept
