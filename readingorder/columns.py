"""
Column Segmenter
================
Greedy left-to-right bucketing of blocks into columns.

Blocks are scanned by ascending left edge. A block whose left edge lies
beyond the current column's right edge opens a new column; everything
else joins the current one. Each column is then read top to bottom.
Correct as long as columns do not interleave horizontally.
"""

from __future__ import annotations

from .models import BlockRole, TextBlock


def split_columns(blocks: list[TextBlock]) -> list[list[TextBlock]]:
    """
    Partition blocks into columns, each sorted by ascending top.

    Titles never open a column: they may sit inside any column's x-range.
    Sets `column_index` on every block.
    """
    columns: list[list[TextBlock]] = []
    current: list[TextBlock] = []
    column_right_edge = 0.0

    for block in sorted(blocks, key=lambda b: b.quad.left):
        if block.role != BlockRole.TITLE and block.quad.left > column_right_edge:
            if current:
                columns.append(sorted(current, key=lambda b: b.quad.top))
            current = [block]
            column_right_edge = block.quad.top_right_x
        else:
            current.append(block)

    if current:
        columns.append(sorted(current, key=lambda b: b.quad.top))

    for index, column in enumerate(columns):
        for block in column:
            block.column_index = index
    return columns


def segment_columns(blocks: list[TextBlock]) -> list[TextBlock]:
    """Flatten `split_columns` into a single reading-order sequence."""
    return [block for column in split_columns(blocks) for block in column]
