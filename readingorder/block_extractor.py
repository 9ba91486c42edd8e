"""
Block Extractor
===============
Turns a raw layout-analysis result (the JSON returned by the layout
service and stored in the page cache) into TextBlocks and Tables.
Normalizes polygons to page-relative [0, 1] coordinates.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .models import BlockRole, BoundingQuad, Point, Table, TextBlock

logger = logging.getLogger(__name__)


class BlockExtractor:
    """
    Handles layout ingestion and low-level block extraction.

    Extracts:
        - Paragraphs with role, content and bounding quad
        - Table cells as bounding quads (for collision filtering)

    Paragraphs without a usable bounding region cannot be placed on the
    page and are dropped here, before any geometry runs.
    """

    def extract(self, raw: dict[str, Any]) -> tuple[list[TextBlock], list[Table]]:
        """
        Extract blocks and tables from a layout result.

        Args:
            raw: Layout result, either bare or wrapped in {"analyzeResult": ...}.

        Returns:
            (blocks in service order, tables)
        """
        analyzed = raw.get("analyzeResult", raw) if raw else {}
        page_sizes = self._page_sizes(analyzed)

        blocks: list[TextBlock] = []
        dropped = 0
        for paragraph in analyzed.get("paragraphs") or []:
            quad = self._quad_from_regions(
                paragraph.get("boundingRegions"), page_sizes
            )
            if quad is None:
                dropped += 1
                continue
            blocks.append(TextBlock(
                role=BlockRole.from_wire(paragraph.get("role")),
                content=paragraph.get("content") or "",
                quad=quad,
            ))

        if dropped:
            logger.debug(f"Dropped {dropped} paragraphs without bounding region")

        tables: list[Table] = []
        for raw_table in analyzed.get("tables") or []:
            cells = []
            for cell in raw_table.get("cells") or []:
                quad = self._quad_from_regions(
                    cell.get("boundingRegions"), page_sizes
                )
                if quad is not None:
                    cells.append(quad)
            tables.append(Table(cells=cells))

        return blocks, tables

    def _page_sizes(self, analyzed: dict) -> dict[int, tuple[float, float]]:
        """Map page number -> (width, height) for pages that declare a size."""
        sizes: dict[int, tuple[float, float]] = {}
        for idx, page in enumerate(analyzed.get("pages") or []):
            width = page.get("width")
            height = page.get("height")
            if width and height:
                sizes[page.get("pageNumber", idx + 1)] = (float(width), float(height))
        return sizes

    def _quad_from_regions(
        self,
        regions: Optional[list[dict]],
        page_sizes: dict[int, tuple[float, float]],
    ) -> Optional[BoundingQuad]:
        """Build a normalized quad from the first bounding region, if any."""
        if not regions:
            return None
        region = regions[0] or {}
        points = self._parse_polygon(region.get("polygon"))
        if points is None:
            return None

        width, height = page_sizes.get(region.get("pageNumber", 1), (1.0, 1.0))
        return BoundingQuad(points=tuple(
            Point(x=x / width, y=y / height) for x, y in points
        ))

    def _parse_polygon(self, polygon: Any) -> Optional[list[tuple[float, float]]]:
        """
        Accept either [{"x": .., "y": ..}, ...] or a flat [x0, y0, x1, y1, ...].
        Returns the first four points, or None when fewer are present.
        """
        if not polygon:
            return None

        points: list[tuple[float, float]] = []
        try:
            if isinstance(polygon[0], dict):
                points = [(float(p["x"]), float(p["y"])) for p in polygon]
            else:
                coords = [float(c) for c in polygon]
                points = list(zip(coords[0::2], coords[1::2]))
        except (KeyError, TypeError, ValueError):
            return None

        if len(points) < 4:
            return None
        return points[:4]
