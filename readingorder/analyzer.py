"""
Page Analyzer
=============
Runs one page's layout result through the reading-order pipeline:

    raw result → BlockExtractor → table-collision filter →
    HeaderDetector → SectionAssembler → ParsedPage

Stateless: safe to call concurrently on different pages, and the same
input always yields the same ParsedPage.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from .assembler import (
    DEFAULT_MIN_SECTION_PARAGRAPHS,
    DEFAULT_MIN_SECTIONS,
    BandedSplitStrategy,
    LinearScanStrategy,
    SectionAssembler,
)
from .block_extractor import BlockExtractor
from .header_detector import DEFAULT_TITLE_PROMOTION_THRESHOLD, HeaderDetector
from .models import CacheEntry, ParsedPage
from .table_filter import remove_table_collisions

logger = logging.getLogger(__name__)


class PageAnalyzer:
    """Reconstructs the reading order of single pages."""

    def __init__(
        self,
        title_promotion_threshold: float = DEFAULT_TITLE_PROMOTION_THRESHOLD,
        collision_tolerance: float = 0.0,
        min_sections: int = DEFAULT_MIN_SECTIONS,
        min_section_paragraphs: int = DEFAULT_MIN_SECTION_PARAGRAPHS,
    ):
        self.collision_tolerance = collision_tolerance
        self.extractor = BlockExtractor()
        self.detector = HeaderDetector(title_promotion_threshold)
        self.assembler = SectionAssembler(
            primary=BandedSplitStrategy(),
            fallback=LinearScanStrategy(min_section_paragraphs),
            min_sections=min_sections,
        )

    def analyze(self, raw: dict[str, Any], source_page_index: int) -> ParsedPage:
        """
        Analyze one page.

        Args:
            raw: Layout result for the page.
            source_page_index: 0-indexed position of the page in the document.

        Returns:
            ParsedPage; never raises on unusual layouts, structure
            degrades to fewer (or zero) sections instead.
        """
        blocks, tables = self.extractor.extract(raw)
        blocks = remove_table_collisions(blocks, tables, self.collision_tolerance)

        detection = self.detector.detect(blocks)
        sections, strategy = self.assembler.assemble(detection)

        detected = detection.logical_page_number is not None
        page = ParsedPage(
            source_page_index=source_page_index,
            logical_page_number=(
                detection.logical_page_number if detected else source_page_index
            ),
            page_number_detected=detected,
            title=detection.title,
            sections=sections,
            assembly_strategy=strategy,
        )

        logger.debug(
            f"Page {source_page_index} (printed {page.logical_page_number}): "
            f"{len(blocks)} blocks, {len(sections)} sections via {strategy.value}"
        )
        return page

    def analyze_batch(self, entries: Iterable[CacheEntry]) -> list[ParsedPage]:
        """Analyze cache entries, returned in source page order."""
        pages = [self.analyze(e.result, e.page_index) for e in entries]
        return sorted(pages, key=lambda p: p.source_page_index)
