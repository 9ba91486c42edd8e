"""
Section Assembler
=================
Groups a page's body blocks into named sections in reading order.

Two strategies share one interface:
    - BandedSplitStrategy: headers cut the page into full-width
      horizontal bands, each band is segmented into columns.
    - LinearScanStrategy: the whole page is segmented into columns once,
      headers split the resulting sequence where they occur.

SectionAssembler runs the banded split and falls back to the linear scan
when fewer than two sections come out, which happens when headers sit
inside a column instead of spanning the page.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from .columns import segment_columns
from .header_detector import HeaderDetection
from .models import AssemblyStrategy, Section, TextBlock

logger = logging.getLogger(__name__)

DEFAULT_MIN_SECTIONS = 2
DEFAULT_MIN_SECTION_PARAGRAPHS = 2


class SectionAssemblyStrategy(ABC):
    """Turns a header detection into an ordered list of sections."""

    kind: AssemblyStrategy

    @abstractmethod
    def assemble(self, detection: HeaderDetection) -> list[Section]:
        """Return the page's sections in reading order."""

    @staticmethod
    def _section(
        detection: HeaderDetection,
        header: Optional[TextBlock],
        paragraphs: list[TextBlock],
    ) -> Section:
        return Section(
            name=header.content.strip() if header is not None else "",
            is_title=detection.is_title_header(header),
            paragraphs=paragraphs,
        )


class BandedSplitStrategy(SectionAssemblyStrategy):
    """One section per vertical band between consecutive major headers."""

    kind = AssemblyStrategy.BANDED

    def assemble(self, detection: HeaderDetection) -> list[Section]:
        blocks = [
            b for b in detection.body if not detection.is_major_header(b)
        ]
        sections: list[Section] = []
        previous: Optional[TextBlock] = None
        last_bottom = 0.0

        for header in detection.major_headers:
            band = [
                b for b in blocks
                if last_bottom <= b.quad.top < header.quad.top
            ]
            sections.append(
                self._section(detection, previous, segment_columns(band))
            )
            previous = header
            last_bottom = header.quad.bottom

        trailing = [b for b in blocks if b.quad.top >= last_bottom]
        sections.append(
            self._section(detection, previous, segment_columns(trailing))
        )

        return [s for s in sections if s.paragraphs]


class LinearScanStrategy(SectionAssemblyStrategy):
    """Split one global reading-order sequence at each major header."""

    kind = AssemblyStrategy.LINEAR

    def __init__(self, min_paragraphs: int = DEFAULT_MIN_SECTION_PARAGRAPHS):
        self.min_paragraphs = min_paragraphs

    def assemble(self, detection: HeaderDetection) -> list[Section]:
        sections: list[Section] = []
        previous: Optional[TextBlock] = None
        current: list[TextBlock] = []

        for block in segment_columns(detection.body):
            if detection.is_major_header(block):
                sections.append(self._section(detection, previous, current))
                previous = block
                current = []
            else:
                current.append(block)

        sections.append(self._section(detection, previous, current))

        return [s for s in sections if len(s.paragraphs) >= self.min_paragraphs]


class SectionAssembler:
    """
    Runs the primary strategy and substitutes the fallback wholesale when
    the primary yields fewer than `min_sections` sections.
    """

    def __init__(
        self,
        primary: Optional[SectionAssemblyStrategy] = None,
        fallback: Optional[SectionAssemblyStrategy] = None,
        min_sections: int = DEFAULT_MIN_SECTIONS,
    ):
        self.primary = primary or BandedSplitStrategy()
        self.fallback = fallback or LinearScanStrategy()
        self.min_sections = min_sections

    def assemble(
        self, detection: HeaderDetection
    ) -> tuple[list[Section], AssemblyStrategy]:
        sections = self.primary.assemble(detection)
        if len(sections) >= self.min_sections:
            return sections, self.primary.kind

        logger.debug(
            f"{self.primary.kind.value} assembly produced {len(sections)} "
            f"section(s), using {self.fallback.kind.value}"
        )
        sections = self.fallback.assemble(detection)
        if not sections:
            logger.debug("No recognizable structure on page")
        return sections, self.fallback.kind
