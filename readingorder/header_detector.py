"""
Header Detector
===============
Classifies the blocks of a page into body text, major headers and the
page title, and recovers the printed page number.

Heuristics are tuned for dual-column typeset material with a running
title at the top of each page:
    - A title that repeats the previous title candidate confirms the page title.
    - Titles in the lower half of the page act as section dividers,
      titles in the upper half are running headers and are dropped.
    - A section heading sharing a line with body text is an OCR mis-tag
      and stays body text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from .geometry import vertical_overlap
from .models import BlockRole, TextBlock

logger = logging.getLogger(__name__)

DEFAULT_TITLE_PROMOTION_THRESHOLD = 0.5

# Plain ASCII digits only; int() would also take "+42" or "4_2"
PAGE_NUMBER_PATTERN = re.compile(r"[0-9]+")


@dataclass
class HeaderDetection:
    """Result of header detection for one page."""

    body: list[TextBlock] = field(default_factory=list)
    major_headers: list[TextBlock] = field(default_factory=list)
    title_headers: list[TextBlock] = field(default_factory=list)
    title: Optional[str] = None
    logical_page_number: Optional[int] = None

    def is_major_header(self, block: TextBlock) -> bool:
        return any(h is block for h in self.major_headers)

    def is_title_header(self, block: Optional[TextBlock]) -> bool:
        return block is not None and any(h is block for h in self.title_headers)


class HeaderDetector:
    """
    Splits a page's blocks into body and major headers.

    The result keeps major headers inside `body` so that strategies
    walking the page in reading order encounter them in place.
    """

    def __init__(
        self,
        title_promotion_threshold: float = DEFAULT_TITLE_PROMOTION_THRESHOLD,
    ):
        self.title_promotion_threshold = title_promotion_threshold

    def detect(self, blocks: list[TextBlock]) -> HeaderDetection:
        detection = HeaderDetection()
        promoted_titles: list[TextBlock] = []
        previous_title: Optional[str] = None

        # ─── Pass 1: page numbers and titles ───
        for block in blocks:
            if block.role == BlockRole.PAGE_NUMBER:
                number = self._parse_page_number(block.content)
                if number is not None:
                    detection.logical_page_number = number
                continue

            if block.role == BlockRole.TITLE:
                text = block.content.strip()
                confirmed = previous_title is not None and text == previous_title
                if confirmed:
                    detection.title = text
                previous_title = text

                if block.top >= self.title_promotion_threshold:
                    detection.body.append(block)
                    promoted_titles.append(block)
                    if confirmed:
                        detection.title_headers.append(block)
                else:
                    logger.debug(f"Dropping running title: {text!r}")
                continue

            detection.body.append(block)

        # ─── Pass 2: section headings against a frozen snapshot ───
        heading_candidates = [
            b for b in detection.body if b.role == BlockRole.SECTION_HEADING
        ]
        others = [
            b.quad for b in blocks if b.role != BlockRole.SECTION_HEADING
        ]
        headings = []
        for candidate in heading_candidates:
            if any(vertical_overlap(candidate.quad, q) for q in others):
                logger.debug(
                    f"Suppressing inline heading: {candidate.content[:40]!r}"
                )
                continue
            headings.append(candidate)

        detection.major_headers = sorted(
            promoted_titles + headings, key=lambda b: b.top
        )
        return detection

    def _parse_page_number(self, content: str) -> Optional[int]:
        text = content.strip()
        if not PAGE_NUMBER_PATTERN.fullmatch(text):
            logger.debug(f"Unparseable page number: {content!r}")
            return None
        return int(text)
