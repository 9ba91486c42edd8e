"""
Continuity Validator
====================
Cross-page checks over an analyzed batch.

Generates a report with:
    - Pages with / without recognizable sections
    - Missing logical page numbers (gaps in sequence)
    - Duplicate logical page numbers
    - Pages whose number was defaulted to the source index
    - Pages assembled by the linear fallback
    - Failed and skipped fetches

Never silently ignores failures.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from .models import AssemblyStrategy, BatchResult, ContinuityReport, ParsedPage

logger = logging.getLogger(__name__)


class ContinuityValidator:
    """
    Validates a batch of parsed pages and produces a continuity report.
    """

    def validate(
        self,
        pages: list[ParsedPage],
        batch: Optional[BatchResult] = None,
    ) -> ContinuityReport:
        """
        Run validation on parsed pages.

        Args:
            pages: Pages of one document, any order.
            batch: The fetch outcome the pages came from, if any.

        Returns:
            ContinuityReport with all detected issues.
        """
        report = ContinuityReport()

        if batch is not None:
            report.failed_fetches = batch.failed_pages
            report.skipped_fetches = batch.skipped_pages

        if not pages:
            logger.warning("No pages to validate")
            return report

        report.total_pages = len(pages)

        numbers = [p.logical_page_number for p in pages]
        number_counts = Counter(numbers)

        report.duplicate_page_numbers = sorted(
            num for num, count in number_counts.items() if count > 1
        )

        expected = set(range(min(numbers), max(numbers) + 1))
        report.missing_page_numbers = sorted(expected - set(numbers))

        for page in pages:
            if page.sections:
                report.pages_with_sections += 1
            else:
                report.empty_pages.append(page.source_page_index)

            if not page.page_number_detected:
                report.defaulted_page_numbers.append(page.source_page_index)

            if page.assembly_strategy == AssemblyStrategy.LINEAR:
                report.fallback_pages.append(page.source_page_index)

        report.empty_pages.sort()
        report.defaulted_page_numbers.sort()
        report.fallback_pages.sort()

        # Log summary
        logger.info("=" * 60)
        logger.info("CONTINUITY REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Pages: {report.total_pages}")
        logger.info(
            f"Pages With Sections: {report.pages_with_sections} "
            f"({report.structured_rate}%)"
        )
        logger.info(f"Missing Page Numbers: {len(report.missing_page_numbers)}")
        logger.info(f"Duplicate Page Numbers: {len(report.duplicate_page_numbers)}")
        logger.info(
            f"Defaulted Page Numbers: {len(report.defaulted_page_numbers)}"
        )
        logger.info(f"Linear Fallback Pages: {len(report.fallback_pages)}")
        if report.failed_fetches:
            logger.warning(f"Failed Fetches: {report.failed_fetches}")
        if report.skipped_fetches:
            logger.warning(f"Skipped Fetches: {report.skipped_fetches}")
        logger.info("=" * 60)

        return report
