"""
Reading-Order Engine
====================
Reconstructs the logical reading order of typeset PDF pages from
per-page layout-analysis results.

Architecture:
    - Block Extractor: Turns raw layout results into positioned text blocks
    - Table Filter: Drops paragraphs that duplicate table cells
    - Header Detector: Separates body text, section headers and titles
    - Column Segmenter: Buckets blocks into columns, read top to bottom
    - Section Assembler: Banded split with a linear-scan fallback
    - Fetcher: Bounded-concurrency page fetch over a JSON page cache

Version: 1.0.0
"""

__version__ = "1.0.0"
