"""
Page Extractor
==============
Cuts single pages out of a PDF using PyMuPDF (fitz), so each page can be
sent to the layout service on its own.
"""

from __future__ import annotations

import logging

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


def get_page_count(pdf_path: str) -> int:
    """Get total number of pages in the PDF."""
    with fitz.open(pdf_path) as doc:
        return doc.page_count


def extract_page(pdf_path: str, page_index: int) -> bytes:
    """
    Return a one-page PDF containing page `page_index` (0-indexed).

    Raises:
        IndexError: If the page does not exist.
    """
    with fitz.open(pdf_path) as doc:
        if not 0 <= page_index < doc.page_count:
            raise IndexError(
                f"Page {page_index} out of range (document has {doc.page_count})"
            )
        with fitz.open() as single:
            single.insert_pdf(doc, from_page=page_index, to_page=page_index)
            data = single.tobytes()

    logger.debug(f"Extracted page {page_index} ({len(data)} bytes)")
    return data
