"""
Exporter
========
Renders parsed pages as markdown-flavoured text.

    export_pages(pages) -> {logical page number: text}
    full_text(pages)    -> all pages concatenated in page-number order
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from .models import ParsedPage

logger = logging.getLogger(__name__)

# "Ab- schnitt" -> "Abschnitt": line-break hyphenation left by OCR
HYPHENATION_PATTERN = re.compile(r"(?<=\w)- (?=\w)")


def dehyphenate(text: str) -> str:
    return HYPHENATION_PATTERN.sub("", text)


def render_page(page: ParsedPage) -> str:
    """Render one page: optional title, then each section with its header."""
    parts: list[str] = []
    if page.title:
        parts.append(f"# {page.title}")

    for section in page.sections:
        if section.name:
            marker = "###" if section.is_title else "##"
            parts.append(f"{marker} {section.name}")
        for paragraph in section.paragraphs:
            text = paragraph.content.strip()
            if text:
                parts.append(text)

    return dehyphenate("\n\n".join(parts))


def export_pages(pages: list[ParsedPage]) -> dict[int, str]:
    """
    Map logical page number to rendered text.
    Pages sharing a number are joined in source order.
    """
    exported: dict[int, str] = {}
    for page in sorted(pages, key=lambda p: p.source_page_index):
        text = render_page(page)
        if page.logical_page_number in exported:
            exported[page.logical_page_number] += "\n\n" + text
        else:
            exported[page.logical_page_number] = text
    return exported


def full_text(pages: list[ParsedPage]) -> str:
    """All pages in ascending page-number order, each under a page heading."""
    exported = export_pages(pages)
    return "\n\n".join(
        f"Page {number}:\n\n{exported[number]}"
        for number in sorted(exported)
    )


def save_export(pages: list[ParsedPage], output_dir: str, name: str) -> tuple[Path, Path]:
    """
    Write `<name>_pages.json` and `<name>.md` into output_dir.

    Returns:
        (pages json path, markdown path)
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    pages_file = out / f"{name}_pages.json"
    text_file = out / f"{name}.md"

    exported = export_pages(pages)
    with open(pages_file, "w", encoding="utf-8") as f:
        json.dump(
            {str(k): v for k, v in sorted(exported.items())},
            f, indent=2, ensure_ascii=False,
        )
    with open(text_file, "w", encoding="utf-8") as f:
        f.write(full_text(pages))

    logger.info(f"Saved export: {pages_file}, {text_file}")
    return pages_file, text_file
