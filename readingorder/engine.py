"""
Reading-Order Engine
====================
Main orchestrator that combines page fetching, layout analysis,
continuity validation and export into a complete pipeline.

Usage:
    engine = AnalyzerEngine(config)
    result = engine.analyze("path/to/book.pdf")
    # result is a DocumentResult with one ParsedPage per fetched page

Architecture:
    PDF → page extractor → layout service (bounded, cached) →
    PageAnalyzer → ParsedPages → ContinuityValidator → export
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from . import __version__
from .analyzer import PageAnalyzer
from .exporter import save_export
from .fetcher import fetch_range
from .layout_client import LayoutClient
from .models import CacheEntry, DocumentResult
from .page_extractor import extract_page, get_page_count
from .storage import PageCache, sanitize_name
from .validator import ContinuityValidator

logger = logging.getLogger(__name__)


@dataclass
class AnalyzerConfig:
    """Configuration for the reading-order engine."""

    # Layout heuristics
    title_promotion_threshold: float = 0.5
    collision_tolerance: float = 0.0
    min_banded_sections: int = 2
    min_section_paragraphs: int = 2

    # Fetching
    concurrency: int = 4
    stop_on_failure: bool = True
    cache_dir: Optional[str] = None
    document_name: str = ""

    # Processing (0-indexed, end exclusive)
    page_range: Optional[tuple[int, int]] = None

    # Output settings
    output_dir: str = "output"
    save_result_json: bool = True

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class AnalyzerEngine:
    """
    Main reading-order engine.

    Orchestrates the full pipeline:
        1. Batch fetch of layout results (cache first)
        2. Per-page reading-order reconstruction
        3. Continuity validation
        4. Export
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        client: Optional[LayoutClient] = None,
    ):
        self.config = config or AnalyzerConfig()
        self.client = client
        self.analyzer = PageAnalyzer(
            title_promotion_threshold=self.config.title_promotion_threshold,
            collision_tolerance=self.config.collision_tolerance,
            min_sections=self.config.min_banded_sections,
            min_section_paragraphs=self.config.min_section_paragraphs,
        )
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("readingorder")
        package_logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(formatter)
            package_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            Path(self.config.log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                self.config.log_file, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

    def analyze(
        self,
        pdf_path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> DocumentResult:
        """
        Fetch, analyze and export a PDF.

        Args:
            pdf_path: Path to the PDF file.
            progress_callback: Callback(finished_pages, total_pages).

        Returns:
            DocumentResult with parsed pages and continuity report.

        Raises:
            FileNotFoundError: If the PDF doesn't exist.
            RuntimeError: If the layout service is not configured.
        """
        return asyncio.run(self.analyze_async(pdf_path, progress_callback))

    async def analyze_async(
        self,
        pdf_path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> DocumentResult:
        pdf_path = os.path.abspath(pdf_path)
        if not os.path.exists(pdf_path):
            raise FileNotFoundError(f"PDF not found: {pdf_path}")

        start_time = time.time()
        document_name = self.config.document_name or Path(pdf_path).stem
        logger.info(f"Starting analysis of: {pdf_path}")

        # ── Step 1: Resolve page range ────────────────────────────────
        page_count = get_page_count(pdf_path)
        start, end = self.config.page_range or (0, page_count)
        start, end = max(0, start), min(page_count, end)

        # ── Step 2: Fetch layout results ──────────────────────────────
        client = self.client or LayoutClient.from_env()

        async def fetch_one(page_index: int) -> dict[str, Any]:
            # PyMuPDF is not thread-safe, extraction stays on the loop thread
            document = extract_page(pdf_path, page_index)
            return await asyncio.to_thread(client.analyze, document, page_index)

        cache = PageCache(document_name, self.config.cache_dir)
        batch = await fetch_range(
            start,
            end,
            self.config.concurrency,
            fetch_one,
            cache=cache,
            stop_on_failure=self.config.stop_on_failure,
            progress_callback=progress_callback,
        )

        # ── Step 3: Analyze and validate ──────────────────────────────
        result = self._build_result(document_name, batch.results)
        result.source_pdf = os.path.basename(pdf_path)
        result.batch = batch
        result.report = ContinuityValidator().validate(result.pages, batch)

        elapsed = time.time() - start_time
        logger.info(
            f"Analysis complete in {elapsed:.2f}s, "
            f"{len(result.pages)} pages reconstructed"
        )

        # ── Step 4: Save output ───────────────────────────────────────
        self._save(result)
        return result

    def render_cache(self, cache_path: str) -> DocumentResult:
        """
        Analyze every page of an existing cache file, without network access.

        Raises:
            FileNotFoundError: If the cache file doesn't exist.
        """
        path = Path(cache_path)
        if not path.exists():
            raise FileNotFoundError(f"Cache file not found: {path}")

        cache = PageCache(self.config.document_name or path.stem, path=path)
        entries = list(cache.load().values())

        result = self._build_result(cache.document_name, entries)
        result.report = ContinuityValidator().validate(result.pages)
        self._save(result)
        return result

    def _build_result(
        self, document_name: str, entries: list[CacheEntry]
    ) -> DocumentResult:
        logger.info(f"Analyzing {len(entries)} pages")
        return DocumentResult(
            document_name=document_name,
            parser_version=__version__,
            pages=self.analyzer.analyze_batch(entries),
        )

    def _save(self, result: DocumentResult):
        name = sanitize_name(result.document_name)
        save_export(result.pages, self.config.output_dir, name)

        if self.config.save_result_json:
            output_file = Path(self.config.output_dir) / f"{name}_result.json"
            self._save_json(
                result.model_dump(mode="json", exclude={"batch": {"results"}}),
                output_file,
            )

    def _save_json(self, data: dict, filepath: Path):
        """Save a dict to JSON file."""
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            logger.info(f"Saved JSON: {filepath}")
        except OSError as e:
            logger.error(f"Failed to save JSON: {e}")
