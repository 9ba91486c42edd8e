"""
Data Models
===========
Pydantic models for page layout analysis.
All models are serializable to JSON for export and caching.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field


# ─── Enums ────────────────────────────────────────────────────────────────────


class BlockRole(str, Enum):
    """Semantic role assigned to a text block by the layout service."""
    BODY = "body"
    TITLE = "title"
    SECTION_HEADING = "sectionHeading"
    PAGE_NUMBER = "pageNumber"
    OTHER = "other"

    @classmethod
    def from_wire(cls, value: Optional[str]) -> "BlockRole":
        """Map a raw role string (or None) onto a known role."""
        if not value:
            return cls.BODY
        try:
            return cls(value)
        except ValueError:
            # pageHeader, pageFooter, footnote, ...
            return cls.OTHER


class FetchState(str, Enum):
    """Lifecycle of a single page fetch inside a batch."""
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


class AssemblyStrategy(str, Enum):
    """Which section assembly strategy produced a page."""
    BANDED = "banded"
    LINEAR = "linear"


# ─── Geometry ─────────────────────────────────────────────────────────────────


class Point(BaseModel):
    x: float
    y: float


class BoundingQuad(BaseModel):
    """
    Four points normalized to [0, 1] per page axis, ordered clockwise:
    top-left, top-right, bottom-right, bottom-left.
    """
    points: tuple[Point, Point, Point, Point]

    @classmethod
    def from_box(
        cls, left: float, top: float, right: float, bottom: float
    ) -> "BoundingQuad":
        """Build an axis-aligned quad from its four edges."""
        return cls(points=(
            Point(x=left, y=top),
            Point(x=right, y=top),
            Point(x=right, y=bottom),
            Point(x=left, y=bottom),
        ))

    @property
    def left(self) -> float:
        return self.points[0].x

    @property
    def right(self) -> float:
        return self.points[2].x

    @property
    def top(self) -> float:
        return self.points[0].y

    @property
    def bottom(self) -> float:
        return self.points[2].y

    @property
    def top_right_x(self) -> float:
        """Provisional right edge of a column seeded by this block."""
        return self.points[1].x


# ─── Block Models ─────────────────────────────────────────────────────────────


class TextBlock(BaseModel):
    """
    A single unit of recognized text with its role and position.
    `column_index` is a transient annotation set by column segmentation.
    """
    role: BlockRole = BlockRole.BODY
    content: str = ""
    quad: BoundingQuad
    column_index: Optional[int] = None

    @property
    def top(self) -> float:
        return self.quad.top

    @property
    def bottom(self) -> float:
        return self.quad.bottom

    @property
    def left(self) -> float:
        return self.quad.left


class Table(BaseModel):
    """A detected table, reduced to the bounding quads of its cells."""
    cells: list[BoundingQuad] = Field(default_factory=list)


# ─── Section / Page Models ────────────────────────────────────────────────────


class Section(BaseModel):
    """
    A run of paragraphs in reading order, opened by a header.
    Paragraphs reference the page's blocks, they are never copied.
    """
    name: str = ""
    is_title: bool = False
    paragraphs: list[TextBlock] = Field(default_factory=list)

    @computed_field
    @property
    def vertical_bounds(self) -> Optional[tuple[float, float]]:
        """(min top, max bottom) over all paragraphs."""
        if not self.paragraphs:
            return None
        return (
            min(p.top for p in self.paragraphs),
            max(p.bottom for p in self.paragraphs),
        )


class ParsedPage(BaseModel):
    """
    The reconstructed reading order of one page.
    """
    source_page_index: int = Field(ge=0)
    logical_page_number: int
    page_number_detected: bool = False
    title: Optional[str] = None
    sections: list[Section] = Field(default_factory=list)
    assembly_strategy: AssemblyStrategy = AssemblyStrategy.BANDED

    @computed_field
    @property
    def paragraph_count(self) -> int:
        return sum(len(s.paragraphs) for s in self.sections)


# ─── Fetch / Cache Models ─────────────────────────────────────────────────────


class CacheEntry(BaseModel):
    """Raw layout result for one page, as stored in the cache file."""
    page_index: int = Field(ge=0)
    result: dict[str, Any] = Field(default_factory=dict)


class FetchJob(BaseModel):
    """Book-keeping for one page of a batch fetch."""
    page_index: int
    state: FetchState = FetchState.PENDING
    cached: bool = False
    error: Optional[str] = None


class BatchResult(BaseModel):
    """
    Outcome of a batch fetch.
    `results` holds successes only, in completion order.
    """
    results: list[CacheEntry] = Field(default_factory=list)
    jobs: dict[int, FetchJob] = Field(default_factory=dict)

    @computed_field
    @property
    def succeeded_pages(self) -> list[int]:
        return sorted(e.page_index for e in self.results)

    @computed_field
    @property
    def failed_pages(self) -> list[int]:
        return sorted(
            i for i, job in self.jobs.items()
            if job.state == FetchState.FAILED
        )

    @computed_field
    @property
    def skipped_pages(self) -> list[int]:
        return sorted(
            i for i, job in self.jobs.items()
            if job.state == FetchState.SKIPPED
        )


# ─── Validation Model ─────────────────────────────────────────────────────────


class ContinuityReport(BaseModel):
    """Cross-page continuity report for an analyzed batch."""
    total_pages: int = 0
    pages_with_sections: int = 0
    empty_pages: list[int] = Field(default_factory=list)
    missing_page_numbers: list[int] = Field(default_factory=list)
    duplicate_page_numbers: list[int] = Field(default_factory=list)
    defaulted_page_numbers: list[int] = Field(default_factory=list)
    fallback_pages: list[int] = Field(default_factory=list)
    failed_fetches: list[int] = Field(default_factory=list)
    skipped_fetches: list[int] = Field(default_factory=list)

    @computed_field
    @property
    def structured_rate(self) -> float:
        if self.total_pages == 0:
            return 0.0
        return round(self.pages_with_sections / self.total_pages * 100, 2)


# ─── Document Result Model ────────────────────────────────────────────────────


class DocumentResult(BaseModel):
    """
    Complete output of an analysis run.
    This is the top-level JSON structure written next to the export.
    """
    document_name: str
    source_pdf: str = ""
    parser_version: str = ""
    pages: list[ParsedPage] = Field(default_factory=list)
    batch: Optional[BatchResult] = None
    report: ContinuityReport = Field(default_factory=ContinuityReport)
