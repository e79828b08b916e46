"""
Configuration system for the BIC extraction engine.

Provides structured configuration using dataclasses with clear defaults,
type safety, and dict-based construction. Layout constants (row tolerance,
column template, header markers) live here rather than in the algorithms so
the engine can be recalibrated for a new directory layout.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Optional, Dict, Any, List, Tuple
import logging

from bic_exporter.constants.bic_columns import COLUMN_COUNT

logger = logging.getLogger(__name__)

# Directory boilerplate that repeats on every page (lower-cased substrings)
DEFAULT_HEADER_MARKERS = (
    "last update",
    "brch code",
    "bic brch",
    "full legal name",
    "instit. type",
    "inst. type",
    "iso bic directory",
    "registration authority",
    "iso 9362",
)

DEFAULT_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y", "%d.%m.%Y")


def _filter_known_keys(cls, config: Dict[str, Any]) -> Dict[str, Any]:
    """Keep keys that are dataclass fields of ``cls``, warning about the rest"""
    valid_keys = {f.name for f in fields(cls)}
    filtered_config = {}
    for key, value in config.items():
        if key in valid_keys:
            filtered_config[key] = value
        else:
            logger.warning(f"Unknown config key '{key}' will be ignored")
    return filtered_config


@dataclass
class ProcessorOptions:
    """
    Base class for processor-specific configuration options.

    All processor option classes inherit from this to provide
    consistent interface and common functionality.
    """

    def validate(self) -> bool:
        """
        Validate configuration options.

        Returns:
            True if configuration is valid, False otherwise
        """
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]):
        """Create options from a dictionary, ignoring unknown keys."""
        return cls(**_filter_known_keys(cls, config))


@dataclass
class TextExtractionOptions(ProcessorOptions):
    """
    Configuration options for glyph extraction.

    Controls how content stream text and path operators are turned into
    positioned fragments and vertical rules.
    """
    default_line_height: float = 12.0  # T* advance when no leading was set
    tj_space_threshold: float = -100.0  # TJ kerning below this (thousandths of em) is a word space
    vertical_line_tolerance: float = 1.0  # Max x difference between ends of a vertical rule
    detect_rect_rules: bool = False  # Also treat thin 're' rectangles as rules
    max_rect_rule_width: float = 2.0
    min_rule_height: float = 0.0
    max_form_depth: int = 8  # Nesting limit for Form XObjects

    def validate(self) -> bool:
        if self.default_line_height <= 0:
            logger.error("default_line_height must be positive")
            return False
        if self.vertical_line_tolerance < 0:
            logger.error("vertical_line_tolerance must be non-negative")
            return False
        if self.max_form_depth < 0:
            logger.error("max_form_depth must be non-negative")
            return False
        return True


@dataclass
class TableRegion:
    """
    Vertical page region holding the table body, in PDF points.

    Fragments above ``top`` (or within ``top_margin`` of the page top) and
    below ``bottom`` (or within ``bottom_margin`` of the page bottom) are
    page furniture and never reach the row clusterer. With ``use_rules``
    the window is further clipped to the vertical extent of the page's
    column rules, widened by ``rule_tolerance``; pages without rules fall
    back to the margins alone.
    """
    top_margin: float = 0.0
    bottom_margin: float = 0.0
    top: Optional[float] = None
    bottom: Optional[float] = None
    use_rules: bool = True
    rule_tolerance: float = 2.0

    def bounds(self, page_bottom: float, page_top: float) -> Tuple[float, float]:
        """Resolve the (low_y, high_y) window for a page's MediaBox"""
        low = page_bottom + self.bottom_margin
        high = page_top - self.top_margin
        if self.bottom is not None:
            low = max(low, self.bottom)
        if self.top is not None:
            high = min(high, self.top)
        return low, high


@dataclass
class TableLayoutOptions(ProcessorOptions):
    """
    Calibration of the directory's table layout.

    Every threshold used by row clustering, column segmentation and field
    normalization is tunable here.
    """
    column_count: int = COLUMN_COUNT
    row_tolerance: float = 3.0  # Max baseline distance within one row band
    line_dedup_tolerance: float = 2.0  # Rules closer than this are one separator
    boundary_drift: float = 1.0  # Text may start this far left of its separator
    max_boundary_drift: float = 3.0  # Max per-page separator shift accepted
    join_tolerance: float = 0.25  # Gap under which fragments are glued without a space
    column_boundaries: Optional[List[float]] = None  # Fixed template, skips rule detection
    region: TableRegion = field(default_factory=TableRegion)
    header_markers: Tuple[str, ...] = DEFAULT_HEADER_MARKERS
    date_formats: Tuple[str, ...] = DEFAULT_DATE_FORMATS
    validate_bic: bool = True

    @property
    def required_boundaries(self) -> int:
        """Separators needed for ``column_count`` columns, end marker included"""
        return self.column_count + 1

    def validate(self) -> bool:
        if self.column_count < 1:
            logger.error("column_count must be at least 1")
            return False
        if self.row_tolerance < 0:
            logger.error("row_tolerance must be non-negative")
            return False
        if self.boundary_drift < 0 or self.max_boundary_drift < 0:
            logger.error("boundary drift tolerances must be non-negative")
            return False
        if self.region.rule_tolerance < 0:
            logger.error("region rule_tolerance must be non-negative")
            return False
        if self.column_boundaries is not None:
            if len(self.column_boundaries) < self.required_boundaries - 1:
                logger.error(
                    f"column_boundaries needs at least {self.required_boundaries - 1} "
                    f"values, got {len(self.column_boundaries)}"
                )
                return False
            if list(self.column_boundaries) != sorted(self.column_boundaries):
                logger.error("column_boundaries must be ascending")
                return False
        if not self.date_formats:
            logger.error("At least one date format is required")
            return False
        return True

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'TableLayoutOptions':
        filtered = _filter_known_keys(cls, config)
        if isinstance(filtered.get('region'), dict):
            filtered['region'] = TableRegion(**filtered['region'])
        for key in ('header_markers', 'date_formats'):
            if key in filtered:
                filtered[key] = tuple(filtered[key])
        return cls(**filtered)


@dataclass
class PageRange:
    """
    Represents a range of pages to process in a PDF document.

    Provides validation, normalization, and conversion to explicit page lists.
    Uses 1-based page numbering consistent with PDF specification.

    Example:
        >>> # Skip the directory cover page
        >>> page_range = PageRange(start=2)
        >>>
        >>> # Process single page
        >>> page_range = PageRange.single_page(7)
    """

    start: int  # 1-based page number
    end: Optional[int] = None  # None means "to end of document"

    def __post_init__(self):
        """Validate page range on construction."""
        if self.start < 1:
            raise ValueError(f"start page must be >= 1, got {self.start}")

        if self.end is not None:
            if self.end < 1:
                raise ValueError(f"end page must be >= 1, got {self.end}")
            if self.end < self.start:
                raise ValueError(
                    f"end page ({self.end}) must be >= start page ({self.start})"
                )

    def to_page_numbers(self, total_pages: int) -> List[int]:
        """
        Convert range to explicit list of page numbers.

        Args:
            total_pages: Total number of pages in document

        Returns:
            List of 1-based page numbers to process (empty when the range
            starts past the end of the document)

        Example:
            >>> PageRange(start=2, end=5).to_page_numbers(10)
            [2, 3, 4, 5]
        """
        if total_pages < 1 or self.start > total_pages:
            return []

        end = total_pages if self.end is None else min(self.end, total_pages)
        return list(range(self.start, end + 1))

    @classmethod
    def all_pages(cls) -> 'PageRange':
        """Create range representing all pages in document."""
        return cls(start=1, end=None)

    @classmethod
    def single_page(cls, page_num: int) -> 'PageRange':
        """
        Create range for a single page.

        Args:
            page_num: 1-based page number
        """
        return cls(start=page_num, end=page_num)

    @classmethod
    def from_tuple(cls, page_tuple: tuple) -> 'PageRange':
        """
        Create from tuple (start, end).

        Args:
            page_tuple: Tuple of (start, end) or (start,)
        """
        if len(page_tuple) == 1:
            return cls(start=page_tuple[0])
        elif len(page_tuple) == 2:
            return cls(start=page_tuple[0], end=page_tuple[1])
        else:
            raise ValueError(f"Invalid page tuple: {page_tuple}")

    def __repr__(self) -> str:
        """String representation for debugging."""
        if self.end is None:
            return f"PageRange({self.start}→end)"
        elif self.start == self.end:
            return f"PageRange(page {self.start})"
        else:
            return f"PageRange({self.start}→{self.end})"


@dataclass
class EngineConfig:
    """
    Central configuration for one extraction call.

    Example:
        >>> config = EngineConfig(strict_mode=True)
        >>> records = extract_table_from_path("ISOBIC.pdf", config=config)
    """

    # Pages holding the table; the directory's first page is a cover
    pages: PageRange = field(default_factory=lambda: PageRange(start=2))

    # Processor-specific options
    text_options: TextExtractionOptions = field(default_factory=TextExtractionOptions)
    layout_options: TableLayoutOptions = field(default_factory=TableLayoutOptions)

    # Abort on malformed records instead of skipping them
    strict_mode: bool = False

    # Performance
    page_workers: int = 1
    max_file_size_mb: int = 200

    # Validation
    validate_on_open: bool = True

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if all values are valid, False otherwise
        """
        if self.page_workers < 1:
            logger.error("page_workers must be at least 1")
            return False

        if self.max_file_size_mb < 1:
            logger.error("max_file_size_mb must be at least 1 MB")
            return False

        return self.text_options.validate() and self.layout_options.validate()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        Useful for serialization, logging, and debugging.
        """
        return {
            'pages': {'start': self.pages.start, 'end': self.pages.end},
            'text_options': self.text_options.to_dict(),
            'layout_options': self.layout_options.to_dict(),
            'strict_mode': self.strict_mode,
            'page_workers': self.page_workers,
            'max_file_size_mb': self.max_file_size_mb,
            'validate_on_open': self.validate_on_open,
        }

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'EngineConfig':
        """
        Create EngineConfig from dictionary.

        Nested option dictionaries are converted to their dataclasses.
        Unknown keys are ignored with a warning.

        Args:
            config: Dictionary of configuration values

        Returns:
            EngineConfig instance
        """
        filtered_config = _filter_known_keys(cls, config)

        pages = filtered_config.get('pages')
        if isinstance(pages, dict):
            filtered_config['pages'] = PageRange(**pages)
        elif isinstance(pages, (tuple, list)):
            filtered_config['pages'] = PageRange.from_tuple(tuple(pages))

        if isinstance(filtered_config.get('text_options'), dict):
            filtered_config['text_options'] = TextExtractionOptions.from_dict(filtered_config['text_options'])
        if isinstance(filtered_config.get('layout_options'), dict):
            filtered_config['layout_options'] = TableLayoutOptions.from_dict(filtered_config['layout_options'])

        return cls(**filtered_config)

    @classmethod
    def default(cls) -> 'EngineConfig':
        """Create configuration with default values."""
        return cls()

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"EngineConfig("
            f"pages={self.pages!r}, "
            f"strict={self.strict_mode}, "
            f"workers={self.page_workers})"
        )
