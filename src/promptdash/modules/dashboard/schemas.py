"""
PromptDash Dashboard - Schemas.

Pydantic models for the dashboard document and the (read-only) data schema.
Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


ChartType = Literal[
    "kpi",
    "bar",
    "stacked-bar",
    "clustered-bar",
    "line",
    "area",
    "stacked-area",
    "scatter",
    "bubble",
    "pie",
    "donut",
    "heatmap",
    "treemap",
    "waterfall",
    "funnel",
    "gauge",
    "radar",
    "table",
    "matrix",
]
Aggregation = Literal["sum", "avg", "count", "min", "max"]
SortOrder = Literal["asc", "desc"]
TitlePosition = Literal["top", "bottom"]
TrendDirection = Literal["up", "down", "flat"]
Theme = Literal["light", "dark"]

# yAxis is a union: a single column or an ordered list of columns.
AxisBinding = Union[str, list[str]]

CHART_TYPES: tuple[str, ...] = get_args(ChartType)
AGGREGATIONS: tuple[str, ...] = get_args(Aggregation)
SORT_ORDERS: tuple[str, ...] = get_args(SortOrder)
TITLE_POSITIONS: tuple[str, ...] = get_args(TitlePosition)
TREND_DIRECTIONS: tuple[str, ...] = get_args(TrendDirection)
THEMES: tuple[str, ...] = get_args(Theme)

# Charts that read as "the table" in a request.
TABULAR_CHART_TYPES: frozenset[str] = frozenset({"table", "matrix"})

DEFAULT_CHART_TITLE = "New Chart"
DEFAULT_CHART_WIDTH = 2
DEFAULT_CHART_HEIGHT = 2
MAX_CHART_SPAN = 12
MAX_CHART_OFFSET = 1000
# Columns in the rendered grid; wider charts are clamped by the canvas.
GRID_COLUMNS = 4


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Dump with camelCase keys, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# Document
# =============================================================================


class Chart(CamelModel):
    """A single visual on a page."""

    # Client-only fields (axis titles, formulas, ...) survive a round trip.
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    type: ChartType
    title: str = DEFAULT_CHART_TITLE
    title_position: TitlePosition = "top"
    x_axis: str | None = None
    y_axis: AxisBinding | None = None
    group_by: str | None = None
    aggregation: Aggregation | None = None
    trend: TrendDirection | None = None
    trend_value: float | None = None
    columns: list[str] | None = None
    colors: list[str] | None = None
    sort_by: str | None = None
    sort_order: SortOrder | None = None
    filter_column: str | None = None
    filter_values: list[str] | None = None
    width: int = Field(default=DEFAULT_CHART_WIDTH, ge=1, le=MAX_CHART_SPAN)
    height: int = Field(default=DEFAULT_CHART_HEIGHT, ge=1, le=MAX_CHART_SPAN)
    x: int = Field(default=0, ge=0, le=MAX_CHART_OFFSET)
    y: int = Field(default=0, ge=0, le=MAX_CHART_OFFSET)


class Page(CamelModel):
    """A dashboard page holding charts in layout order."""

    id: str = Field(..., min_length=1)
    name: str
    show_title: bool = False
    charts: list[Chart] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_chart_ids(self) -> "Page":
        seen: set[str] = set()
        for chart in self.charts:
            if chart.id in seen:
                raise ValueError(f"Duplicate chart id on page {self.id}: {chart.id}")
            seen.add(chart.id)
        return self

    def find_chart(self, chart_id: str) -> Chart | None:
        return next((c for c in self.charts if c.id == chart_id), None)


class Dashboard(CamelModel):
    """The dashboard document: ordered pages, a current page and a theme."""

    pages: list[Page] = Field(default_factory=list)
    current_page_id: str | None = None
    theme: Theme = "light"

    @model_validator(mode="after")
    def _unique_page_ids(self) -> "Dashboard":
        seen: set[str] = set()
        for page in self.pages:
            if page.id in seen:
                raise ValueError(f"Duplicate page id: {page.id}")
            seen.add(page.id)
        return self

    @property
    def current_page(self) -> Page | None:
        return self.find_page(self.current_page_id) if self.current_page_id else None

    def find_page(self, page_id: str) -> Page | None:
        return next((p for p in self.pages if p.id == page_id), None)

    def iter_charts(self):
        """Yield (page, chart) pairs in document order."""
        for page in self.pages:
            for chart in page.charts:
                yield page, chart


# =============================================================================
# Data schema (external, read-only)
# =============================================================================


class ColumnDescriptor(CamelModel):
    """Column metadata produced by ingestion. Sample values are ignored."""

    model_config = ConfigDict(extra="ignore")

    name: str
    type: str = "string"
    is_metric: bool = False
    is_dimension: bool = False


class DataSchema(CamelModel):
    """Ordered column descriptors plus the row count."""

    model_config = ConfigDict(extra="ignore")

    columns: list[ColumnDescriptor] = Field(default_factory=list)
    row_count: int = Field(default=0, ge=0)
