"""
Context Compressor - Minimal grounding context for a command request

Responsibilities:
- Reduce the dashboard to page/chart identifiers, types and titles
- Reduce the data schema to column metadata and a row count
- NEVER include row data

Output size grows with page, chart and column counts only. The schema part
is a pure function of the schema and can be memoized in the statistics cache.
"""

import logging

from pydantic import Field

from promptdash.modules.dashboard.schemas import (
    TABULAR_CHART_TYPES,
    CamelModel,
    Dashboard,
    DataSchema,
)
from promptdash.observability.usage_ledger import StatisticsCache, content_hash, estimate_object_tokens

logger = logging.getLogger(__name__)


UNKNOWN_PAGE_NAME = "Unknown"
SCHEMA_CACHE_KEY = "schema_context"


class ChartRef(CamelModel):
    id: str
    type: str
    title: str


class TableChartRef(CamelModel):
    page_id: str
    chart_id: str
    type: str
    title: str


class PageOverview(CamelModel):
    id: str
    name: str
    show_title: bool
    charts: list[ChartRef] = Field(default_factory=list)


class ColumnSummary(CamelModel):
    name: str
    type: str
    is_metric: bool
    is_dimension: bool


class SchemaContext(CamelModel):
    """Column metadata stripped of row-level values."""

    column_names: list[str] = Field(default_factory=list)
    columns: list[ColumnSummary] = Field(default_factory=list)
    row_count: int = 0


class CompressedContext(CamelModel):
    """Everything the prompt needs to ground a request, and nothing more."""

    current_page_id: str | None = None
    current_page_name: str = UNKNOWN_PAGE_NAME
    theme: str = "light"
    table_charts: list[TableChartRef] = Field(default_factory=list)
    current_page_charts: list[ChartRef] = Field(default_factory=list)
    pages: list[PageOverview] = Field(default_factory=list)
    schema_context: SchemaContext = Field(default_factory=SchemaContext)


def compress_schema(schema: DataSchema) -> SchemaContext:
    return SchemaContext(
        column_names=[c.name for c in schema.columns],
        columns=[
            ColumnSummary(
                name=c.name,
                type=c.type,
                is_metric=c.is_metric,
                is_dimension=c.is_dimension,
            )
            for c in schema.columns
        ],
        row_count=schema.row_count,
    )


def compress_context(
    dashboard: Dashboard,
    schema: DataSchema,
    cache: StatisticsCache | None = None,
) -> CompressedContext:
    """
    Build the compressed context for one request.

    Args:
        dashboard: Full dashboard document
        schema: Full data schema
        cache: Optional statistics cache used to memoize the schema part

    Returns:
        CompressedContext
    """
    current_page = dashboard.current_page

    table_charts = [
        TableChartRef(page_id=page.id, chart_id=chart.id, type=chart.type, title=chart.title)
        for page, chart in dashboard.iter_charts()
        if chart.type in TABULAR_CHART_TYPES
    ]
    current_page_charts = (
        [ChartRef(id=c.id, type=c.type, title=c.title) for c in current_page.charts]
        if current_page
        else []
    )
    pages = [
        PageOverview(
            id=page.id,
            name=page.name,
            show_title=page.show_title,
            charts=[ChartRef(id=c.id, type=c.type, title=c.title) for c in page.charts],
        )
        for page in dashboard.pages
    ]

    if cache is not None:
        schema_context, from_cache = cache.get_or_compute(
            SCHEMA_CACHE_KEY,
            content_hash(schema.model_dump(mode="json")),
            lambda: compress_schema(schema),
        )
        logger.debug(f"Schema context {'served from cache' if from_cache else 'computed'}")
    else:
        schema_context = compress_schema(schema)

    context = CompressedContext(
        current_page_id=dashboard.current_page_id,
        current_page_name=current_page.name if current_page else UNKNOWN_PAGE_NAME,
        theme=dashboard.theme,
        table_charts=table_charts,
        current_page_charts=current_page_charts,
        pages=pages,
        schema_context=schema_context,
    )
    logger.debug(
        f"Compressed context: {len(pages)} pages, {len(table_charts)} table charts, "
        f"~{estimate_object_tokens(context.to_wire())} tokens"
    )
    return context


__all__ = [
    "ChartRef",
    "ColumnSummary",
    "CompressedContext",
    "PageOverview",
    "SchemaContext",
    "TableChartRef",
    "compress_context",
    "compress_schema",
]
