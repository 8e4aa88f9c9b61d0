"""
Prompt Builder - Deterministic instruction template for command interpretation

Responsibilities:
- Assemble named prompt sections and track their estimated token cost
- Render the command grammar, enumerations and rules from grammar constants
- Embed the compressed context and the literal user request
- NO external calls, NO clock, NO randomness

Identical inputs produce byte-identical prompts.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from promptdash.core.command_grammar import ACTIONS, ALL_CHART_TYPES, REJECT_REASONS
from promptdash.core.context_compressor import CompressedContext
from promptdash.modules.dashboard.schemas import (
    AGGREGATIONS,
    CHART_TYPES,
    GRID_COLUMNS,
    MAX_CHART_OFFSET,
    MAX_CHART_SPAN,
    SORT_ORDERS,
    THEMES,
    TITLE_POSITIONS,
    TREND_DIRECTIONS,
)
from promptdash.observability.usage_ledger import estimate_tokens

logger = logging.getLogger(__name__)


DEFAULT_MAX_TOKENS = 8000


@dataclass(frozen=True)
class PromptSection:
    name: str
    content: str
    tokens: int


@dataclass
class BuiltPrompt:
    """Final prompt text plus its token accounting."""

    text: str
    tokens: int
    breakdown: dict[str, int] = field(default_factory=dict)
    warning: str | None = None


class PromptBuilder:
    """
    Accumulates named sections and joins them with blank lines.

    Token counts are estimates (see estimate_tokens); the budget is a soft
    limit that only produces a warning.
    """

    def __init__(self, max_tokens: int = DEFAULT_MAX_TOKENS):
        self.max_tokens = max_tokens
        self._sections: list[PromptSection] = []

    def add_section(self, name: str, content: str) -> "PromptBuilder":
        self._sections.append(PromptSection(name=name, content=content, tokens=estimate_tokens(content)))
        return self

    def add_json_section(self, name: str, data: Any, pretty: bool = True) -> "PromptBuilder":
        """Add data rendered as JSON (2-space indent when pretty)."""
        return self.add_section(name, _to_json(data, pretty))

    def total_tokens(self) -> int:
        return sum(s.tokens for s in self._sections)

    def token_breakdown(self) -> dict[str, int]:
        breakdown = {s.name: s.tokens for s in self._sections}
        breakdown["_total"] = self.total_tokens()
        return breakdown

    def is_under_limit(self) -> bool:
        return self.total_tokens() <= self.max_tokens

    def build(self) -> str:
        return "\n\n".join(s.content for s in self._sections)

    def build_with_warning(self) -> BuiltPrompt:
        tokens = self.total_tokens()
        warning = None
        if tokens > self.max_tokens:
            warning = f"Prompt exceeds recommended limit: {tokens}/{self.max_tokens} tokens"
        return BuiltPrompt(text=self.build(), tokens=tokens, breakdown=self.token_breakdown(), warning=warning)


def _to_json(data: Any, pretty: bool = True) -> str:
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def _quoted(values) -> str:
    return ", ".join(f'"{v}"' for v in values)


# =============================================================================
# Fixed instructions
# =============================================================================

ROLE_INSTRUCTIONS = """You are an assistant that modifies data dashboards.
Based on the user's natural language request, choose exactly ONE action from the command grammar below and return the matching JSON command."""

DATA_ETHICS_RULES = """=== DATA ETHICS & INTEGRITY RULES (CRITICAL) ===

You MUST refuse any request that attempts to manipulate, fake, or falsify data values.

WHAT YOU CANNOT DO (use action "reject" with rejectReason "data_manipulation"):
- Change the actual VALUE displayed in a KPI card (e.g. "make sales show 20K instead of 18K")
- Fake or inflate numbers in any chart
- Modify the underlying calculations to show false results
- "Round up" or "adjust" actual metric values

WHAT YOU CAN DO:
- Change display properties: colors, titles, sizes, positions, chart types
- Change the aggregation method (sum -> avg changes HOW data is calculated, it does not fake it)
- Change which column is displayed, or the grouping/axis columns
- Add or remove charts, pages and filters
- Sort and filter data (showing a subset of REAL data)

EXAMPLE REJECTIONS:
- "Make the revenue card show 1 million" -> reject (data_manipulation)
- "Inflate the numbers by 10%" -> reject (data_manipulation)

EXAMPLE ACCEPTANCES:
- "Change the revenue card to show average instead of sum" -> update_chart (aggregation)
- "Show Profit instead of Revenue on that KPI" -> update_chart (yAxis)
- "Make the KPI card blue" -> update_chart (colors)

For rejections, use this format:
{
  "action": "reject",
  "rejectReason": "data_manipulation",
  "message": "I can't change the displayed value as that would falsify the data. I can change which column is displayed, the aggregation method, or the styling instead."
}

Use rejectReason "impossible_action" for requests no command can express, "ambiguous_request" when you cannot tell which chart or page is meant, "no_matching_chart" when the described chart does not exist, and "other" otherwise.

=== END DATA ETHICS RULES ==="""

OUTPUT_INSTRUCTION = "Return ONLY valid JSON, no markdown, no explanation, no code blocks."


def _page_context_rules(context: CompressedContext) -> str:
    page_name = context.current_page_name
    page_id = context.current_page_id
    charts = _to_json([c.to_wire() for c in context.current_page_charts], pretty=False) if context.current_page_charts else "None"
    return f"""IMPORTANT - CURRENT PAGE CONTEXT:
- The user is currently viewing page: "{page_name}" (ID: {page_id})
- Charts on current page: {charts}

CRITICAL RULE FOR PAGE CONTEXT:
- If the user does NOT name a page, apply changes to the CURRENT PAGE ONLY ({page_id})
- "change bar chart color" without a page -> the bar chart on the current page "{page_name}"
- "change bar chart color on Overview page" -> the bar chart on the Overview page
- "change ALL bar charts" or "on all pages" -> action "update_all_charts"
- NEVER default to the first page unless the user explicitly asks for it"""


def _context_sections(builder: PromptBuilder, context: CompressedContext) -> None:
    builder.add_section("dashboard_header", f"Current Dashboard (all pages, theme: {context.theme}):")
    builder.add_json_section("dashboard", [p.to_wire() for p in context.pages])

    builder.add_section("tables_header", "Available Table Charts:")
    if context.table_charts:
        builder.add_json_section("table_charts", [t.to_wire() for t in context.table_charts])
    else:
        builder.add_section("table_charts", "No table charts found")

    names = context.schema_context.column_names
    builder.add_section(
        "column_names",
        "Available Column Names (for sorting and filtering):\n" + (", ".join(names) if names else "No columns found"),
    )

    builder.add_section("schema_header", "Dataset Schema (compressed):")
    builder.add_json_section(
        "schema",
        {
            "columns": [c.to_wire() for c in context.schema_context.columns],
            "rowCount": context.schema_context.row_count,
        },
    )


# =============================================================================
# Grammar
# =============================================================================

COMMAND_EXAMPLES: dict[str, tuple[str, dict[str, Any]]] = {
    "add_chart": (
        "For adding a new chart",
        {
            "action": "add_chart",
            "targetPageId": "page-id-where-to-add",
            "newChart": {
                "id": "chart-xyz123",
                "type": "bar",
                "title": "Descriptive Chart Title",
                "xAxis": "column_name",
                "yAxis": "column_name",
                "aggregation": "sum",
                "width": 2,
                "height": 2,
                "x": 0,
                "y": 0,
            },
            "message": "Added a bar chart showing...",
        },
    ),
    "update_chart": (
        "For updating one chart (only include the fields that change)",
        {
            "action": "update_chart",
            "targetPageId": "page-id-of-the-chart",
            "targetChartId": "chart-id-to-update",
            "chartUpdate": {"title": "New Title", "colors": ["#7c3aed", "#ef4444"]},
            "message": "Updated the chart title and colors",
        },
    ),
    "update_all_charts": (
        f'For updating EVERY chart of a type across ALL pages ("{ALL_CHART_TYPES}" targets every chart)',
        {
            "action": "update_all_charts",
            "targetChartType": "bar",
            "chartUpdate": {"colors": ["#3b82f6"]},
            "message": "Updated all bar charts to blue across all pages",
        },
    ),
    "delete_chart": (
        "For deleting a chart",
        {
            "action": "delete_chart",
            "targetPageId": "page-id-of-the-chart",
            "targetChartId": "chart-id-to-delete",
            "message": "Deleted the chart",
        },
    ),
    "add_page": (
        "For adding a new page",
        {
            "action": "add_page",
            "newPage": {"id": "page-xyz123", "name": "Descriptive Page Name", "charts": [], "showTitle": True},
            "message": "Added a new page called...",
        },
    ),
    "update_page": (
        "For renaming a page or showing/hiding its title",
        {
            "action": "update_page",
            "targetPageId": "page-id-to-update",
            "pageUpdate": {"name": "New Page Name", "showTitle": True},
            "message": "Updated the page title",
        },
    ),
    "delete_page": (
        "For deleting a page",
        {"action": "delete_page", "targetPageId": "page-id-to-delete", "message": "Deleted the page"},
    ),
    "update_theme": (
        "For switching the dashboard theme",
        {"action": "update_theme", "themeUpdate": "dark", "message": "Switched to the dark theme"},
    ),
    "add_filter": (
        "For adding a filter to a chart",
        {
            "action": "add_filter",
            "targetChartId": "chart-id",
            "filterUpdate": {"column": "Region", "values": ["North", "South"]},
            "message": "Filtered the chart to North and South",
        },
    ),
    "filter_data": (
        "For replacing the data filter of a chart",
        {
            "action": "filter_data",
            "targetChartId": "chart-id",
            "filterUpdate": {"column": "Category", "values": ["Electronics"]},
            "message": "Now showing Electronics only",
        },
    ),
    "sort_data": (
        "For sorting a table or chart",
        {
            "action": "sort_data",
            "targetChartId": "table-sales-data",
            "sortUpdate": {"sortBy": "Sales", "sortOrder": "desc"},
            "message": "Sorted the table by Sales in descending order (highest first)",
        },
    ),
    "reject": (
        "For requests that cannot or should not be fulfilled",
        {"action": "reject", "rejectReason": "ambiguous_request", "message": "Which chart do you mean?"},
    ),
}

CHART_TYPE_NOTES: dict[str, str] = {
    "kpi": 'Single value metric card (include "trend" and "trendValue")',
    "bar": "Vertical bar chart",
    "stacked-bar": "Stacked bar chart",
    "clustered-bar": "Multiple bars grouped by category",
    "line": "Line chart for trends",
    "area": "Area chart",
    "stacked-area": "Stacked area chart",
    "scatter": "Scatter plot for correlations",
    "bubble": "Bubble chart (scatter with size)",
    "pie": "Pie chart for proportions",
    "donut": "Donut chart",
    "heatmap": "Heat map for matrix data",
    "treemap": "Treemap for hierarchical data",
    "waterfall": "Waterfall chart for cumulative effect",
    "funnel": "Funnel chart for conversion",
    "gauge": "Gauge for single metrics with targets",
    "radar": "Radar chart for multi-dimensional comparison",
    "table": 'Data table ("columns" lists the columns to display)',
    "matrix": "Pivot table with drill-down",
}


def _grammar_section() -> str:
    lines = [f"Analyze the request and return ONE JSON object. Allowed actions: {_quoted(ACTIONS)}."]
    for action in ACTIONS:
        title, example = COMMAND_EXAMPLES[action]
        lines.append("")
        lines.append(f"{title}:")
        lines.append(_to_json(example))
    lines.append("")
    lines.append('Every command MUST include a friendly "message" field.')
    return "\n".join(lines)


def _enumerations_section() -> str:
    chart_types = "\n".join(f"- {t}: {CHART_TYPE_NOTES.get(t, t)}" for t in CHART_TYPES)
    return f"""Available chart types (exact, lowercase):
{chart_types}

Allowed values (exact, case-sensitive):
- aggregation: {_quoted(AGGREGATIONS)}
- sortOrder: {_quoted(SORT_ORDERS)}
- titlePosition: {_quoted(TITLE_POSITIONS)}
- trend: {_quoted(TREND_DIRECTIONS)}
- themeUpdate: {_quoted(THEMES)}
- targetChartType: any chart type above, or "{ALL_CHART_TYPES}"
- rejectReason: {_quoted(REJECT_REASONS)}"""


LAYOUT_RULES = f"""IMPORTANT FOR KPI CARDS:
- When adding or updating a KPI card, include "trend" ("up", "down" or "flat") and "trendValue" (a number such as 8.5 for 8.5%)
- For KPI charts set only yAxis (no xAxis)

IMPORTANT FOR TABLE CHARTS:
- "columns" (array of column names) selects the displayed columns
- To add a column include all existing columns plus the new one; to remove one, include all the others
- Column names must match "Available Column Names" exactly (case-sensitive)

SORTING AND FILTERING:
- sortBy MUST be an exact column name from "Available Column Names"
- Use "desc" for "descending", "highest first", "largest"; otherwise "asc"
- Find the table in "Available Table Charts" and use its exact chartId
- If there is only one table, target that one

RESIZING CHARTS:
- The grid has {GRID_COLUMNS} columns; width and height accept 1-{MAX_CHART_SPAN}, but widths above {GRID_COLUMNS} render as full width
- "bigger", "wider" -> increase width or height; "smaller", "narrower" -> decrease (min 1)
- "full width" = width {GRID_COLUMNS}, "half width" = width {GRID_COLUMNS // 2}, "quarter width" = width {max(GRID_COLUMNS // 4, 1)}

TITLE POSITION:
- Chart titles sit at "top" (default) or "bottom"
- "move title to bottom", "show title below" -> titlePosition "bottom"

PAGE TITLE:
- "show page title" -> update_page with showTitle true; "hide page title" -> showTitle false
- To rename a page, use pageUpdate with "name"

MOVING CHARTS:
- "move", "swap" or "reorder" updates x and y; x is the column (0-{GRID_COLUMNS - 1}), y is the row (0, 1, 2, ...), both at most {MAX_CHART_OFFSET}

GENERAL:
- New chart and page ids must be unique: "chart-" or "page-" followed by a random string
- Only use column names that exist in the schema
- Numbers must be JSON numbers, never strings
- Colors as hex: "#7c3aed" (purple), "#ef4444" (red), "#22c55e" (green), "#3b82f6" (blue), "#f59e0b" (amber), "#06b6d4" (cyan)"""


def _final_reminder(context: CompressedContext) -> str:
    return (
        f'FINAL REMINDER: the user is on page "{context.current_page_name}" (ID: {context.current_page_id}). '
        f'Unless another page is named explicitly, use targetPageId "{context.current_page_id}".\n\n'
        f"{OUTPUT_INSTRUCTION}"
    )


def build_command_prompt(
    user_request: str,
    context: CompressedContext,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> BuiltPrompt:
    """
    Build the interpretation prompt for one request.

    Args:
        user_request: The user's request, embedded verbatim
        context: Output of compress_context
        max_tokens: Soft token budget for the warning

    Returns:
        BuiltPrompt
    """
    builder = PromptBuilder(max_tokens=max_tokens)
    builder.add_section("role", ROLE_INSTRUCTIONS)
    builder.add_section("data_ethics", DATA_ETHICS_RULES)
    builder.add_section("page_context", _page_context_rules(context))
    _context_sections(builder, context)
    builder.add_section("user_request", f'User Request: "{user_request}"')
    builder.add_section("grammar", _grammar_section())
    builder.add_section("enumerations", _enumerations_section())
    builder.add_section("layout_rules", LAYOUT_RULES)
    builder.add_section("final_instruction", _final_reminder(context))

    built = builder.build_with_warning()
    if built.warning:
        logger.warning(built.warning)
    return built


__all__ = [
    "BuiltPrompt",
    "DEFAULT_MAX_TOKENS",
    "PromptBuilder",
    "PromptSection",
    "build_command_prompt",
]
