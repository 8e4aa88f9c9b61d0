"""
Command Grammar - Closed set of dashboard mutation commands

Responsibilities:
- Declare one strict model per command variant (tagged by ``action``)
- Declare the enumerations the interpreter may emit
- NO parsing of raw model text (that is command_validator)
- NO application to a document (that is dashboard_mutator)

Strict models: numeric strings are not numbers, enumeration values must match
exactly (case-sensitive), unknown keys are ignored. Payload fields are declared
before target identifiers so a malformed patch is the first failure reported.
"""

from typing import Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from promptdash.modules.dashboard.schemas import (
    DEFAULT_CHART_HEIGHT,
    DEFAULT_CHART_TITLE,
    DEFAULT_CHART_WIDTH,
    MAX_CHART_OFFSET,
    MAX_CHART_SPAN,
    Aggregation,
    AxisBinding,
    ChartType,
    SortOrder,
    Theme,
    TitlePosition,
    TrendDirection,
)


RejectReason = Literal[
    "data_manipulation",
    "impossible_action",
    "ambiguous_request",
    "no_matching_chart",
    "other",
]
TargetChartType = Literal[ChartType, "all"]

REJECT_REASONS: tuple[str, ...] = get_args(RejectReason)
ALL_CHART_TYPES = "all"
TARGET_CHART_TYPES: tuple[str, ...] = get_args(TargetChartType)


class GrammarModel(BaseModel):
    """Strict, immutable base for every grammar object."""

    model_config = ConfigDict(
        strict=True,
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """Payload shape returned to callers (camelCase, unset fields omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# Payload objects
# =============================================================================


class ChartPatch(GrammarModel):
    """Partial chart update. Only fields present are applied."""

    type: ChartType | None = None
    title: str | None = None
    title_position: TitlePosition | None = None
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
    width: int | None = Field(default=None, ge=1, le=MAX_CHART_SPAN)
    height: int | None = Field(default=None, ge=1, le=MAX_CHART_SPAN)
    x: int | None = Field(default=None, ge=0, le=MAX_CHART_OFFSET)
    y: int | None = Field(default=None, ge=0, le=MAX_CHART_OFFSET)

    def changes(self) -> dict:
        """Non-null fields the model actually sent, keyed by Python name."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class NewChart(GrammarModel):
    """A complete chart to add. Geometry and title are defaulted when unset."""

    id: str = Field(..., min_length=1)
    type: ChartType
    title: str = DEFAULT_CHART_TITLE
    title_position: TitlePosition | None = None
    x_axis: str | None = None
    y_axis: AxisBinding | None = None
    group_by: str | None = None
    aggregation: Aggregation | None = None
    trend: TrendDirection | None = None
    trend_value: float | None = None
    columns: list[str] | None = None
    colors: list[str] | None = None
    width: int = Field(default=DEFAULT_CHART_WIDTH, ge=1, le=MAX_CHART_SPAN)
    height: int = Field(default=DEFAULT_CHART_HEIGHT, ge=1, le=MAX_CHART_SPAN)
    x: int = Field(default=0, ge=0, le=MAX_CHART_OFFSET)
    y: int = Field(default=0, ge=0, le=MAX_CHART_OFFSET)


class NewPage(GrammarModel):
    id: str = Field(..., min_length=1)
    name: str
    charts: list[NewChart] = Field(default_factory=list)
    show_title: bool | None = None


class PagePatch(GrammarModel):
    name: str | None = None
    show_title: bool | None = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class FilterUpdate(GrammarModel):
    column: str
    values: list[str]


class SortUpdate(GrammarModel):
    sort_by: str
    sort_order: SortOrder = "asc"


# =============================================================================
# Command variants
# =============================================================================


class UpdateChartCommand(GrammarModel):
    action: Literal["update_chart"]
    chart_update: ChartPatch
    target_chart_id: str
    target_page_id: str | None = None
    message: str


class UpdateAllChartsCommand(GrammarModel):
    action: Literal["update_all_charts"]
    chart_update: ChartPatch
    target_chart_type: TargetChartType
    message: str


class AddChartCommand(GrammarModel):
    action: Literal["add_chart"]
    new_chart: NewChart
    target_page_id: str | None = None
    message: str


class DeleteChartCommand(GrammarModel):
    action: Literal["delete_chart"]
    target_chart_id: str
    target_page_id: str | None = None
    message: str


class AddPageCommand(GrammarModel):
    action: Literal["add_page"]
    new_page: NewPage
    message: str


class UpdatePageCommand(GrammarModel):
    action: Literal["update_page"]
    page_update: PagePatch
    target_page_id: str
    message: str


class DeletePageCommand(GrammarModel):
    action: Literal["delete_page"]
    target_page_id: str
    message: str


class UpdateThemeCommand(GrammarModel):
    action: Literal["update_theme"]
    theme_update: Theme
    message: str


class AddFilterCommand(GrammarModel):
    action: Literal["add_filter"]
    filter_update: FilterUpdate
    target_chart_id: str
    target_page_id: str | None = None
    message: str


class FilterDataCommand(GrammarModel):
    action: Literal["filter_data"]
    filter_update: FilterUpdate
    target_chart_id: str
    target_page_id: str | None = None
    message: str


class SortDataCommand(GrammarModel):
    action: Literal["sort_data"]
    sort_update: SortUpdate
    target_chart_id: str
    target_page_id: str | None = None
    message: str


class RejectCommand(GrammarModel):
    action: Literal["reject"]
    reject_reason: RejectReason = "other"
    message: str


Command = Union[
    UpdateChartCommand,
    UpdateAllChartsCommand,
    AddChartCommand,
    DeleteChartCommand,
    AddPageCommand,
    UpdatePageCommand,
    DeletePageCommand,
    UpdateThemeCommand,
    AddFilterCommand,
    SortDataCommand,
    FilterDataCommand,
    RejectCommand,
]

COMMAND_MODELS: dict[str, type[GrammarModel]] = {
    get_args(model.model_fields["action"].annotation)[0]: model
    for model in get_args(Command)
}

ACTIONS: tuple[str, ...] = tuple(COMMAND_MODELS)


__all__ = [
    "ACTIONS",
    "ALL_CHART_TYPES",
    "COMMAND_MODELS",
    "REJECT_REASONS",
    "TARGET_CHART_TYPES",
    "AddChartCommand",
    "AddFilterCommand",
    "AddPageCommand",
    "ChartPatch",
    "Command",
    "DeleteChartCommand",
    "DeletePageCommand",
    "FilterDataCommand",
    "FilterUpdate",
    "GrammarModel",
    "NewChart",
    "NewPage",
    "PagePatch",
    "RejectCommand",
    "RejectReason",
    "SortDataCommand",
    "SortUpdate",
    "UpdateAllChartsCommand",
    "UpdateChartCommand",
    "UpdatePageCommand",
    "UpdateThemeCommand",
]
