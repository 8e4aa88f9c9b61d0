"""
Dashboard Mutator - Apply one validated command to a dashboard document

Responsibilities:
- One handler per command variant
- Pure: the input document is never modified
- Atomic: a handler either returns the complete new document or raises
  before anything is observable
- NO validation of raw text (that is command_validator)

Single-chart lookup searches the named page (targetPageId) first when it
exists, then the current page, then every page in document order.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from promptdash.core.command_grammar import (
    ALL_CHART_TYPES,
    AddChartCommand,
    AddFilterCommand,
    AddPageCommand,
    Command,
    DeleteChartCommand,
    DeletePageCommand,
    FilterDataCommand,
    NewChart,
    RejectCommand,
    SortDataCommand,
    UpdateAllChartsCommand,
    UpdateChartCommand,
    UpdatePageCommand,
    UpdateThemeCommand,
)
from promptdash.exceptions import DuplicateIdentifierException, TargetNotFoundException
from promptdash.modules.dashboard.schemas import Chart, Dashboard, Page

logger = logging.getLogger(__name__)


@dataclass
class MutationResult:
    """Outcome of applying one command."""

    dashboard: Dashboard
    applied: bool
    reject_reason: str | None = None
    affected_chart_ids: list[str] = field(default_factory=list)


# =============================================================================
# Lookup helpers
# =============================================================================


def search_pages(dashboard: Dashboard, page_id: str | None = None) -> list[Page]:
    """
    Pages in chart-lookup order.

    A named page that exists comes first, then the current page, then the
    rest in document order.
    """
    preferred = [dashboard.find_page(page_id) if page_id else None, dashboard.current_page]
    ordered: list[Page] = []
    for page in preferred + list(dashboard.pages):
        if page is not None and all(p.id != page.id for p in ordered):
            ordered.append(page)
    return ordered


def locate_chart(dashboard: Dashboard, chart_id: str, page_id: str | None = None) -> tuple[Page, int] | None:
    for page in search_pages(dashboard, page_id):
        for index, chart in enumerate(page.charts):
            if chart.id == chart_id:
                return page, index
    return None


def _require_chart(dashboard: Dashboard, chart_id: str, page_id: str | None = None) -> tuple[Page, int]:
    found = locate_chart(dashboard, chart_id, page_id)
    if found is None:
        raise TargetNotFoundException("chart", chart_id)
    return found


def _require_page(dashboard: Dashboard, page_id: str) -> Page:
    page = dashboard.find_page(page_id)
    if page is None:
        raise TargetNotFoundException("page", page_id)
    return page


def _build_chart(new_chart: NewChart) -> Chart:
    return Chart.model_validate(new_chart.model_dump(exclude_none=True))


def _patch_chart(page: Page, index: int, changes: dict) -> str:
    chart = page.charts[index]
    page.charts[index] = chart.model_copy(update=changes)
    return chart.id


# =============================================================================
# Handlers (operate on a private deep copy)
# =============================================================================


def _update_chart(doc: Dashboard, command: UpdateChartCommand) -> list[str]:
    page, index = _require_chart(doc, command.target_chart_id, command.target_page_id)
    return [_patch_chart(page, index, command.chart_update.changes())]


def _update_all_charts(doc: Dashboard, command: UpdateAllChartsCommand) -> list[str]:
    changes = command.chart_update.changes()
    target = command.target_chart_type
    affected = []
    for page in doc.pages:
        for index, chart in enumerate(page.charts):
            if target == ALL_CHART_TYPES or chart.type == target:
                affected.append(_patch_chart(page, index, changes))
    return affected


def _add_chart(doc: Dashboard, command: AddChartCommand) -> list[str]:
    page_id = command.target_page_id or doc.current_page_id
    if not page_id:
        raise TargetNotFoundException("page", "current")
    page = _require_page(doc, page_id)

    chart = _build_chart(command.new_chart)
    if page.find_chart(chart.id) is not None:
        raise DuplicateIdentifierException("chart", chart.id)

    page.charts.append(chart)
    return [chart.id]


def _delete_chart(doc: Dashboard, command: DeleteChartCommand) -> list[str]:
    found = locate_chart(doc, command.target_chart_id, command.target_page_id)
    if found is None:
        logger.info(f"delete_chart: {command.target_chart_id} already absent")
        return []
    page, index = found
    del page.charts[index]
    return [command.target_chart_id]


def _add_page(doc: Dashboard, command: AddPageCommand) -> list[str]:
    new_page = command.new_page
    if doc.find_page(new_page.id) is not None:
        raise DuplicateIdentifierException("page", new_page.id)

    charts: list[Chart] = []
    for new_chart in new_page.charts:
        if any(c.id == new_chart.id for c in charts):
            raise DuplicateIdentifierException("chart", new_chart.id)
        charts.append(_build_chart(new_chart))

    doc.pages.append(
        Page(
            id=new_page.id,
            name=new_page.name,
            show_title=bool(new_page.show_title),
            charts=charts,
        )
    )
    doc.current_page_id = new_page.id
    return [c.id for c in charts]


def _update_page(doc: Dashboard, command: UpdatePageCommand) -> list[str]:
    page = _require_page(doc, command.target_page_id)
    index = next(i for i, p in enumerate(doc.pages) if p.id == page.id)
    doc.pages[index] = page.model_copy(update=command.page_update.changes())
    return []


def _delete_page(doc: Dashboard, command: DeletePageCommand) -> list[str]:
    page = doc.find_page(command.target_page_id)
    if page is None:
        logger.info(f"delete_page: {command.target_page_id} already absent")
        return []

    doc.pages = [p for p in doc.pages if p.id != page.id]
    if doc.current_page_id == page.id:
        doc.current_page_id = doc.pages[0].id if doc.pages else None
    return [c.id for c in page.charts]


def _update_theme(doc: Dashboard, command: UpdateThemeCommand) -> list[str]:
    doc.theme = command.theme_update
    return []


def _apply_filter(doc: Dashboard, command: AddFilterCommand | FilterDataCommand) -> list[str]:
    page, index = _require_chart(doc, command.target_chart_id, command.target_page_id)
    changes = {
        "filter_column": command.filter_update.column,
        "filter_values": list(command.filter_update.values),
    }
    return [_patch_chart(page, index, changes)]


def _sort_data(doc: Dashboard, command: SortDataCommand) -> list[str]:
    page, index = _require_chart(doc, command.target_chart_id, command.target_page_id)
    changes = {
        "sort_by": command.sort_update.sort_by,
        "sort_order": command.sort_update.sort_order,
    }
    return [_patch_chart(page, index, changes)]


HANDLERS: dict[type, Callable[[Dashboard, Command], list[str]]] = {
    UpdateChartCommand: _update_chart,
    UpdateAllChartsCommand: _update_all_charts,
    AddChartCommand: _add_chart,
    DeleteChartCommand: _delete_chart,
    AddPageCommand: _add_page,
    UpdatePageCommand: _update_page,
    DeletePageCommand: _delete_page,
    UpdateThemeCommand: _update_theme,
    AddFilterCommand: _apply_filter,
    FilterDataCommand: _apply_filter,
    SortDataCommand: _sort_data,
}


def apply_command(dashboard: Dashboard, command: Command) -> MutationResult:
    """
    Apply a validated command.

    Args:
        dashboard: Current document (left untouched)
        command: A validated grammar command

    Returns:
        MutationResult with the new document

    Raises:
        TargetNotFoundException: Referenced chart or page does not exist
        DuplicateIdentifierException: Created chart or page id already in use
    """
    if isinstance(command, RejectCommand):
        return MutationResult(dashboard=dashboard, applied=False, reject_reason=command.reject_reason)

    handler = HANDLERS.get(type(command))
    if handler is None:
        raise TypeError(f"Unsupported command: {type(command).__name__}")

    working = dashboard.model_copy(deep=True)
    affected = handler(working, command)

    logger.info(f"Applied {command.action} (affected charts: {affected})")
    return MutationResult(dashboard=working, applied=True, affected_chart_ids=affected)


__all__ = ["HANDLERS", "MutationResult", "apply_command", "locate_chart", "search_pages"]
