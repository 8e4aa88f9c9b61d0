"""Shared fixtures: a sample dashboard, its data schema and a scripted gateway."""

import json

import pytest

from promptdash.config import get_settings
from promptdash.core.gemini import GatewayResult, TextGenerationGateway
from promptdash.exceptions import ConfigurationMissingException
from promptdash.modules.dashboard.schemas import Dashboard, DataSchema


SAMPLE_DASHBOARD = {
    "currentPageId": "page-overview",
    "theme": "light",
    "pages": [
        {
            "id": "page-overview",
            "name": "Overview",
            "showTitle": False,
            "charts": [
                {
                    "id": "kpi-revenue",
                    "type": "kpi",
                    "title": "Total Revenue",
                    "yAxis": "Revenue",
                    "aggregation": "sum",
                    "trend": "up",
                    "trendValue": 8.5,
                    "width": 1,
                    "height": 1,
                },
                {
                    "id": "bar-sales",
                    "type": "bar",
                    "title": "Sales by Region",
                    "xAxis": "Region",
                    "yAxis": ["Sales", "Profit"],
                    "colors": ["#7c3aed"],
                    "xAxisTitle": "Region",
                },
                {
                    "id": "table-orders",
                    "type": "table",
                    "title": "Orders",
                    "columns": ["Region", "Product", "Sales"],
                    "width": 4,
                    "y": 2,
                },
                {"id": "chart-shared", "type": "pie", "title": "Share (overview)"},
            ],
        },
        {
            "id": "page-details",
            "name": "Details",
            "showTitle": True,
            "charts": [
                {"id": "bar-profit", "type": "bar", "title": "Profit by Category", "xAxis": "Category", "yAxis": "Profit"},
                {"id": "line-trend", "type": "line", "title": "Monthly Trend", "xAxis": "Month", "yAxis": "Sales"},
                {"id": "matrix-pivot", "type": "matrix", "title": "Pivot"},
                {"id": "chart-shared", "type": "pie", "title": "Share (details)"},
            ],
        },
    ],
}

SAMPLE_SCHEMA = {
    "rowCount": 1200,
    "columns": [
        {"name": "Region", "type": "string", "isMetric": False, "isDimension": True, "sampleValues": ["North", "South"]},
        {"name": "Product", "type": "string", "isMetric": False, "isDimension": True},
        {"name": "Category", "type": "string", "isMetric": False, "isDimension": True},
        {"name": "Month", "type": "date", "isMetric": False, "isDimension": True},
        {"name": "Sales", "type": "number", "isMetric": True, "isDimension": False},
        {"name": "Profit", "type": "number", "isMetric": True, "isDimension": False},
        {"name": "Revenue", "type": "number", "isMetric": True, "isDimension": False},
    ],
}


class ScriptedGateway(TextGenerationGateway):
    """Gateway that replays queued outputs (strings) or raises queued exceptions."""

    def __init__(self, *outputs, configured: bool = True):
        self.model = "scripted-model"
        self.outputs = list(outputs)
        self.configured = configured
        self.prompts: list[str] = []

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationMissingException("GEMINI_API_KEY")

    async def generate(self, prompt: str) -> GatewayResult:
        self.ensure_configured()
        self.prompts.append(prompt)
        output = self.outputs.pop(0)
        if isinstance(output, BaseException):
            raise output
        if not isinstance(output, str):
            output = json.dumps(output)
        return GatewayResult(text=output, model=self.model, input_tokens=10, output_tokens=5, latency_ms=1.0)


@pytest.fixture
def dashboard() -> Dashboard:
    return Dashboard.model_validate(SAMPLE_DASHBOARD)


@pytest.fixture
def schema() -> DataSchema:
    return DataSchema.model_validate(SAMPLE_SCHEMA)


@pytest.fixture
def clean_settings(monkeypatch):
    """Fresh settings with a known Gemini key; restores the cache afterwards."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
