"""
PromptDash Usage - Schemas.

Pydantic models for the usage endpoint.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UsageStats(BaseModel):
    """Aggregate token usage over the retained records."""

    model_config = ConfigDict(populate_by_name=True)

    total_requests: int = Field(alias="totalRequests")
    total_input_tokens: int = Field(alias="totalInputTokens")
    total_output_tokens: int = Field(alias="totalOutputTokens")
    total_tokens: int = Field(alias="totalTokens")
    avg_input_tokens: int = Field(alias="avgInputTokens")
    avg_output_tokens: int = Field(alias="avgOutputTokens")
    avg_latency_ms: int = Field(alias="avgLatencyMs")
    error_count: int = Field(default=0, alias="errorCount")
    requests_by_endpoint: dict[str, int] = Field(default_factory=dict, alias="requestsByEndpoint")
    tokens_by_endpoint: dict[str, int] = Field(default_factory=dict, alias="tokensByEndpoint")


class CacheStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    size: int
    keys: list[str] = Field(default_factory=list)
    hits: int = 0
    misses: int = 0
    hit_rate: float = Field(default=0.0, alias="hitRate")


class UsageResponse(BaseModel):
    """Usage summary: stats, cache counters and the most recent calls."""

    model_config = ConfigDict(populate_by_name=True)

    stats: UsageStats
    cache: CacheStats
    recent_requests: list[dict[str, Any]] = Field(default_factory=list, alias="recentRequests")


class ClearResponse(BaseModel):
    message: str
