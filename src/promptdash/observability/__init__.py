"""
PromptDash Observability Module.

Provides in-process usage accounting for text-generation calls and the
statistics cache.
"""

from promptdash.observability.usage_ledger import (
    StatisticsCache,
    TokenUsage,
    UsageLedger,
    content_hash,
    estimate_object_tokens,
    estimate_tokens,
    get_usage_ledger,
)

__all__ = [
    "StatisticsCache",
    "TokenUsage",
    "UsageLedger",
    "content_hash",
    "estimate_object_tokens",
    "estimate_tokens",
    "get_usage_ledger",
]
