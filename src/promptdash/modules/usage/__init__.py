"""PromptDash Usage Module - Token usage and statistics cache."""

from promptdash.modules.usage.router import router
from promptdash.modules.usage.service import UsageService

__all__ = ["router", "UsageService"]
