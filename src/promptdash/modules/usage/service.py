"""
PromptDash Usage - Service.

Reads and clears the process-wide usage ledger.
"""

import logging

from promptdash.exceptions import InvalidTargetException
from promptdash.modules.usage.schemas import (
    CacheStats,
    ClearResponse,
    UsageResponse,
    UsageStats,
)
from promptdash.observability.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)


CLEAR_MESSAGES = {
    "usage": "Usage log cleared",
    "cache": "Statistics cache cleared",
    "all": "All caches cleared",
}


class UsageService:
    """Service for usage reporting."""

    def __init__(self, ledger: UsageLedger, recent_limit: int = 10):
        self.ledger = ledger
        self.recent_limit = recent_limit

    def get_usage(self) -> UsageResponse:
        return UsageResponse(
            stats=UsageStats.model_validate(self.ledger.get_stats()),
            cache=CacheStats.model_validate(self.ledger.cache.stats()),
            recent_requests=[r.to_dict() for r in self.ledger.recent(self.recent_limit)],
        )

    def clear(self, target: str | None) -> ClearResponse:
        """
        Clear ledger state by target.

        Raises:
            InvalidTargetException: target is not usage, cache or all
        """
        if target == "usage":
            self.ledger.clear_usage()
        elif target == "cache":
            self.ledger.clear_cache()
        elif target == "all":
            self.ledger.clear_all()
        else:
            raise InvalidTargetException(target)

        logger.info(f"Cleared usage ledger target: {target}")
        return ClearResponse(message=CLEAR_MESSAGES[target])
