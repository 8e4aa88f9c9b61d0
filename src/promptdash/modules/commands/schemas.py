"""
PromptDash Commands - Schemas.

Pydantic models for the command endpoint.
"""

from pydantic import Field

from promptdash.modules.dashboard.schemas import CamelModel, Dashboard, DataSchema


# =============================================================================
# Request Schemas
# =============================================================================


class PromptRequest(CamelModel):
    """A free-form change request with the document and schema it applies to."""

    prompt: str = Field(..., min_length=1, description="The user's request, in natural language")
    current_dashboard: Dashboard
    data_schema: DataSchema = Field(default_factory=DataSchema, alias="schema")
