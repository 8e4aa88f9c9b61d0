"""
PromptDash Commands - Router.

API endpoint for natural-language dashboard commands.
"""

from typing import Any

from fastapi import APIRouter, Depends

from promptdash.config import get_settings
from promptdash.core.gemini import GeminiGateway
from promptdash.core.pipeline import CommandInterpreter
from promptdash.deps import require_commands
from promptdash.modules.commands.schemas import PromptRequest
from promptdash.modules.commands.service import CommandsService
from promptdash.observability import get_usage_ledger
from promptdash.schemas import ErrorResponse

router = APIRouter(
    prefix="/api",
    tags=["commands"],
    dependencies=[require_commands],
)


def get_service() -> CommandsService:
    """Get commands service instance."""
    settings = get_settings()
    ledger = get_usage_ledger()
    interpreter = CommandInterpreter(
        gateway=GeminiGateway(settings.gemini, ledger=ledger),
        ledger=ledger,
        max_retries=settings.gemini.max_retries,
        max_prompt_tokens=settings.prompt.max_tokens,
    )
    return CommandsService(interpreter)


@router.post(
    "/prompt",
    responses={
        400: {"model": ErrorResponse, "description": "Output could not be extracted or validated"},
        409: {"model": ErrorResponse, "description": "Created chart or page id already exists"},
        422: {"model": ErrorResponse, "description": "Request body does not match the document model"},
        500: {"model": ErrorResponse, "description": "Missing GEMINI_API_KEY"},
        502: {"model": ErrorResponse, "description": "Gemini unavailable"},
    },
)
async def interpret_prompt(
    request: PromptRequest,
    service: CommandsService = Depends(get_service),
) -> dict[str, Any]:
    """
    Interpret a natural-language change request.

    Returns the command payload (action + its fields), the resulting
    ``dashboard`` and ``applied``. Rejections, including requests that name
    a chart or page that does not exist, return 200 with action "reject".
    """
    return await service.interpret(request)
