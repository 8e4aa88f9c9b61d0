"""
PromptDash Commands - Service.

Runs the interpreter for one request and shapes the response payload.
"""

import logging
from typing import Any

from promptdash.core.pipeline import CommandInterpreter
from promptdash.modules.commands.schemas import PromptRequest

logger = logging.getLogger(__name__)


class CommandsService:
    """Service for command interpretation."""

    def __init__(self, interpreter: CommandInterpreter):
        self.interpreter = interpreter

    async def interpret(self, request: PromptRequest) -> dict[str, Any]:
        """
        Interpret a request against the supplied document.

        Returns the validated command's payload (camelCase, unset fields
        omitted) plus ``dashboard`` (the resulting document) and ``applied``.
        A reject is a normal result, not an error.
        """
        result = await self.interpreter.interpret(
            request.prompt,
            request.current_dashboard,
            request.data_schema,
        )

        logger.info(
            f"Interpreted request as {result.command.action} "
            f"(applied={result.applied}, attempts={result.attempts}, "
            f"prompt_tokens={result.prompt_tokens}, {result.elapsed_ms}ms)"
        )
        return result.to_payload()
