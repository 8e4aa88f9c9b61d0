"""PromptDash Commands Module - Natural-language dashboard commands."""

from promptdash.modules.commands.router import router
from promptdash.modules.commands.service import CommandsService

__all__ = ["router", "CommandsService"]
