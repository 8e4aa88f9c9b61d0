"""
Pipeline - Command interpretation orchestrator

Responsibilities:
- Coordinate the components, in a fixed order
- Retry the gateway once on upstream failure (identical prompt)
- Turn a missing target into a benign reject
- NO business logic of its own

Flow:
1. Gateway credentials check (fail fast, before any work)
2. ContextCompressor: minimal grounding context
3. PromptBuilder: deterministic prompt
4. Gateway: raw text (retried at most once)
5. ResponseExtractor: JSON candidate
6. CommandValidator: Command or failures -> ErrorTranslator
7. DashboardMutator: new document

Nothing is written anywhere until step 7 succeeds, so an abandoned request
leaves no partial state.
"""

import logging
import time
from dataclasses import dataclass, field

from promptdash.core.command_grammar import Command, RejectCommand
from promptdash.core.command_validator import CommandValidator
from promptdash.core.context_compressor import compress_context
from promptdash.core.dashboard_mutator import apply_command
from promptdash.core.error_translator import translate_failures
from promptdash.core.gemini import GatewayResult, TextGenerationGateway
from promptdash.core.prompt_builder import DEFAULT_MAX_TOKENS, build_command_prompt
from promptdash.core.response_extractor import FencedBlockExtractor, ResponseExtractor
from promptdash.exceptions import (
    ExtractionFailedException,
    TargetNotFoundException,
    UpstreamUnavailableException,
    ValidationFailedException,
)
from promptdash.modules.dashboard.schemas import Dashboard, DataSchema
from promptdash.observability.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)


@dataclass
class InterpretationResult:
    """Result of interpreting one request."""

    command: Command
    dashboard: Dashboard
    applied: bool
    affected_chart_ids: list[str] = field(default_factory=list)
    attempts: int = 1
    prompt_tokens: int = 0
    prompt_warning: str | None = None
    elapsed_ms: float = 0.0

    def to_payload(self) -> dict:
        """Command payload shape plus the resulting document."""
        return {
            **self.command.to_wire(),
            "dashboard": self.dashboard.to_wire(),
            "applied": self.applied,
        }


def no_matching_target(exc: TargetNotFoundException) -> RejectCommand:
    return RejectCommand(
        action="reject",
        reject_reason="no_matching_chart",
        message=f"I couldn't find the {exc.resource_type} you mentioned, so nothing was changed.",
    )


class CommandInterpreter:
    """
    Turns a free-form request into one applied (or rejected) command.

    Components are injectable so tests can swap the gateway or extractor.
    """

    def __init__(
        self,
        gateway: TextGenerationGateway,
        ledger: UsageLedger | None = None,
        extractor: ResponseExtractor | None = None,
        validator: CommandValidator | None = None,
        max_retries: int = 1,
        max_prompt_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        self.gateway = gateway
        self.ledger = ledger
        self.extractor = extractor or FencedBlockExtractor()
        self.validator = validator or CommandValidator()
        self.max_retries = max(0, min(max_retries, 1))
        self.max_prompt_tokens = max_prompt_tokens

    async def interpret(
        self,
        user_request: str,
        dashboard: Dashboard,
        schema: DataSchema,
    ) -> InterpretationResult:
        """
        Run the full pipeline.

        Raises:
            ConfigurationMissingException: Gateway credentials absent
            UpstreamUnavailableException: Gateway failed on every attempt
            ExtractionFailedException: No JSON recoverable from the output
            ValidationFailedException: Output does not match the grammar
            DuplicateIdentifierException: Created id already in use
        """
        start_time = time.perf_counter()

        # Step 1: credentials, before anything else
        self.gateway.ensure_configured()

        # Step 2-3: context and prompt
        context = compress_context(dashboard, schema, cache=self.ledger.cache if self.ledger else None)
        built = build_command_prompt(user_request, context, max_tokens=self.max_prompt_tokens)

        # Step 4: gateway
        generation, attempts = await self._generate(built.text)

        # Step 5-6: extract and validate
        try:
            candidate = self.extractor.extract(generation.text)
            validation = self.validator.validate(candidate)
        except ExtractionFailedException as exc:
            logger.warning(f"Extraction failed ({exc.reason}); output preview: {exc.preview!r}")
            raise

        if not validation.ok:
            raise ValidationFailedException(translate_failures(validation.failures), validation.failures)

        # Step 7: apply
        command = validation.command
        try:
            mutation = apply_command(dashboard, command)
        except TargetNotFoundException as exc:
            logger.info(f"{command.action} target not found: {exc.resource_type} {exc.resource_id}")
            command = no_matching_target(exc)
            mutation = apply_command(dashboard, command)

        return InterpretationResult(
            command=command,
            dashboard=mutation.dashboard,
            applied=mutation.applied,
            affected_chart_ids=mutation.affected_chart_ids,
            attempts=attempts,
            prompt_tokens=built.tokens,
            prompt_warning=built.warning,
            elapsed_ms=round((time.perf_counter() - start_time) * 1000, 1),
        )

    async def _generate(self, prompt: str) -> tuple[GatewayResult, int]:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self.gateway.generate(prompt), attempt
            except UpstreamUnavailableException as exc:
                if attempt > self.max_retries:
                    raise
                logger.warning(f"Upstream unavailable ({exc.reason}); retrying with the same prompt")


__all__ = ["CommandInterpreter", "InterpretationResult", "no_matching_target"]
