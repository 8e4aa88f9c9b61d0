"""
Command Validator - Parse a JSON candidate into exactly one Command

Responsibilities:
- Parse the candidate text as JSON
- Dispatch on ``action`` to the matching grammar model
- Validate strictly (no coercion, exact enumeration matches)
- Report ordered, field-level failures
- NO user-facing wording (that is error_translator)

An unknown ``action`` fails the whole command; nothing is ever partially
validated or applied.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import ValidationError

from promptdash.core.command_grammar import (
    ACTIONS,
    COMMAND_MODELS,
    REJECT_REASONS,
    TARGET_CHART_TYPES,
    Command,
)
from promptdash.exceptions import ExtractionFailedException
from promptdash.modules.dashboard.schemas import (
    AGGREGATIONS,
    CHART_TYPES,
    SORT_ORDERS,
    THEMES,
    TITLE_POSITIONS,
    TREND_DIRECTIONS,
)

logger = logging.getLogger(__name__)


FailureKind = Literal["invalid_enum", "invalid_type", "malformed"]

# Accepted values per enumerated field (wire name).
ENUM_OPTIONS: dict[str, tuple[str, ...]] = {
    "action": ACTIONS,
    "type": CHART_TYPES,
    "aggregation": AGGREGATIONS,
    "sortOrder": SORT_ORDERS,
    "titlePosition": TITLE_POSITIONS,
    "trend": TREND_DIRECTIONS,
    "themeUpdate": THEMES,
    "rejectReason": REJECT_REASONS,
    "targetChartType": TARGET_CHART_TYPES,
}

# Fields typed as a union; pydantic reports one error per branch.
UNION_FIELDS = frozenset({"yAxis"})

_QUOTED = re.compile(r"'([^']*)'")


@dataclass(frozen=True)
class ValidationFailure:
    """A single field-level grammar violation."""

    path: tuple[str | int, ...]
    kind: FailureKind
    message: str
    received: Any = None
    options: tuple[str, ...] = ()

    @property
    def field_path(self) -> str:
        return ".".join(str(part) for part in self.path)


@dataclass
class ValidationResult:
    """Either a validated command or the ordered failures."""

    command: Command | None = None
    failures: list[ValidationFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.command is not None


class CommandValidator:
    """
    Validates candidate JSON against the closed command grammar.

    Parsing is two-step: a plain JSON decode to read ``action``, then the
    variant model validates the original text in strict JSON mode.
    """

    def validate(self, candidate: str) -> ValidationResult:
        """
        Validate a candidate JSON string.

        Raises:
            ExtractionFailedException: If the candidate is not JSON at all
        """
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as exc:
            raise ExtractionFailedException(candidate, reason=f"invalid JSON: {exc.msg}") from exc

        if not isinstance(payload, dict):
            return self._fail(
                ValidationFailure(
                    path=(),
                    kind="malformed",
                    message="Expected a JSON object",
                    received=type(payload).__name__,
                )
            )

        action = payload.get("action")
        if not isinstance(action, str):
            return self._fail(
                ValidationFailure(
                    path=("action",),
                    kind="invalid_type",
                    message="Field required" if "action" not in payload else "Input should be a valid string",
                    received=action,
                )
            )

        model = COMMAND_MODELS.get(action)
        if model is None:
            return self._fail(
                ValidationFailure(
                    path=("action",),
                    kind="invalid_enum",
                    message=f"Unknown action: {action}",
                    received=action,
                    options=ACTIONS,
                )
            )

        try:
            command = model.model_validate_json(candidate, strict=True)
        except ValidationError as exc:
            return self._fail(*map_validation_errors(exc.errors()))

        logger.debug(f"Validated command: {action}")
        return ValidationResult(command=command)

    @staticmethod
    def _fail(*failures: ValidationFailure) -> ValidationResult:
        for failure in failures:
            logger.info(f"Command validation failure at '{failure.field_path}': {failure.kind} ({failure.message})")
        return ValidationResult(failures=list(failures))


# =============================================================================
# Pydantic error mapping
# =============================================================================


def map_validation_errors(errors: list[dict[str, Any]]) -> list[ValidationFailure]:
    """Translate pydantic error dicts into failures, preserving order."""
    failures: list[ValidationFailure] = []
    seen_union_paths: set[tuple] = set()

    for error in errors:
        path = _collapse_union_path(tuple(error.get("loc", ())))
        error_type = error.get("type", "")
        is_union_branch = len(path) < len(error.get("loc", ()))

        if is_union_branch:
            if path in seen_union_paths:
                continue
            seen_union_paths.add(path)
            failures.append(
                ValidationFailure(
                    path=path,
                    kind="invalid_type",
                    message="Input should be a column name or a list of column names",
                    received=_received(error, path),
                )
            )
            continue

        failures.append(
            ValidationFailure(
                path=path,
                kind=_classify(error_type),
                message=error.get("msg", ""),
                received=error.get("input"),
                options=_options_for(path, error) if error_type == "literal_error" else (),
            )
        )

    return failures


def _classify(error_type: str) -> FailureKind:
    if error_type in ("literal_error", "enum"):
        return "invalid_enum"
    if (
        error_type == "missing"
        or error_type == "int_from_float"
        or error_type.endswith("_type")
        or error_type.endswith("_parsing")
    ):
        return "invalid_type"
    return "malformed"


def _collapse_union_path(loc: tuple) -> tuple:
    """Cut the branch tags pydantic appends after a union field."""
    for i, part in enumerate(loc):
        if part in UNION_FIELDS:
            return loc[: i + 1]
    return loc


def _received(error: dict[str, Any], path: tuple) -> Any:
    # Branch errors may point inside a list; report the field value itself.
    if len(error.get("loc", ())) == len(path) + 1:
        return error.get("input")
    return None


def _options_for(path: tuple, error: dict[str, Any]) -> tuple[str, ...]:
    field_name = next((p for p in reversed(path) if isinstance(p, str)), "")
    if field_name in ENUM_OPTIONS:
        return ENUM_OPTIONS[field_name]
    expected = (error.get("ctx") or {}).get("expected", "")
    return tuple(_QUOTED.findall(str(expected)))


__all__ = [
    "CommandValidator",
    "ENUM_OPTIONS",
    "ValidationFailure",
    "ValidationResult",
    "map_validation_errors",
]
