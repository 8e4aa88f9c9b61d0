"""
Error Translator - Turn validation failures into one friendly sentence

Responsibilities:
- Pick the first failure (validator order)
- Word it for end users, by field marker then by failure kind
- NEVER expose field paths or raw pydantic messages
"""

from typing import Sequence

from promptdash.core.command_validator import ValidationFailure


EMPTY_FAILURES_MESSAGE = "I couldn't process that request, so please try rephrasing it."
INVALID_TYPE_MESSAGE = "I couldn't understand part of your request, so please try rephrasing it."
RETRY_MESSAGE = "Something went wrong processing your request, so please try again with different wording."

# Checked in order against the joined path (case-sensitive substring).
ENUM_MARKER_MESSAGES: tuple[tuple[str, str], ...] = (
    ("titlePosition", 'Sorry, "{received}" is not a valid title position; you can use "top" or "bottom".'),
    ("aggregation", 'Sorry, "{received}" is not a valid aggregation; try sum, avg, count, min, or max.'),
    ("sortOrder", 'Sorry, "{received}" is not a valid sort order; use "asc" (ascending) or "desc" (descending).'),
    ("type", 'Sorry, "{received}" is not a supported chart type; try bar, line, pie, kpi, table, etc.'),
)
GENERIC_ENUM_MESSAGE = 'Sorry, "{received}" is not valid; available options: {options}.'


def translate_failures(failures: Sequence[ValidationFailure]) -> str:
    """
    Return exactly one user-facing sentence for the first failure.

    Later failures are not surfaced.
    """
    if not failures:
        return EMPTY_FAILURES_MESSAGE

    failure = failures[0]

    if failure.kind == "invalid_enum":
        joined = "/".join(str(part) for part in failure.path)
        received = _display(failure.received)
        for marker, template in ENUM_MARKER_MESSAGES:
            if marker in joined:
                return template.format(received=received)
        return GENERIC_ENUM_MESSAGE.format(received=received, options=", ".join(failure.options))

    if failure.kind == "invalid_type":
        return INVALID_TYPE_MESSAGE

    return RETRY_MESSAGE


def _display(value) -> str:
    if value is None:
        return "null"
    return str(value)


__all__ = ["translate_failures"]
