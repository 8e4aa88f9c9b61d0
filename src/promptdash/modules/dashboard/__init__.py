"""
PromptDash Dashboard Module.

Dashboard document and data schema models shared by the interpreter.
"""

from promptdash.modules.dashboard.schemas import (
    Chart,
    ColumnDescriptor,
    Dashboard,
    DataSchema,
    Page,
)

__all__ = ["Chart", "ColumnDescriptor", "Dashboard", "DataSchema", "Page"]
