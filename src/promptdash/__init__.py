"""
PromptDash - Natural-language dashboard command interpreter.

Turns free-form change requests into validated dashboard commands.
"""

__version__ = "0.1.0"
