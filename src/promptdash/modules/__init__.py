"""PromptDash Modules Package."""
