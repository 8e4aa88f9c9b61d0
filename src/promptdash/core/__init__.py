"""
PromptDash Core - Command interpretation pipeline.

Flow:
    Compressor -> PromptBuilder -> Gateway -> Extractor -> Validator
    -> (ErrorTranslator | DashboardMutator)
"""
