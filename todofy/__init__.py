"""
todofy package

Model-fallback summarization with a token budget, plus readiness gating of
the collaborating services the email-to-task pipeline depends on.
"""

__all__ = [
    "config",
    "logging_config",
    "models",
    "catalog",
    "usage_tracker",
    "llm_client",
    "summarizer",
    "connections",
    "health",
    "prompts",
    "cli",
]
