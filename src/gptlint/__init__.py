"""gptlint — a linter whose rules are judged by an LLM."""

__version__ = "0.1.0"
