"""PromptLab: backend API for a prompt-engineering course."""

__version__ = "0.1.0"
