"""Review Context Engine - bounded, prioritized context for AI code review."""

__version__ = "0.1.0"
