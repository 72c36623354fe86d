"""AI integration: deep analysis of survey answers."""

from .summary import SummaryService

__all__ = ["SummaryService"]
