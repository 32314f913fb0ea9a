"""Offline play: computer opponents and the terminal practice table."""

from .bots import AIDecision, make_ai_decision
from .session import PracticeGame

__all__ = ["AIDecision", "make_ai_decision", "PracticeGame"]
