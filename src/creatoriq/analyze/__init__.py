"""AI provider orchestration: prompts, providers, cost tracking and the analyzer."""

from .analyzer import Analyzer
from .cost_tracker import CostTracker
from .prompt_store import PromptStore

__all__ = ["Analyzer", "CostTracker", "PromptStore"]
