from __future__ import annotations

from enum import Enum


class AnalysisType(str, Enum):
    """Kinds of channel analysis, each with its own prompt template."""

    QUICK_SCAN = "QUICK_SCAN"
    DEEP_DIVE = "DEEP_DIVE"
    COMPETITOR_COMPARE = "COMPETITOR_COMPARE"
    GROWTH_STRATEGY = "GROWTH_STRATEGY"


class Limits:
    """Shared hard limits and defaults."""

    MAX_USAGE_HISTORY = 10_000
    BATCH_CONCURRENCY = 3
    BATCH_DELAY_MS = 1_000
    PROVIDER_TIMEOUT_SECONDS = 120
    RATE_LIMIT_SWEEP_SECONDS = 10 * 60


class TokenEstimates:
    """Heuristic token allowances used for advisory cost previews."""

    BASE_PROMPT = 500
    METADATA = 50
    PER_RECENT_VIDEO = 100
    CHARS_PER_TOKEN = 4

    INPUT_BY_TYPE = {
        AnalysisType.QUICK_SCAN: 300,
        AnalysisType.DEEP_DIVE: 800,
        AnalysisType.COMPETITOR_COMPARE: 600,
        AnalysisType.GROWTH_STRATEGY: 700,
    }
    OUTPUT_BY_TYPE = {
        AnalysisType.QUICK_SCAN: 800,
        AnalysisType.DEEP_DIVE: 1500,
        AnalysisType.COMPETITOR_COMPARE: 1200,
        AnalysisType.GROWTH_STRATEGY: 1400,
    }
