# Insight Service: generative AI text, streaming, speech and sentiment.
# Adapters raise InsightError; InsightService is the fail-soft entry point.

from guidex.insight.adapters import (
    BaseInsightAdapter,
    GeminiAdapter,
    RuleBasedAdapter,
    create_insight_adapter,
    load_model_config,
)
from guidex.insight.service import (
    COMPLETE_FALLBACK,
    STREAM_FALLBACK,
    InsightService,
    SentimentResult,
    close_insight_service,
    get_insight_service,
    reset_insight_service,
)

__all__ = [
    "BaseInsightAdapter",
    "COMPLETE_FALLBACK",
    "GeminiAdapter",
    "InsightService",
    "RuleBasedAdapter",
    "STREAM_FALLBACK",
    "SentimentResult",
    "close_insight_service",
    "create_insight_adapter",
    "get_insight_service",
    "load_model_config",
    "reset_insight_service",
]
