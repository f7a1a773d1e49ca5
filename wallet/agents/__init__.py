"""AI agents package."""

from wallet.agents.ai_agents import (
    INSIGHT_FALLBACK_TEXT,
    AgentResponseError,
    InsightAgent,
    VoiceExtractionAgent,
)

__all__ = [
    "INSIGHT_FALLBACK_TEXT",
    "AgentResponseError",
    "InsightAgent",
    "VoiceExtractionAgent",
]
