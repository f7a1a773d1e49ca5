"""
Tests for the AI agents.

google.generativeai is monkeypatched: no real model calls.
"""

import base64
from datetime import date
from decimal import Decimal

import pytest

from wallet.agents import (
    INSIGHT_FALLBACK_TEXT,
    AgentResponseError,
    InsightAgent,
    VoiceExtractionAgent,
)
from wallet.agents import ai_agents
from wallet.config.settings import GeminiSettings
from wallet.models.extraction import ExtractionRequest
from wallet.models.reports import InsightSummary


class FakeReply:
    def __init__(self, text: str):
        self.text = text


class FakeModel:
    def __init__(self, text: str = "", error: Exception = None):
        self.text = text
        self.error = error
        self.calls = []

    async def generate_content_async(self, contents):
        self.calls.append(contents)
        if self.error:
            raise self.error
        return FakeReply(self.text)


@pytest.fixture
def fake_model(monkeypatch):
    model = FakeModel()
    monkeypatch.setattr(ai_agents.genai, "configure", lambda **kwargs: None)
    monkeypatch.setattr(ai_agents.genai, "GenerativeModel", lambda **kwargs: model)
    return model


@pytest.fixture
def gemini_settings() -> GeminiSettings:
    return GeminiSettings(api_key="test-key")


@pytest.fixture
def request_model() -> ExtractionRequest:
    return ExtractionRequest(
        audio=base64.b64encode(b"audio-bytes").decode("ascii"),
        categories=["Food", "Transport"],
        current_date=date(2024, 3, 20),
    )


class TestVoiceExtractionAgent:
    """Prompt, inline audio and reply parsing."""

    @pytest.mark.asyncio
    async def test_extract_strips_code_fences(self, fake_model, gemini_settings, request_model):
        """Test the usual ```json wrapped reply."""
        fake_model.text = '```json\n[{"amount": 50, "category_name": "Transport"}]\n```'
        agent = VoiceExtractionAgent(gemini_settings, mime_type="audio/m4a")

        candidates = await agent.extract_transactions(request_model)

        assert candidates == [{"amount": 50, "category_name": "Transport"}]
        prompt, audio_part = fake_model.calls[0]
        assert "Today's date: 2024-03-20" in prompt
        assert "Food, Transport" in prompt
        assert audio_part == {"mime_type": "audio/m4a", "data": b"audio-bytes"}

    def test_reply_must_be_a_list(self):
        """Test an object reply."""
        with pytest.raises(AgentResponseError):
            VoiceExtractionAgent.parse_response('{"amount": 5}')

    def test_reply_must_be_json(self):
        """Test a prose reply."""
        with pytest.raises(AgentResponseError):
            VoiceExtractionAgent.parse_response("I heard fifty dollars for a taxi")

    def test_empty_list_reply(self):
        """Test that silence parses to no candidates."""
        assert VoiceExtractionAgent.parse_response("[]") == []

    @pytest.mark.asyncio
    async def test_invalid_base64_audio(self, fake_model, gemini_settings):
        """Test that garbage audio never reaches the model."""
        agent = VoiceExtractionAgent(gemini_settings, mime_type="audio/m4a")
        request = ExtractionRequest(audio="not base64!", categories=[], current_date=date(2024, 3, 20))
        with pytest.raises(AgentResponseError):
            await agent.extract_transactions(request)
        assert fake_model.calls == []


class TestInsightAgent:
    """Monthly commentary with a fixed fallback."""

    @pytest.fixture
    def summary(self) -> InsightSummary:
        return InsightSummary(
            total_income=Decimal("3000"),
            total_expense=Decimal("1200"),
            savings=Decimal("1800"),
            expense_breakdown={"Food & Dining": Decimal("700")},
            transaction_count=12,
        )

    @pytest.mark.asyncio
    async def test_structured_reply(self, fake_model, gemini_settings, summary):
        """Test a JSON reply."""
        fake_model.text = '{"analysis": "You saved 60%.", "recommendations": ["Cook at home"]}'
        insight = await InsightAgent(gemini_settings).generate_insight(summary)
        assert insight.analysis == "You saved 60%."
        assert insight.recommendations == ["Cook at home"]
        assert "Food & Dining" in fake_model.calls[0]

    @pytest.mark.asyncio
    async def test_plain_text_reply(self, fake_model, gemini_settings, summary):
        """Test a reply that ignored the JSON instruction."""
        fake_model.text = "Nice saving rate this month."
        insight = await InsightAgent(gemini_settings).generate_insight(summary)
        assert insight.analysis == "Nice saving rate this month."
        assert insight.recommendations == []

    @pytest.mark.asyncio
    async def test_model_failure_returns_apology(self, fake_model, gemini_settings, summary):
        """Test the fallback text."""
        fake_model.error = RuntimeError("quota exceeded")
        insight = await InsightAgent(gemini_settings).generate_insight(summary)
        assert insight.analysis == INSIGHT_FALLBACK_TEXT
