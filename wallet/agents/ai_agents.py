"""
AI Agents for the Wallet

DESIGN DECISION: The model is used in exactly two places, each behind
a small class with a fixed prompt:

1. VOICE EXTRACTION AGENT:
   - CAN: Turn a spoken clip into candidate transactions
   - CAN: Pick a category name from the list it is given
   - CANNOT: Write anything to the store (candidates are validated
     and applied by the voice flow)

2. INSIGHT AGENT:
   - CAN: Comment on the month's aggregates
   - CANNOT: See individual transactions
   - MUST: Fall back to a fixed apology when the model fails

The LLM is a TRANSLATOR, not an ORACLE.
It converts speech into structured proposals and numbers into prose.
"""

import base64
import binascii
import json
from typing import Any, Optional

import google.generativeai as genai
import structlog

from wallet.config import get_settings
from wallet.config.settings import GeminiSettings
from wallet.models.extraction import ExtractionRequest
from wallet.models.reports import FinancialInsight, InsightSummary


logger = structlog.get_logger(__name__)

INSIGHT_FALLBACK_TEXT = (
    "Sorry, I couldn't analyze your data right now. Please try again later."
)


class AgentResponseError(Exception):
    """The model answered with something we cannot use."""
    pass


def _strip_code_fences(text: str) -> str:
    """Gemini sometimes wraps JSON in ```json ... ``` fences."""
    return text.replace("```json", "").replace("```", "").strip()


class VoiceExtractionAgent:
    """
    Extracts transactions from an audio clip with Gemini.

    Used by the extraction endpoint. Returns raw candidate dicts;
    nothing here decides what gets saved.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        mime_type: Optional[str] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._mime_type = mime_type or get_settings().extraction.audio_mime_type
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": 0.1,  # Low temperature for consistency
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    def build_prompt(self, request: ExtractionRequest) -> str:
        return f"""Extract financial transactions from the provided audio.
Return ONLY a JSON array of objects. Do not include any other text or markdown formatting.

JSON Structure:
[{{
  "amount": number,
  "note": string,
  "type": "INCOME" | "EXPENSE",
  "category_name": string,
  "date": "YYYY-MM-DD"
}}]

Context:
- Today's date: {request.current_date.isoformat()}
- Available categories: {', '.join(request.categories)}
- If a transaction date is not mentioned, use Today's date.
- If no note is mentioned, leave it as an empty string.
- Identify the most relevant category from the list above.
- If no transaction is spoken, return an empty array []."""

    @staticmethod
    def parse_response(text: str) -> list[dict[str, Any]]:
        """Parse the model's reply into a list of candidate objects."""
        cleaned = _strip_code_fences(text)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise AgentResponseError(f"Model reply is not JSON: {e}") from e

        if not isinstance(data, list):
            raise AgentResponseError("Model reply is not a JSON array")

        return data

    async def extract_transactions(
        self,
        request: ExtractionRequest,
    ) -> list[dict[str, Any]]:
        """
        Send the prompt plus inline audio and return the candidates.

        Raises:
            AgentResponseError: if the audio is not base64 or the reply
                cannot be parsed
        """
        try:
            audio = base64.b64decode(request.audio, validate=True)
        except (binascii.Error, ValueError) as e:
            raise AgentResponseError(f"Audio is not valid base64: {e}") from e

        response = await self._model.generate_content_async([
            self.build_prompt(request),
            {"mime_type": self._mime_type, "data": audio},
        ])

        candidates = self.parse_response(response.text)
        logger.info("voice_extraction_done", candidate_count=len(candidates))
        return candidates


class InsightAgent:
    """
    Writes a short monthly commentary from aggregated numbers.

    BOUNDARIES:
    - Only sees InsightSummary (totals and per-category sums)
    - Never raises to the caller; failures become the apology text
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    def build_prompt(self, summary: InsightSummary) -> str:
        data = summary.model_dump_json()
        return f"""Act as a financial advisor. Analyze this JSON summary of my finances for this month:
{data}

Provide a concise, friendly, and actionable summary (max 150 words).
1. Comment on my saving rate.
2. Point out the highest expense category.
3. Give one specific tip to improve.

Respond with ONLY a JSON object in this exact format:
{{"analysis": "plain text summary, no markdown", "recommendations": ["tip"]}}"""

    @staticmethod
    def parse_response(text: str) -> FinancialInsight:
        """
        Parse the reply; a plain-text reply becomes the analysis.
        """
        cleaned = _strip_code_fences(text)
        start = cleaned.find("{")
        end = cleaned.rfind("}") + 1
        if start >= 0 and end > start:
            try:
                data = json.loads(cleaned[start:end])
            except json.JSONDecodeError:
                data = None
            if isinstance(data, dict) and data.get("analysis"):
                recommendations = data.get("recommendations") or []
                if isinstance(recommendations, str):
                    recommendations = [recommendations]
                return FinancialInsight(
                    analysis=str(data["analysis"]),
                    recommendations=[str(r) for r in recommendations],
                )

        if not cleaned:
            raise AgentResponseError("Model returned an empty reply")
        return FinancialInsight(analysis=cleaned)

    async def generate_insight(self, summary: InsightSummary) -> FinancialInsight:
        """Generate the commentary, or the apology text on any failure."""
        try:
            response = await self._model.generate_content_async(
                self.build_prompt(summary)
            )
            return self.parse_response(response.text)
        except Exception as e:
            logger.error("insight_generation_failed", error=str(e))
            return FinancialInsight(analysis=INSIGHT_FALLBACK_TEXT)
