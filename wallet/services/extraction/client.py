"""
Extraction Clients

DESIGN DECISION: The core never talks to the model directly.
It sends one request and gets back a list of candidates, through
an interface, so that:
1. The hosted endpoint and the in-process agent are interchangeable
2. Tests can use a fake client with canned responses
3. Every transport problem surfaces as one error type

CRITICAL: No retries here. A failed extraction is reported to the
user, who can simply speak again.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import requests
import structlog
from pydantic import ValidationError

from wallet.config import get_settings
from wallet.models.extraction import (
    ExtractionErrorPayload,
    ExtractionRequest,
    ExtractionResponse,
)
from wallet.services.extraction.errors import ExtractionTimeoutError, TransportFailureError


logger = structlog.get_logger(__name__)


class ExtractionClient(ABC):
    """Anything that can turn an extraction request into candidates."""

    @abstractmethod
    async def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        """
        Run one extraction.

        Raises:
            TransportFailureError: for any transport or schema problem
        """
        pass


def parse_extraction_payload(payload) -> ExtractionResponse:
    """
    Validate a decoded response body.

    An `{error}` payload and anything that is not
    `{transactions: [...]}` are both transport failures.
    """
    if isinstance(payload, dict) and "error" in payload and "transactions" not in payload:
        try:
            error = ExtractionErrorPayload.model_validate(payload)
            message = error.error
        except ValidationError:
            message = str(payload.get("error"))
        raise TransportFailureError(f"Extraction endpoint error: {message}")

    try:
        return ExtractionResponse.model_validate(payload)
    except ValidationError as e:
        raise TransportFailureError(f"Malformed extraction response: {e}") from e


class HttpExtractionClient(ExtractionClient):
    """
    Client for the hosted extraction function.

    The request is a plain JSON POST. The blocking `requests` call runs
    in a worker thread so the event loop stays free.
    """

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        settings = get_settings().extraction
        self._endpoint_url = endpoint_url or settings.endpoint_url
        self._api_key = api_key if api_key is not None else settings.api_key
        self._timeout = timeout_seconds or settings.timeout_seconds

        if not self._endpoint_url:
            raise ValueError("EXTRACTION_ENDPOINT_URL is not configured")

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
            headers["apikey"] = self._api_key
        return headers

    def _post(self, body: dict) -> ExtractionResponse:
        try:
            resp = requests.post(
                self._endpoint_url,
                json=body,
                headers=self._headers(),
                timeout=self._timeout,
            )
        except requests.Timeout as e:
            raise ExtractionTimeoutError(self._timeout) from e
        except requests.RequestException as e:
            raise TransportFailureError(f"Extraction request failed: {e}") from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise TransportFailureError(
                f"Extraction endpoint returned non-JSON body (HTTP {resp.status_code})",
                status_code=resp.status_code,
            ) from e

        if not resp.ok:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise TransportFailureError(
                f"Extraction endpoint returned HTTP {resp.status_code}: {message or resp.reason}",
                status_code=resp.status_code,
            )

        return parse_extraction_payload(payload)

    async def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        logger.debug(
            "extraction_http_request",
            url=self._endpoint_url,
            category_count=len(request.categories),
        )
        return await asyncio.to_thread(self._post, request.to_wire())
