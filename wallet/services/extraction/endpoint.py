"""
Extraction Endpoint

The server side of voice extraction: validate the request, ask the
model, wrap the answer. Returns `(status, payload)` so any HTTP
framework can host it.
"""

from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from wallet.models.extraction import ExtractionRequest, ExtractionResponse
from wallet.services.extraction.client import ExtractionClient, parse_extraction_payload


logger = structlog.get_logger(__name__)


class TransactionExtractor(Protocol):
    """What the endpoint needs from a model agent."""

    async def extract_transactions(
        self,
        request: ExtractionRequest,
    ) -> list[dict[str, Any]]:
        ...


async def handle_extraction_request(
    body: Any,
    agent: TransactionExtractor,
) -> tuple[int, dict]:
    """
    Handle one extraction call.

    Returns:
        (200, {"transactions": [...]}) on success,
        (400, {"error": "..."}) for a bad request or a model failure.
    """
    try:
        request = ExtractionRequest.model_validate(body)
    except ValidationError as e:
        return 400, {"error": f"Invalid request: {e.errors()[0]['msg']}"}

    try:
        transactions = await agent.extract_transactions(request)
    except Exception as e:
        logger.error("extraction_endpoint_failed", error=str(e))
        return 400, {"error": str(e)}

    return 200, {"transactions": transactions}


class LocalExtractionClient(ExtractionClient):
    """Runs the endpoint handler in-process instead of over HTTP."""

    def __init__(self, agent: TransactionExtractor):
        self._agent = agent

    async def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        status, payload = await handle_extraction_request(request.to_wire(), self._agent)
        if status != 200:
            logger.warning("local_extraction_failed", status=status)
        return parse_extraction_payload(payload)
