"""
Voice Extraction Models

Schemas for the round trip to the extraction endpoint and for the
outcome of one voice session.

CRITICAL: Everything the remote model returns is PROPOSED data.
The envelope is validated strictly here; each candidate is validated
again before anything is written to the store.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wallet.models.finance import Transaction, TransactionType


# =============================================================================
# WIRE FORMAT
# =============================================================================

class ExtractionRequest(BaseModel):
    """
    One request to the extraction endpoint.

    The audio travels as base64 text; the category names are what the
    model is allowed to pick from; the current date is the default for
    transactions whose date is not spoken.
    """
    model_config = ConfigDict(populate_by_name=True)

    audio: str = Field(
        ...,
        min_length=1,
        description="Base64-encoded audio clip"
    )
    categories: list[str] = Field(
        default_factory=list,
        description="Category names in the caller's order"
    )
    current_date: dt.date = Field(
        ...,
        alias="currentDate",
        description="Today's date, used when none is spoken"
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ExtractionResponse(BaseModel):
    """
    Successful endpoint response.

    Candidates stay raw dicts here: one bad candidate must not discard
    the whole batch, so they are parsed one by one by the validator.
    """

    transactions: list[Any]


class ExtractionErrorPayload(BaseModel):
    """Error payload returned by the endpoint."""

    error: str


class ExtractedTransaction(BaseModel):
    """A single candidate transaction proposed by the model."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    amount: Decimal
    note: str = Field(default="", max_length=500)
    category_name: str = Field(..., min_length=1)
    date: Optional[dt.date] = None
    type: Optional[TransactionType] = None

    @field_validator('note', mode='before')
    @classmethod
    def none_note_is_empty(cls, v):
        return "" if v is None else v

    @field_validator('date', mode='before')
    @classmethod
    def accept_timestamps(cls, v):
        """The model sometimes answers with a full timestamp; keep the day."""
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        if v == "":
            return None
        return v

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            return v if v in TransactionType.__members__ else None
        return v


# =============================================================================
# SESSION STATE AND OUTCOME
# =============================================================================

class VoiceSessionState(str, Enum):
    """
    Voice session lifecycle.

    IDLE -> RECORDING -> ENCODING -> AWAITING_EXTRACTION -> APPLYING | FAILED -> IDLE
    """
    IDLE = "idle"
    RECORDING = "recording"
    ENCODING = "encoding"
    AWAITING_EXTRACTION = "awaiting_extraction"
    APPLYING = "applying"
    FAILED = "failed"


class VoiceOutcomeStatus(str, Enum):
    """User-visible result of one voice session."""
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    PERMISSION_DENIED = "permission_denied"
    TRANSPORT_FAILURE = "transport_failure"
    TIMEOUT = "timeout"
    EMPTY_EXTRACTION = "empty_extraction"


class ValidationIssue(BaseModel):
    """A single problem found on a candidate."""

    field: str
    issue_type: str = Field(
        ...,
        description="e.g. 'invalid_format', 'negative_amount', 'future_date'"
    )
    message: str
    severity: str = Field(..., pattern="^(error|warning)$")


class CandidateValidation(BaseModel):
    """Result of validating one candidate."""

    position: int = Field(ge=0)
    candidate: Optional[ExtractedTransaction] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.candidate is not None and not self.errors

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]


class CandidateFailure(BaseModel):
    """A candidate that was not turned into a transaction."""

    position: int = Field(ge=0)
    category_name: Optional[str] = None
    amount: Optional[str] = None
    reason: str


class VoiceOutcome(BaseModel):
    """
    What one voice session did.

    This is converted into exactly one user-facing notification.
    """

    status: VoiceOutcomeStatus
    message: str
    created: list[Transaction] = Field(default_factory=list)
    fallbacks: list[str] = Field(
        default_factory=list,
        description="Extracted category names that matched nothing"
    )
    rejected: list[CandidateFailure] = Field(
        default_factory=list,
        description="Candidates that failed validation and were never submitted"
    )
    failed: list[CandidateFailure] = Field(
        default_factory=list,
        description="Candidates whose create call failed"
    )

    @property
    def succeeded(self) -> bool:
        return self.status == VoiceOutcomeStatus.SUCCESS
