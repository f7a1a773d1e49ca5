"""
Data Models Package

This package contains all Pydantic models used by the wallet core.
All data flowing through the system must conform to these schemas.
"""

from wallet.models.finance import (
    DEFAULT_CATEGORIES,
    BillingCycle,
    Category,
    CategoryCreate,
    CategoryIcon,
    ProfileUpdate,
    Transaction,
    TransactionCreate,
    TransactionType,
    UserProfile,
)
from wallet.models.extraction import (
    CandidateFailure,
    CandidateValidation,
    ExtractedTransaction,
    ExtractionErrorPayload,
    ExtractionRequest,
    ExtractionResponse,
    ValidationIssue,
    VoiceOutcome,
    VoiceOutcomeStatus,
    VoiceSessionState,
)
from wallet.models.reports import (
    CategoryTotal,
    FinancialInsight,
    InsightSummary,
    MonthlyTotal,
    PeriodSummary,
    StatsRange,
    StatsReport,
)
from wallet.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Wallet records
    "DEFAULT_CATEGORIES",
    "BillingCycle",
    "Category",
    "CategoryCreate",
    "CategoryIcon",
    "ProfileUpdate",
    "Transaction",
    "TransactionCreate",
    "TransactionType",
    "UserProfile",
    # Extraction models
    "CandidateFailure",
    "CandidateValidation",
    "ExtractedTransaction",
    "ExtractionErrorPayload",
    "ExtractionRequest",
    "ExtractionResponse",
    "ValidationIssue",
    "VoiceOutcome",
    "VoiceOutcomeStatus",
    "VoiceSessionState",
    # Report models
    "CategoryTotal",
    "FinancialInsight",
    "InsightSummary",
    "MonthlyTotal",
    "PeriodSummary",
    "StatsRange",
    "StatsReport",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
