"""
Two-Stage Candidate Validation

DESIGN DECISION: Each extracted candidate is validated on its own,
in two stages:

STAGE 1 - SCHEMA VALIDATION:
- The raw object must parse into an ExtractedTransaction
- Numeric amount, non-empty category name, ISO date if present
- This catches malformed model output

STAGE 2 - SEMANTIC VALIDATION:
- Negative amounts (error)
- Absurd amounts (warning)
- Dates far in the future or unusually old (warning)

Errors reject the candidate. Warnings are reported and the candidate
is still applied.

IMPORTANT: Validation NEVER silently fixes issues. The only value it
fills in is the date, which defaults to the request's current date.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from wallet.config import get_settings
from wallet.config.settings import AppSettings
from wallet.models.extraction import (
    CandidateValidation,
    ExtractedTransaction,
    ValidationIssue,
)


class CandidateValidator:
    """Validates raw extraction candidates one at a time."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        raw: Any,
    ) -> tuple[Optional[ExtractedTransaction], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (parsed_candidate_or_None, list_of_issues)
        """
        if not isinstance(raw, dict):
            return None, [ValidationIssue(
                field="candidate",
                issue_type="invalid_format",
                message=f"Candidate is not an object: {raw!r}",
                severity="error",
            )]

        try:
            return ExtractedTransaction.model_validate(raw), []
        except ValidationError as e:
            issues = []
            for err in e.errors():
                field = ".".join(str(part) for part in err["loc"]) or "candidate"
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing" if err["type"] == "missing" else "invalid_format",
                    message=f"{field}: {err['msg']}",
                    severity="error",
                ))
            return None, issues

    def _validate_semantic(
        self,
        candidate: ExtractedTransaction,
        current_date: date,
    ) -> list[ValidationIssue]:
        """Stage 2: Semantic validation against the request's current date."""
        issues = []

        if candidate.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="negative_amount",
                message=f"Amount ({candidate.amount}) is negative",
                severity="error",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if candidate.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({candidate.amount:,.2f}) seems unusually high",
                severity="warning",
            ))

        tx_date = candidate.date or current_date
        max_future_date = current_date + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if tx_date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({tx_date}) is in the future",
                severity="warning",
            ))

        # 2 years back
        if tx_date < current_date - timedelta(days=365 * 2):
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Transaction date ({tx_date}) seems unusually old",
                severity="warning",
            ))

        return issues

    def validate(
        self,
        position: int,
        raw: Any,
        current_date: date,
    ) -> CandidateValidation:
        """
        Run the full pipeline on one candidate.

        Args:
            position: Index of the candidate in the response
            raw: The candidate as received
            current_date: The date sent with the request

        Returns:
            CandidateValidation; `candidate` has its date filled in when
            the schema stage passed.
        """
        candidate, issues = self._validate_schema(raw)

        # Only run stage 2 if stage 1 passes
        if candidate is not None:
            issues.extend(self._validate_semantic(candidate, current_date))
            if candidate.date is None:
                candidate = candidate.model_copy(update={"date": current_date})

        return CandidateValidation(
            position=position,
            candidate=candidate,
            issues=issues,
        )
