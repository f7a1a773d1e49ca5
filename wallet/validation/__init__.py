"""Candidate validation package."""

from wallet.validation.validator import CandidateValidator

__all__ = ["CandidateValidator"]
