"""
Category Resolution

Maps the free-text category name the extraction model returns onto one
of the caller's Category records.

DESIGN DECISION: Matching is a case-insensitive EXACT match. No fuzzy
matching: a fuzzy match that picks the wrong bucket is harder to spot
than an obvious default.

KNOWN WEAK SPOT: When nothing matches we fall back to the first
category in the caller's list. The fallback is flagged on the result so
the caller can warn the user instead of hiding it.
"""

from typing import Optional, Sequence

import structlog
from pydantic import BaseModel

from wallet.models.finance import Category

logger = structlog.get_logger(__name__)


class CategoryResolutionError(Exception):
    """No category could be chosen (the caller has none)."""
    pass


class CategoryResolution(BaseModel):
    """Which category an extracted name resolved to, and how."""

    extracted_name: str
    category: Category
    used_fallback: bool = False


class CategoryResolver:
    """Resolves extracted category names against an in-memory category list."""

    def find(
        self,
        category_name: str,
        categories: Sequence[Category],
    ) -> Optional[Category]:
        """Return the first category whose name matches, ignoring case."""
        wanted = category_name.lower()
        for category in categories:
            if category.name.lower() == wanted:
                return category
        return None

    def resolve(
        self,
        category_name: str,
        categories: Sequence[Category],
    ) -> CategoryResolution:
        """
        Resolve `category_name`, falling back to `categories[0]`.

        Raises:
            CategoryResolutionError: If `categories` is empty
        """
        if not categories:
            raise CategoryResolutionError(
                f"Cannot resolve '{category_name}': no categories available"
            )

        match = self.find(category_name, categories)
        if match is not None:
            return CategoryResolution(extracted_name=category_name, category=match)

        fallback = categories[0]
        logger.warning(
            "category_fallback",
            extracted_name=category_name,
            fallback_category=fallback.name,
        )
        return CategoryResolution(
            extracted_name=category_name,
            category=fallback,
            used_fallback=True,
        )
