"""Category resolution package."""

from wallet.resolution.resolver import (
    CategoryResolution,
    CategoryResolutionError,
    CategoryResolver,
)

__all__ = [
    "CategoryResolution",
    "CategoryResolutionError",
    "CategoryResolver",
]
