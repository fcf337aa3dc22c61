"""
Lotman configuration.

Usage in settings.py:
    LOTMAN = {
        "LOW_STOCK_THRESHOLD": "50",
        "EXPIRY_LEAD_DAYS": 30,
        "QUALITY_HOLD_STATUSES": ["quarantine", "rejected", "under_review"],
        "LOT_NUMBER_PREFIX": "LOT",
        "MOVEMENT_PAGE_SIZE": 20,
    }
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class LotmanSettings:
    """Lotman configuration settings."""

    # LowStock alert fires when current quantity <= this (per-lot override wins)
    LOW_STOCK_THRESHOLD: Decimal = Decimal('50')

    # Expiry alert fires when expiry_date <= today + this many days
    EXPIRY_LEAD_DAYS: int = 30

    # Quality statuses that raise a QualityHold alert
    QUALITY_HOLD_STATUSES: list[str] = field(
        default_factory=lambda: ['quarantine', 'rejected', 'under_review']
    )

    # Lot numbers look like LOT2026100001
    LOT_NUMBER_PREFIX: str = 'LOT'

    # Default page size for movement history
    MOVEMENT_PAGE_SIZE: int = 20

    def __post_init__(self):
        self.LOW_STOCK_THRESHOLD = Decimal(str(self.LOW_STOCK_THRESHOLD))


def get_lotman_settings() -> LotmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LOTMAN", {})
    return LotmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in LotmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_lotman_settings(), name)


lotman_settings = _LazySettings()
