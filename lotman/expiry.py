"""
Expiry evaluation — isolated, testable, reusable.

Determines whether a Lot is expired or close enough to its expiry date to
warrant an alert, given a lead time in days.

Examples:
    - expiry_date=None: never expires, never alerts
    - lead_days=30, expiry in 10 days: expiring (alert)
    - expiry_date yesterday: expired (alert, effective status EXPIRED)
"""

from datetime import date, timedelta

from django.conf import settings
from django.utils import timezone


def local_today() -> date:
    """Today in the active time zone (plain date.today() without USE_TZ)."""
    if settings.USE_TZ:
        return timezone.localdate()
    return date.today()


def alert_horizon(lead_days: int, today: date | None = None) -> date:
    """Last expiry date that still triggers an alert today."""
    return (today or local_today()) + timedelta(days=lead_days)


def is_expiring(lot, lead_days: int, today: date | None = None) -> bool:
    """
    Check whether a lot expires within the lead time (or already has).

    Args:
        lot: Lot instance (needs .expiry_date)
        lead_days: Alert lead time in days
        today: Reference date (None = today)

    Returns:
        True if the lot should carry an expiry alert
    """
    if lot.expiry_date is None:
        return False
    return lot.expiry_date <= alert_horizon(lead_days, today)


def days_to_expiry(lot, today: date | None = None) -> int | None:
    """Days until expiry (negative once expired). None if no expiry date."""
    if lot.expiry_date is None:
        return None
    return (lot.expiry_date - (today or local_today())).days


def filter_expiring(lots, lead_days: int, today: date | None = None):
    """
    Queryset-level version of is_expiring — only lots with stock.

    Args:
        lots: Lot QuerySet
        lead_days: Alert lead time in days
        today: Reference date (None = today)

    Returns:
        Filtered QuerySet ordered by expiry date
    """
    return lots.with_stock().expiring_before(
        alert_horizon(lead_days, today)
    ).order_by('expiry_date')
