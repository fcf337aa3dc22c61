"""
Lot alerts — evaluate, acknowledge and list alerts.

Usage:
    from lotman.services.alerts import evaluate_alerts

    # Runs after every lot mutation (inside the lot's section)
    raised = evaluate_alerts(lot)

    # Periodic sweep (celery beat, cron): picks up lots that crossed the
    # expiry lead time without being touched
    LotAlerts.evaluate_all()
"""

import logging
from datetime import date

from django.db import transaction
from django.utils import timezone

from lotman.conf import lotman_settings
from lotman.exceptions import NotFoundError
from lotman.expiry import days_to_expiry, filter_expiring, is_expiring, local_today
from lotman.locks import lot_sections
from lotman.models.alert import LotAlert
from lotman.models.enums import AlertType
from lotman.models.lot import Lot
from lotman.services.ledger import lock_lot

logger = logging.getLogger('lotman')


def low_stock_threshold(lot: Lot):
    """Per-lot override, or the configured default."""
    if lot.reorder_threshold is not None:
        return lot.reorder_threshold
    return lotman_settings.LOW_STOCK_THRESHOLD


def _conditions(lot: Lot, today: date):
    """Yield (alert_type, message) for every condition the lot meets."""
    threshold = low_stock_threshold(lot)
    if lot.current_quantity <= threshold:
        yield (
            AlertType.LOW_STOCK,
            f"Lote {lot.lot_number}: estoque {lot.current_quantity} {lot.unit} "
            f"(mínimo {threshold})",
        )

    if is_expiring(lot, lotman_settings.EXPIRY_LEAD_DAYS, today):
        days = days_to_expiry(lot, today)
        if days < 0:
            message = f"Lote {lot.lot_number}: vencido desde {lot.expiry_date}"
        else:
            message = f"Lote {lot.lot_number}: vence em {days} dia(s) ({lot.expiry_date})"
        yield AlertType.EXPIRY, message

    if lot.quality_status in lotman_settings.QUALITY_HOLD_STATUSES:
        yield (
            AlertType.QUALITY_HOLD,
            f"Lote {lot.lot_number}: qualidade {lot.get_quality_status_display()}",
        )


def evaluate_alerts(lot: Lot, today: date | None = None) -> list[LotAlert]:
    """
    Raise the alerts a lot currently warrants.

    Idempotent: a type that already has an unacknowledged alert on this lot
    is skipped. Alerts are never resolved here.

    Returns:
        List of newly created alerts.
    """
    today = today or local_today()
    open_types = set(
        lot.alerts.open().values_list('type', flat=True)
    )

    raised = []
    for alert_type, message in _conditions(lot, today):
        if alert_type in open_types:
            continue
        alert = LotAlert.objects.create(lot=lot, type=alert_type, message=message)
        open_types.add(alert_type)
        raised.append(alert)
        logger.warning(
            "lot.alert.raised",
            extra={
                "lot_id": lot.pk,
                "alert_id": alert.pk,
                "type": str(alert_type),
                "current": str(lot.current_quantity),
            },
        )
    return raised


class LotAlerts:
    """Alert lifecycle methods."""

    @classmethod
    def acknowledge(cls, lot_id, alert_id, acknowledged_by: str = '') -> LotAlert:
        """
        Acknowledge an alert (one-way).

        Acknowledging an already acknowledged alert returns it unchanged.

        Raises:
            NotFoundError('ALERT_NOT_FOUND'): If the alert doesn't exist on this lot
        """
        with lot_sections(lot_id):
            with transaction.atomic():
                try:
                    alert = LotAlert.objects.select_for_update().get(
                        pk=alert_id, lot_id=lot_id
                    )
                except (LotAlert.DoesNotExist, ValueError, TypeError):
                    raise NotFoundError('ALERT_NOT_FOUND', lot_id=lot_id, alert_id=alert_id)

                if alert.acknowledged:
                    return alert

                alert.acknowledged = True
                alert.acknowledged_by = acknowledged_by or ''
                alert.acknowledged_date = timezone.now()
                alert.save(update_fields=['acknowledged', 'acknowledged_by', 'acknowledged_date'])

        logger.info(
            "lot.alert.acknowledged",
            extra={"lot_id": lot_id, "alert_id": alert.pk, "by": acknowledged_by},
        )
        return alert

    @classmethod
    def evaluate(cls, lot_id, today: date | None = None) -> list[LotAlert]:
        """Evaluate one lot under its exclusive section."""
        with lot_sections(lot_id):
            with transaction.atomic():
                return evaluate_alerts(lock_lot(lot_id), today)

    @classmethod
    def evaluate_all(cls, today: date | None = None) -> list[LotAlert]:
        """
        Sweep lots that may need an alert without having been mutated.

        Covers lots with stock that entered the expiry lead time.

        Returns:
            All newly created alerts.
        """
        candidates = filter_expiring(
            Lot.objects.all(), lotman_settings.EXPIRY_LEAD_DAYS, today
        ).values_list('pk', flat=True)

        raised = []
        for lot_id in list(candidates):
            raised.extend(cls.evaluate(lot_id, today))
        return raised

    @classmethod
    def list_open(cls, alert_type=None, limit: int = 50, offset: int = 0) -> list[LotAlert]:
        """Unacknowledged alerts, newest first."""
        qs = LotAlert.objects.open().select_related('lot')
        if alert_type is not None:
            qs = qs.of_type(alert_type)
        qs = qs.order_by('-date', '-id')
        return list(qs[offset:offset + limit])

    @classmethod
    def list_low_stock_alerts(cls, limit: int = 50, offset: int = 0) -> list[LotAlert]:
        return cls.list_open(AlertType.LOW_STOCK, limit, offset)

    @classmethod
    def list_expiry_alerts(cls, limit: int = 50, offset: int = 0) -> list[LotAlert]:
        return cls.list_open(AlertType.EXPIRY, limit, offset)
