"""
LotAlert model — low stock, expiry and quality alerts raised on a lot.

Alerts are created by the evaluator (lotman.services.alerts) after every
mutation and by the evaluate_lot_alerts command. They are never resolved
automatically; an operator acknowledges them.

Usage:
    lots.list_low_stock_alerts(limit=20)
    lots.acknowledge_alert(lot.pk, alert.pk, acknowledged_by='ana')
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import AlertType


class LotAlertQuerySet(models.QuerySet):

    def open(self):
        """Alerts not yet acknowledged."""
        return self.filter(acknowledged=False)

    def of_type(self, alert_type):
        return self.filter(type=alert_type)


class LotAlert(models.Model):
    """
    Alert attached to a lot.

    At most one unacknowledged alert per (lot, type) is kept by the
    evaluator. Acknowledgement is one-way.
    """

    lot = models.ForeignKey(
        'lotman.Lot',
        on_delete=models.CASCADE,
        related_name='alerts',
        verbose_name=_('Lote'),
    )
    type = models.CharField(
        max_length=20,
        choices=AlertType.choices,
        verbose_name=_('Tipo'),
    )
    message = models.CharField(max_length=255, verbose_name=_('Mensagem'))
    date = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data'))

    acknowledged = models.BooleanField(default=False, verbose_name=_('Reconhecido'))
    acknowledged_by = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('Reconhecido por'),
    )
    acknowledged_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Reconhecido em'),
    )

    objects = LotAlertQuerySet.as_manager()

    class Meta:
        verbose_name = _('Alerta de Lote')
        verbose_name_plural = _('Alertas de Lote')
        ordering = ['date', 'id']
        indexes = [
            models.Index(fields=['type', 'acknowledged'], name='lotman_alert_type_ack_idx'),
            models.Index(fields=['lot', 'type', 'acknowledged'], name='lotman_alert_lot_type_idx'),
        ]

    def as_dict(self) -> dict:
        return {
            'id': self.pk,
            'lotId': self.lot_id,
            'type': self.type,
            'message': self.message,
            'date': self.date.isoformat(),
            'acknowledged': self.acknowledged,
            'acknowledgedBy': self.acknowledged_by,
            'acknowledgedDate': self.acknowledged_date.isoformat() if self.acknowledged_date else None,
        }

    def __str__(self) -> str:
        mark = '✓' if self.acknowledged else '!'
        return f"{mark} {self.get_type_display()}: {self.message}"
