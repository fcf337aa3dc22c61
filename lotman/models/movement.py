"""
Movement model — Immutable ledger of lot quantity changes.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import Direction, MovementType


class Movement(models.Model):
    """
    Immutable record of a quantity change on a lot.

    Rules:
    - NEVER update() or delete()
    - quantity is always a positive magnitude; direction gives the sign
    - Corrections are new Movements (e.g. an ADJUSTED entry)
    - Written only by lotman.services.ledger.apply_movement(), in the same
      transaction that updates the Lot
    """

    lot = models.ForeignKey(
        'lotman.Lot',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Lote'),
    )
    type = models.CharField(
        max_length=20,
        choices=MovementType.choices,
        verbose_name=_('Tipo'),
    )
    direction = models.CharField(
        max_length=10,
        choices=Direction.choices,
        verbose_name=_('Direção'),
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Quantidade'),
    )
    weight = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Peso'),
    )
    balance_after = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Saldo após'),
        help_text=_('Quantidade atual do lote logo após este movimento'),
    )

    # External reference (GRN number, sales order, transfer id)
    reference = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Referência'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    performed_by = models.CharField(
        max_length=100,
        verbose_name=_('Responsável'),
        help_text=_('Obrigatório.'),
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))

    class Meta:
        verbose_name = _('Movimento')
        verbose_name_plural = _('Movimentos')
        ordering = ['timestamp', 'id']
        indexes = [
            models.Index(fields=['lot', 'timestamp'], name='lotman_mov_lot_ts_idx'),
            models.Index(fields=['type'], name='lotman_mov_type_idx'),
        ]

    @property
    def signed_quantity(self) -> Decimal:
        """Quantity with the sign applied to current quantity."""
        if self.direction == Direction.DECREASE:
            return -self.quantity
        return self.quantity

    def save(self, *args, **kwargs):
        """Insert only."""
        if self.pk:
            raise ValueError(
                "Movimentos são imutáveis. "
                "Para corrigir, registre um novo movimento de ajuste."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion — movements are immutable."""
        raise ValueError(
            "Movimentos são imutáveis. "
            "Para estornar, registre um novo movimento de ajuste."
        )

    def as_dict(self) -> dict:
        """Serialize with the field names the API layer exposes."""
        return {
            'id': self.pk,
            'lotId': self.lot_id,
            'type': self.type,
            'direction': self.direction,
            'quantity': str(self.quantity),
            'weight': str(self.weight),
            'balanceAfter': str(self.balance_after),
            'reference': self.reference,
            'notes': self.notes,
            'performedBy': self.performed_by,
            'timestamp': self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        sign = '+' if self.direction == Direction.INCREASE else '-'
        return f"{self.get_type_display()} {sign}{self.quantity} → {self.balance_after}"
