"""
Relocation model — audit trail of location changes within a lot.

A relocation moves no quantity, so it is not a ledger Movement.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Relocation(models.Model):
    """Immutable record of a lot moving to a new storage location."""

    lot = models.ForeignKey(
        'lotman.Lot',
        on_delete=models.PROTECT,
        related_name='relocations',
        verbose_name=_('Lote'),
    )
    from_location = models.JSONField(default=dict, verbose_name=_('Origem'))
    to_location = models.JSONField(default=dict, verbose_name=_('Destino'))
    reference = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Referência'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    performed_by = models.CharField(max_length=100, verbose_name=_('Responsável'))
    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))

    class Meta:
        verbose_name = _('Realocação')
        verbose_name_plural = _('Realocações')
        ordering = ['timestamp', 'id']

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError("Realocações são imutáveis.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Realocações são imutáveis.")

    def __str__(self) -> str:
        return f"{self.lot_id}: {self.from_location} → {self.to_location}"
