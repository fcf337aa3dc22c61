"""
Enums for Lotman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LotStatus(models.TextChoices):
    """
    Lot lifecycle status.

    ACTIVE, RESERVED and CONSUMED are stored and recomputed after every
    mutation. EXPIRED is evaluated from expiry_date (see Lot.effective_status),
    never stored ahead of time.
    """
    ACTIVE = 'active', _('Ativo')
    RESERVED = 'reserved', _('Reservado')      # reserved >= current > 0
    CONSUMED = 'consumed', _('Consumido')      # current == 0
    EXPIRED = 'expired', _('Vencido')


class QualityStatus(models.TextChoices):
    """Quality inspection outcome for a lot."""
    APPROVED = 'approved', _('Aprovado')
    UNDER_REVIEW = 'under_review', _('Em análise')
    QUARANTINE = 'quarantine', _('Quarentena')
    REJECTED = 'rejected', _('Rejeitado')


class Direction(models.TextChoices):
    """Effect of a movement on current quantity."""
    INCREASE = 'increase', _('Entrada')
    DECREASE = 'decrease', _('Saída')


class MovementType(models.TextChoices):
    """
    Closed set of ledger entry types.

    The effect of each type on current quantity is fixed by MOVEMENT_EFFECTS,
    except ADJUSTED, which carries an explicit Direction.
    """
    RECEIVED = 'received', _('Recebido')
    ISSUED = 'issued', _('Baixado')
    ADJUSTED = 'adjusted', _('Ajustado')
    RETURNED = 'returned', _('Devolvido')
    DAMAGED = 'damaged', _('Avariado')
    TRANSFER_OUT = 'transfer_out', _('Transferido (saída)')
    TRANSFER_IN = 'transfer_in', _('Transferido (entrada)')


class AlertType(models.TextChoices):
    """Kinds of lot alerts."""
    LOW_STOCK = 'low_stock', _('Estoque baixo')
    EXPIRY = 'expiry', _('Vencimento')
    QUALITY_HOLD = 'quality_hold', _('Bloqueio de qualidade')


# None = direction must be given explicitly
MOVEMENT_EFFECTS = {
    MovementType.RECEIVED: Direction.INCREASE,
    MovementType.RETURNED: Direction.INCREASE,
    MovementType.TRANSFER_IN: Direction.INCREASE,
    MovementType.ISSUED: Direction.DECREASE,
    MovementType.DAMAGED: Direction.DECREASE,
    MovementType.TRANSFER_OUT: Direction.DECREASE,
    MovementType.ADJUSTED: None,
}

# Types that may only consume unreserved stock
CONSUMES_AVAILABLE = frozenset({
    MovementType.ISSUED,
    MovementType.DAMAGED,
    MovementType.TRANSFER_OUT,
})
