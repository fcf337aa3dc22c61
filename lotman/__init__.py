"""
Django Lotman — Rastreabilidade de Lotes.

Lotes recebidos contra linhas de nota, com razão de movimentos,
transferências e alertas.

Uso:
    from lotman import lots, LotError

    lot = lots.create_lot_from_receipt('GRN-0042/1', Decimal('100'),
                                       product=farinha, performed_by='ana')
    lots.issue(lot.pk, Decimal('20'), performed_by='ana')
    lots.get_lot(lot.pk).available_quantity  # 80
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'lots':
        from lotman.service import Lots
        return Lots
    elif name in ('LotError', 'ValidationError', 'InsufficientStockError',
                  'InsufficientAvailableError', 'NotFoundError',
                  'ConcurrencyConflictError'):
        from lotman import exceptions
        return getattr(exceptions, name)
    elif name in ('Lot', 'Movement', 'LotAlert', 'Relocation'):
        from lotman import models
        return getattr(models, name)
    elif name in ('LotStatus', 'QualityStatus', 'MovementType', 'Direction', 'AlertType'):
        from lotman.models import enums
        return getattr(enums, name)
    elif name in ('Location', 'ReceivingLine'):
        from lotman import services
        return getattr(services, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'lots',
    'LotError',
    'ValidationError',
    'InsufficientStockError',
    'InsufficientAvailableError',
    'NotFoundError',
    'ConcurrencyConflictError',
    'Lot',
    'Movement',
    'LotAlert',
    'Relocation',
    'LotStatus',
    'QualityStatus',
    'MovementType',
    'Direction',
    'AlertType',
    'Location',
    'ReceivingLine',
]

__version__ = '0.1.0'
