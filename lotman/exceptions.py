"""
Exceptions for Lotman.

All errors are LotError subclasses with a structured code for programmatic handling.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Structured exception: code + human-readable message + context data.

    Subclasses declare `_default_messages` (code -> message) and may
    set `default_code` so callers can raise without naming a code.
    """

    default_code = 'ERROR'
    _default_messages: dict[str, str] = {}

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.data:
            return f"[{self.code}] {self.message}"
        context = ', '.join(f"{k}={v}" for k, v in self.data.items())
        return f"[{self.code}] {self.message} ({context})"


class LotError(BaseError):
    """
    Structured exception for lot operations.

    Usage:
        try:
            lots.issue(lot.pk, Decimal('90'), performed_by='ana')
        except InsufficientAvailableError as e:
            print(f"Só tem {e.available} disponível no lote {e.lot_id}")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data (lot_id, requested, available, ...)
    """

    default_code = 'LOT_ERROR'

    _default_messages = {
        'LOT_ERROR': 'Erro na operação de lote',
        'INVALID_QUANTITY': 'Quantidade inválida (deve ser positiva)',
        'PERFORMED_BY_REQUIRED': 'Responsável é obrigatório',
        'INVALID_MOVEMENT_TYPE': 'Tipo de movimento inválido para esta operação',
        'DIRECTION_REQUIRED': 'Ajuste exige direção (entrada ou saída)',
        'LOCATION_REQUIRED': 'Informe ao menos zona, rack, prateleira ou posição',
        'INVALID_DESTINATION': 'Destino da transferência inválido',
        'PRODUCT_MISMATCH': 'Lotes de produtos diferentes',
        'EXCEEDS_PENDING': 'Quantidade excede o saldo pendente do pedido',
        'GRN_LINE_REQUIRED': 'Linha da nota de recebimento é obrigatória',
        'EXCEEDS_RESERVED': 'Quantidade excede o reservado',
        'INVALID_QUALITY_STATUS': 'Status de qualidade inválido',
        'INSUFFICIENT_QUANTITY': 'Quantidade insuficiente no lote',
        'INSUFFICIENT_AVAILABLE': 'Quantidade solicitada indisponível',
        'LOT_NOT_FOUND': 'Lote não encontrado',
        'ALERT_NOT_FOUND': 'Alerta não encontrado',
        'CONCURRENT_MODIFICATION': 'Modificação concorrente detectada',
    }

    @property
    def lot_id(self):
        """Shortcut for data['lot_id']."""
        return self.data.get('lot_id')

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


class ValidationError(LotError):
    """Malformed or missing input. Never mutates state."""

    default_code = 'INVALID_QUANTITY'


class InsufficientStockError(LotError):
    """Decrease would take on-hand quantity below zero (or below reserved)."""

    default_code = 'INSUFFICIENT_QUANTITY'


class InsufficientAvailableError(LotError):
    """Consumption of unreserved stock beyond available quantity."""

    default_code = 'INSUFFICIENT_AVAILABLE'


class NotFoundError(LotError):
    """Unknown lot, alert or destination reference."""

    default_code = 'LOT_NOT_FOUND'


class ConcurrencyConflictError(LotError):
    """Lot changed since it was read. Retry with a fresh read."""

    default_code = 'CONCURRENT_MODIFICATION'
