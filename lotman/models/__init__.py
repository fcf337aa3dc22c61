"""
Lotman Models.

Core models for lot accounting:
- Lot: Traceable batch with its quantity fields
- Movement: Immutable ledger of quantity changes
- LotAlert: Low stock / expiry / quality alerts
- Relocation: Audit trail of location changes
"""

from lotman.models.alert import LotAlert
from lotman.models.enums import (
    AlertType,
    Direction,
    LotStatus,
    MovementType,
    QualityStatus,
)
from lotman.models.lot import Lot
from lotman.models.movement import Movement
from lotman.models.relocation import Relocation

__all__ = [
    'AlertType',
    'Direction',
    'LotStatus',
    'MovementType',
    'QualityStatus',
    'Lot',
    'Movement',
    'LotAlert',
    'Relocation',
]
