"""
Lot services — modular organization of lot operations.

Re-exports all public classes:
    from lotman.services import LotQueries, LotOperations, LotTransfers, LotAlerts
"""

from lotman.services.alerts import LotAlerts
from lotman.services.ledger import MovementLedger
from lotman.services.lots import LotOperations
from lotman.services.queries import LotQueries
from lotman.services.receiving import LotReceiving, ReceivingLine
from lotman.services.transfers import Location, LotTransfers, TransferResult

__all__ = [
    'LotQueries',
    'LotOperations',
    'LotTransfers',
    'LotAlerts',
    'LotReceiving',
    'MovementLedger',
    'ReceivingLine',
    'Location',
    'TransferResult',
]
