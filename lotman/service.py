"""
Lot Service — The single public interface for all lot operations.

Usage:
    from lotman import lots, LotError

    lot = lots.create_lot_from_receipt('GRN-0042/1', Decimal('100'),
                                       product=farinha, performed_by='ana')
    lots.record_movement(lot.pk, 'issued', Decimal('20'), performed_by='ana')
    lots.transfer_stock(lot.pk, Decimal('10'), {'zone': 'B'}, performed_by='ana')
    lots.get_lot(lot.pk).available_quantity  # Decimal('80')
"""

from lotman.exceptions import ValidationError
from lotman.models.enums import MOVEMENT_EFFECTS, MovementType
from lotman.services.alerts import LotAlerts
from lotman.services.ledger import MovementLedger
from lotman.services.lots import LotOperations
from lotman.services.queries import LotQueries
from lotman.services.receiving import LotReceiving
from lotman.services.transfers import Location, LotTransfers


class Lots(LotQueries, LotOperations, LotTransfers, LotAlerts, LotReceiving):
    """
    Single interface for all lot operations.

    Parameter convention: (lot_id, ..., quantity, ..., performed_by)

    IMPORTANT: All state-changing methods serialize per lot and run in
    atomic transactions with row locking. See each method's docstring.
    """

    @classmethod
    def record_movement(cls, lot_id, movement_type, quantity, reference: str = '',
                        notes: str = '', performed_by: str = '', *,
                        direction=None, expected_version: int | None = None):
        """
        Record a stock movement on a lot.

        Dispatches to the aggregate operation for the type. RECEIVED is
        produced only by receipt confirmation and TRANSFER_IN/TRANSFER_OUT
        only by transfer_stock(); those types are rejected here.

        Raises:
            ValidationError('INVALID_MOVEMENT_TYPE'): Unknown or reserved type
            ValidationError('DIRECTION_REQUIRED'): ADJUSTED without direction
            InsufficientAvailableError / InsufficientStockError
            ConcurrencyConflictError: expected_version is stale
        """
        try:
            movement_type = MovementType(movement_type)
        except ValueError:
            raise ValidationError('INVALID_MOVEMENT_TYPE', lot_id=lot_id, type=movement_type)

        if movement_type == MovementType.ADJUSTED:
            if direction is None:
                raise ValidationError('DIRECTION_REQUIRED', lot_id=lot_id)
            return cls.adjust(
                lot_id, quantity, direction,
                performed_by, reference=reference, notes=notes,
                expected_version=expected_version,
            )

        operations = {
            MovementType.ISSUED: cls.issue,
            MovementType.RETURNED: cls.return_stock,
            MovementType.DAMAGED: cls.mark_damaged,
        }
        operation = operations.get(movement_type)
        if operation is None:
            raise ValidationError('INVALID_MOVEMENT_TYPE', lot_id=lot_id, type=movement_type)

        if direction is not None and direction != MOVEMENT_EFFECTS[movement_type]:
            raise ValidationError(
                'INVALID_MOVEMENT_TYPE', lot_id=lot_id, type=movement_type, direction=direction
            )

        return operation(
            lot_id, quantity, performed_by,
            reference=reference, notes=notes, expected_version=expected_version,
        )

    @classmethod
    def transfer_stock(cls, source_lot_id, quantity, destination, performed_by: str = '',
                       notes: str = ''):
        """
        Transfer to another lot (destination is a lot id) or relocate the
        lot (destination is a Location or a dict of location fields).
        """
        if isinstance(destination, (Location, dict)):
            return cls.transfer(
                source_lot_id, quantity,
                new_location=destination, performed_by=performed_by, notes=notes,
            )
        if destination is None or destination == '':
            raise ValidationError('INVALID_DESTINATION', lot_id=source_lot_id)
        return cls.transfer(
            source_lot_id, quantity,
            destination_lot_id=destination, performed_by=performed_by, notes=notes,
        )

    @classmethod
    def acknowledge_alert(cls, lot_id, alert_id, acknowledged_by: str = ''):
        return cls.acknowledge(lot_id, alert_id, acknowledged_by)

    @classmethod
    def verify(cls, lot_id, fix: bool = False):
        """Compare stored quantity with the ledger replay. See MovementLedger.verify."""
        return MovementLedger.verify(lot_id, fix=fix)
