"""
Lot operations — state-changing operations on a single lot.

receive, issue, adjust, return_stock and mark_damaged append ledger
movements; reserve and release_reservation move quantity between available
and reserved; update_details edits non-quantity fields.

Every operation:
    1. rejects bad input before taking any lock
    2. enters the lot's exclusive section and transaction.atomic()
    3. locks the row, applies the change through the ledger
    4. runs the alert evaluator
"""

import logging
from decimal import Decimal

from django.db import transaction

from lotman.exceptions import InsufficientAvailableError, ValidationError
from lotman.locks import lot_sections
from lotman.models.enums import MovementType, QualityStatus
from lotman.models.movement import Movement
from lotman.models.lot import Lot
from lotman.services.alerts import evaluate_alerts
from lotman.services.ledger import (
    apply_movement,
    lock_lot,
    require_performer,
    require_positive,
    save_lot,
    to_quantity,
    validate_movement,
)

logger = logging.getLogger('lotman')


class LotOperations:
    """State-changing lot methods."""

    @classmethod
    def _move(cls, lot_id, movement_type, quantity, *, direction=None,
              reference='', notes='', performed_by='', weight=Decimal('0'),
              expected_version=None, **metadata) -> Movement:
        validate_movement(movement_type, quantity, performed_by, direction, lot_id)

        with lot_sections(lot_id):
            with transaction.atomic():
                lot = lock_lot(lot_id)
                movement = apply_movement(
                    lot, movement_type, quantity,
                    direction=direction,
                    reference=reference,
                    notes=notes,
                    performed_by=performed_by,
                    weight=weight,
                    expected_version=expected_version,
                    metadata=metadata,
                )
                evaluate_alerts(lot)
                return movement

    @classmethod
    def receive(cls, lot_id, quantity, performed_by, reference='',
                notes='', weight=Decimal('0')) -> Movement:
        """
        Stock entry into an existing lot.

        Only the receiving reconciler should call this; it is the single
        producer of RECEIVED movements.
        """
        return cls._move(
            lot_id, MovementType.RECEIVED, quantity,
            reference=reference, notes=notes,
            performed_by=performed_by, weight=weight,
        )

    @classmethod
    def issue(cls, lot_id, quantity, performed_by, reference='', notes='',
              expected_version=None) -> Movement:
        """
        Stock exit (sale, consumption).

        Raises:
            InsufficientAvailableError: If quantity > lot.available_quantity
            ValidationError('INVALID_QUANTITY'): If quantity <= 0
        """
        return cls._move(
            lot_id, MovementType.ISSUED, quantity,
            reference=reference, notes=notes, performed_by=performed_by,
            expected_version=expected_version,
        )

    @classmethod
    def issue_reserved(cls, lot_id, quantity, performed_by, reference='', notes='',
                       expected_version=None) -> Movement:
        """
        Ship reserved stock (order fulfilment).

        Reserved and current quantities drop together, in one section, with
        an ISSUED movement. Available quantity is unchanged.

        Raises:
            ValidationError('EXCEEDS_RESERVED'): If quantity > lot.reserved_quantity
        """
        validate_movement(MovementType.ISSUED, quantity, performed_by, lot_id=lot_id)

        with lot_sections(lot_id):
            with transaction.atomic():
                lot = lock_lot(lot_id)
                movement = apply_movement(
                    lot, MovementType.ISSUED, quantity,
                    reference=reference,
                    notes=notes,
                    performed_by=performed_by,
                    expected_version=expected_version,
                    from_reserved=True,
                )
                evaluate_alerts(lot)
                return movement

    @classmethod
    def adjust(cls, lot_id, quantity, direction, performed_by, reference='',
               notes='', expected_version=None) -> Movement:
        """
        Inventory adjustment by a signed amount.

        `quantity` is the size of the change, `direction` says which way.
        There is no "set to" form.

        Raises:
            ValidationError('DIRECTION_REQUIRED'): If direction is missing
            InsufficientStockError: If a decrease goes below zero or below reserved
        """
        return cls._move(
            lot_id, MovementType.ADJUSTED, quantity,
            direction=direction, reference=reference, notes=notes,
            performed_by=performed_by, expected_version=expected_version,
        )

    @classmethod
    def return_stock(cls, lot_id, quantity, performed_by, reference='',
                     notes='', expected_version=None) -> Movement:
        """Customer return back into the lot."""
        return cls._move(
            lot_id, MovementType.RETURNED, quantity,
            reference=reference, notes=notes, performed_by=performed_by,
            expected_version=expected_version,
        )

    @classmethod
    def mark_damaged(cls, lot_id, quantity, performed_by, reference='',
                     notes='', expected_version=None) -> Movement:
        """
        Write off damaged stock.

        Raises:
            InsufficientAvailableError: If quantity > lot.available_quantity
        """
        return cls._move(
            lot_id, MovementType.DAMAGED, quantity,
            reference=reference, notes=notes, performed_by=performed_by,
            expected_version=expected_version,
        )

    # ══════════════════════════════════════════════════════════════
    # RESERVATIONS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def reserve(cls, lot_id, quantity, performed_by, reference='') -> Lot:
        """
        Hold quantity against an unfulfilled sale.

        current_quantity is unchanged; available_quantity drops.

        Raises:
            InsufficientAvailableError: If quantity > lot.available_quantity
        """
        quantity = require_positive(quantity, lot_id)
        performed_by = require_performer(performed_by, lot_id)

        with lot_sections(lot_id):
            with transaction.atomic():
                lot = lock_lot(lot_id)

                if quantity > lot.available_quantity:
                    raise InsufficientAvailableError(
                        lot_id=lot.pk,
                        requested=quantity,
                        available=lot.available_quantity,
                    )

                lot.reserved_quantity += quantity
                lot.last_modified_by = performed_by
                save_lot(lot, ['reserved_quantity', 'last_modified_by'])
                evaluate_alerts(lot)

        logger.info(
            "lot.reserve",
            extra={
                "lot_id": lot.pk,
                "qty": str(quantity),
                "reference": reference,
                "reserved": str(lot.reserved_quantity),
            },
        )
        return lot

    @classmethod
    def release_reservation(cls, lot_id, quantity, performed_by, reference='') -> Lot:
        """
        Return reserved quantity to available.

        Raises:
            ValidationError('EXCEEDS_RESERVED'): If quantity > lot.reserved_quantity
        """
        quantity = require_positive(quantity, lot_id)
        performed_by = require_performer(performed_by, lot_id)

        with lot_sections(lot_id):
            with transaction.atomic():
                lot = lock_lot(lot_id)

                if quantity > lot.reserved_quantity:
                    raise ValidationError(
                        'EXCEEDS_RESERVED',
                        lot_id=lot.pk,
                        requested=quantity,
                        available=lot.reserved_quantity,
                    )

                lot.reserved_quantity -= quantity
                lot.last_modified_by = performed_by
                save_lot(lot, ['reserved_quantity', 'last_modified_by'])

        logger.info(
            "lot.release_reservation",
            extra={
                "lot_id": lot.pk,
                "qty": str(quantity),
                "reference": reference,
                "reserved": str(lot.reserved_quantity),
            },
        )
        return lot

    # ══════════════════════════════════════════════════════════════
    # DETAILS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def update_details(cls, lot_id, performed_by, *, quality_status=None,
                       expiry_date=None, reorder_threshold=None,
                       notes=None) -> Lot:
        """
        Edit non-quantity fields and re-evaluate alerts.

        Quantities cannot be edited here; use movements.
        """
        performed_by = require_performer(performed_by, lot_id)

        if quality_status is not None:
            try:
                quality_status = QualityStatus(quality_status)
            except ValueError:
                raise ValidationError('INVALID_QUALITY_STATUS', lot_id=lot_id,
                                      quality_status=quality_status)
        if reorder_threshold is not None:
            reorder_threshold = to_quantity(reorder_threshold)
            if reorder_threshold < 0:
                raise ValidationError('INVALID_QUANTITY', lot_id=lot_id,
                                      requested=reorder_threshold)

        with lot_sections(lot_id):
            with transaction.atomic():
                lot = lock_lot(lot_id)
                fields = ['last_modified_by']

                if quality_status is not None:
                    lot.quality_status = quality_status
                    fields.append('quality_status')
                if expiry_date is not None:
                    lot.expiry_date = expiry_date
                    fields.append('expiry_date')
                if reorder_threshold is not None:
                    lot.reorder_threshold = reorder_threshold
                    fields.append('reorder_threshold')
                if notes is not None:
                    lot.notes = notes
                    fields.append('notes')

                lot.last_modified_by = performed_by
                save_lot(lot, fields)
                evaluate_alerts(lot)

        logger.info(
            "lot.update_details",
            extra={"lot_id": lot.pk, "fields": fields, "performed_by": performed_by},
        )
        return lot

