"""
Movement ledger — the only code path that changes lot quantities.

apply_movement() expects a locked Lot (select_for_update inside an open
transaction and the lot's exclusive section). MovementLedger.append() is the
self-contained entry point that takes the section, transaction and row lock
itself.

Effect of each movement type on current quantity:

    received, returned, transfer_in     +quantity
    issued, damaged, transfer_out       -quantity
    adjusted                            explicit direction
"""

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from lotman.exceptions import (
    ConcurrencyConflictError,
    InsufficientAvailableError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from lotman.locks import lot_sections
from lotman.models.enums import (
    CONSUMES_AVAILABLE,
    MOVEMENT_EFFECTS,
    Direction,
    MovementType,
)
from lotman.models.lot import Lot
from lotman.models.movement import Movement

logger = logging.getLogger('lotman')


# Quantity fields are DecimalField(max_digits=12, decimal_places=3)
QUANTITY_STEP = Decimal('0.001')
MAX_QUANTITY = Decimal('999999999.999')


def to_quantity(value) -> Decimal:
    """Coerce to a finite Decimal, raising ValidationError on garbage."""
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError('INVALID_QUANTITY', requested=value)
    if not quantity.is_finite():
        raise ValidationError('INVALID_QUANTITY', requested=str(value))
    return quantity


def require_positive(quantity, lot_id=None) -> Decimal:
    """Positive, at most 3 decimal places, within the field's digits."""
    quantity = to_quantity(quantity)
    if (quantity <= 0 or quantity > MAX_QUANTITY
            or quantity != quantity.quantize(QUANTITY_STEP)):
        raise ValidationError('INVALID_QUANTITY', lot_id=lot_id, requested=quantity)
    return quantity


def require_performer(performed_by, lot_id=None) -> str:
    performed_by = (performed_by or '').strip()
    if not performed_by:
        raise ValidationError('PERFORMED_BY_REQUIRED', lot_id=lot_id)
    return performed_by


def validate_movement(movement_type, quantity, performed_by,
                      direction=None, lot_id=None):
    """
    Check a movement request before touching any state.

    Returns:
        (MovementType, Decimal quantity, Direction, performed_by)

    Raises:
        ValidationError('INVALID_MOVEMENT_TYPE'): Unknown type, or a direction
            that contradicts the type
        ValidationError('INVALID_QUANTITY'): quantity <= 0
        ValidationError('PERFORMED_BY_REQUIRED'): Empty performed_by
        ValidationError('DIRECTION_REQUIRED'): ADJUSTED without a valid direction
    """
    try:
        movement_type = MovementType(movement_type)
    except ValueError:
        raise ValidationError('INVALID_MOVEMENT_TYPE', lot_id=lot_id, type=movement_type)

    quantity = require_positive(quantity, lot_id)
    performed_by = require_performer(performed_by, lot_id)

    effect = MOVEMENT_EFFECTS[movement_type]
    if effect is None:
        try:
            direction = Direction(direction)
        except ValueError:
            raise ValidationError('DIRECTION_REQUIRED', lot_id=lot_id, direction=direction)
    else:
        if direction is not None and direction != effect:
            raise ValidationError(
                'INVALID_MOVEMENT_TYPE',
                lot_id=lot_id,
                type=movement_type,
                direction=direction,
            )
        direction = effect

    return movement_type, quantity, direction, performed_by


def lock_lot(lot_id) -> Lot:
    """Fetch a lot with a row lock. Must run inside transaction.atomic()."""
    try:
        return Lot.objects.select_for_update().get(pk=lot_id)
    except (Lot.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('LOT_NOT_FOUND', lot_id=lot_id)


def save_lot(lot: Lot, fields) -> Lot:
    """
    Persist lot fields with a version check and recompute status.

    Raises:
        ConcurrencyConflictError: If the row changed since it was read
    """
    lot.status = lot.compute_status()
    values = {name: getattr(lot, name) for name in fields}
    values['status'] = lot.status
    updated = Lot.objects.filter(pk=lot.pk, version=lot.version).update(
        version=F('version') + 1,
        updated_at=timezone.now(),
        **values,
    )
    if updated == 0:
        raise ConcurrencyConflictError(lot_id=lot.pk, expected=lot.version)
    lot.version += 1
    return lot


def apply_movement(lot: Lot, movement_type, quantity, *, direction=None,
                   reference: str = '', notes: str = '', performed_by: str = '',
                   weight=Decimal('0'), expected_version: int | None = None,
                   metadata: dict | None = None, from_reserved: bool = False) -> Movement:
    """
    Append a movement to a locked lot and update its quantities.

    The Movement insert and the Lot update run in one savepoint: either both
    are written or neither is.

    from_reserved=True ships reserved stock: an ISSUED movement that lowers
    reserved_quantity by the same amount as current_quantity.

    Raises:
        ValidationError: Malformed request (see validate_movement)
        ValidationError('EXCEEDS_RESERVED'): from_reserved beyond reserved_quantity
        ConcurrencyConflictError: expected_version differs from lot.version
        InsufficientAvailableError: issued/damaged/transfer_out > available
        InsufficientStockError: Decrease below zero or below reserved
    """
    movement_type, quantity, direction, performed_by = validate_movement(
        movement_type, quantity, performed_by, direction, lot.pk
    )
    weight = to_quantity(weight or 0)

    if expected_version is not None and expected_version != lot.version:
        raise ConcurrencyConflictError(
            lot_id=lot.pk, expected=expected_version, current=lot.version
        )

    new_reserved = lot.reserved_quantity
    if from_reserved:
        if movement_type != MovementType.ISSUED:
            raise ValidationError('INVALID_MOVEMENT_TYPE', lot_id=lot.pk, type=movement_type)
        if quantity > lot.reserved_quantity:
            raise ValidationError(
                'EXCEEDS_RESERVED',
                lot_id=lot.pk,
                requested=quantity,
                available=lot.reserved_quantity,
            )
        new_reserved = lot.reserved_quantity - quantity

    if direction == Direction.INCREASE:
        new_current = lot.current_quantity + quantity
    else:
        available = lot.current_quantity - new_reserved
        if movement_type in CONSUMES_AVAILABLE and quantity > available:
            raise InsufficientAvailableError(
                lot_id=lot.pk,
                requested=quantity,
                available=available,
            )
        new_current = lot.current_quantity - quantity
        if new_current < 0:
            raise InsufficientStockError(
                lot_id=lot.pk,
                requested=quantity,
                available=lot.current_quantity,
            )
        if new_current < new_reserved:
            raise InsufficientStockError(
                lot_id=lot.pk,
                requested=quantity,
                available=lot.current_quantity,
                reserved=new_reserved,
            )

    fields = ['current_quantity', 'last_modified_by']
    if from_reserved:
        fields.append('reserved_quantity')

    with transaction.atomic():
        movement = Movement.objects.create(
            lot=lot,
            type=movement_type,
            direction=direction,
            quantity=quantity,
            weight=weight,
            balance_after=new_current,
            reference=reference or '',
            notes=notes or '',
            performed_by=performed_by,
            metadata=metadata or {},
        )

        lot.current_quantity = new_current
        lot.reserved_quantity = new_reserved
        lot.last_modified_by = performed_by
        if movement_type == MovementType.RECEIVED:
            lot.received_quantity += quantity
            lot.total_weight += weight
            fields += ['received_quantity', 'total_weight']

        save_lot(lot, fields)

    logger.info(
        "lot.movement",
        extra={
            "lot_id": lot.pk,
            "type": str(movement_type),
            "qty": str(quantity),
            "balance": str(new_current),
            "performed_by": performed_by,
        },
    )
    return movement


class MovementLedger:
    """Append-only ledger of lot movements."""

    @classmethod
    def append(cls, lot_id, movement_type, quantity, *, direction=None,
               reference='', notes='', performed_by='', weight=Decimal('0'),
               expected_version=None, **metadata) -> Movement:
        """
        Append a movement to a lot.

        Validation happens before any lock is taken.

        Concurrency:
            - Runs under the lot's exclusive section
            - Runs under transaction.atomic() with select_for_update() on Lot
            - Conditional write on Lot.version
        """
        validate_movement(movement_type, quantity, performed_by, direction, lot_id)

        with lot_sections(lot_id):
            with transaction.atomic():
                lot = lock_lot(lot_id)
                return apply_movement(
                    lot, movement_type, quantity,
                    direction=direction,
                    reference=reference,
                    notes=notes,
                    performed_by=performed_by,
                    weight=weight,
                    expected_version=expected_version,
                    metadata=metadata,
                )

    @classmethod
    def replay(cls, lot: Lot) -> Decimal:
        """Current quantity recomputed from the ledger alone."""
        totals = lot.movements.aggregate(
            inc=Coalesce(Sum('quantity', filter=Q(direction=Direction.INCREASE)), Decimal('0')),
            dec=Coalesce(Sum('quantity', filter=Q(direction=Direction.DECREASE)), Decimal('0')),
        )
        return totals['inc'] - totals['dec']

    @classmethod
    def replay_received(cls, lot: Lot) -> Decimal:
        """Received quantity recomputed from the ledger alone."""
        return lot.movements.filter(type=MovementType.RECEIVED).aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']

    @classmethod
    def verify(cls, lot_id, fix: bool = False) -> tuple[Decimal, Decimal]:
        """
        Compare a lot's stored quantity with its ledger.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency (fix=True)

        Returns:
            (stored current_quantity, replayed quantity)
        """
        with lot_sections(lot_id):
            with transaction.atomic():
                lot = lock_lot(lot_id)
                stored = lot.current_quantity
                replayed = cls.replay(lot)

                if stored != replayed:
                    logger.warning(
                        f"Lot {lot.pk} ledger mismatch: stored {stored}, "
                        f"ledger {replayed} (diff: {replayed - stored})"
                    )
                    if fix:
                        lot.current_quantity = replayed
                        lot.received_quantity = cls.replay_received(lot)
                        save_lot(lot, ['current_quantity', 'received_quantity'])

                return stored, replayed
