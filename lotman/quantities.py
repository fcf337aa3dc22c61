"""
Quantity arithmetic — pure functions over Decimal, no state.

Derived figures used by lots and by the goods-receipt side:
    available = current - reserved
    pending   = ordered - previously_received - receiving_now
    completion = round(100 * (previously_received + receiving_now) / ordered)

Examples:
    >>> pending_quantity(Decimal('100'), Decimal('60'), Decimal('40'))
    Decimal('0')
    >>> proportional_weight(Decimal('25'), Decimal('100'), Decimal('5000'))
    Decimal('1250')
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from lotman.exceptions import ValidationError

ZERO = Decimal('0')


def _d(value) -> Decimal:
    try:
        value = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError('INVALID_QUANTITY', requested=value)
    if not value.is_finite():
        raise ValidationError('INVALID_QUANTITY', requested=str(value))
    return value


def available(current, reserved) -> Decimal:
    """Quantity eligible for new commitments."""
    return _d(current) - _d(reserved)


def remaining_receivable(ordered, previously_received) -> Decimal:
    """Upper bound for what may still be received against an order line."""
    return _d(ordered) - _d(previously_received)


def pending_quantity(ordered, previously_received, receiving_now) -> Decimal:
    return _d(ordered) - _d(previously_received) - _d(receiving_now)


def weight_per_unit(ordered_quantity, ordered_weight) -> Decimal:
    """Weight of one unit as ordered. 0 when nothing was ordered."""
    ordered_quantity = _d(ordered_quantity)
    if ordered_quantity == 0:
        return ZERO
    return _d(ordered_weight) / ordered_quantity


def proportional_weight(quantity, ordered_quantity, ordered_weight) -> Decimal:
    """Default weight for `quantity` units, proportional to the order."""
    return _d(quantity) * weight_per_unit(ordered_quantity, ordered_weight)


def pending_weight(ordered_weight, previous_weight, receiving_weight) -> Decimal:
    return _d(ordered_weight) - _d(previous_weight) - _d(receiving_weight)


def completion_percentage(ordered, previously_received, receiving_now) -> int:
    """
    Percentage of the ordered quantity received so far, rounded half-up.

    Returns 0 when nothing was ordered.
    """
    ordered = _d(ordered)
    if ordered == 0:
        return 0
    ratio = Decimal('100') * (_d(previously_received) + _d(receiving_now)) / ordered
    return int(ratio.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def check_receivable(ordered, previously_received, receiving_now) -> Decimal:
    """
    Validate a receiving-now quantity against the order line.

    Rejects (never clamps) values that would make pending negative.

    Returns:
        The accepted quantity as Decimal.

    Raises:
        ValidationError('INVALID_QUANTITY'): If receiving_now < 0
        ValidationError('EXCEEDS_PENDING'): If receiving_now > ordered - previously_received
    """
    receiving_now = _d(receiving_now)
    if receiving_now < 0:
        raise ValidationError('INVALID_QUANTITY', requested=receiving_now)

    remaining = remaining_receivable(ordered, previously_received)
    if receiving_now > remaining:
        raise ValidationError(
            'EXCEEDS_PENDING',
            requested=receiving_now,
            available=remaining,
        )
    return receiving_now
