"""
Tests for lot operations via the lots service.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from lotman import lots
from lotman.exceptions import (
    ConcurrencyConflictError,
    InsufficientAvailableError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from lotman.models import Direction, LotStatus, Movement, MovementType


pytestmark = pytest.mark.django_db


class TestIssue:
    """Tests for issuing stock."""

    def test_issue_reduces_current(self, lot):
        movement = lots.issue(lot.pk, Decimal('30'), performed_by='ana', reference='PV-1')
        lot.refresh_from_db()

        assert lot.current_quantity == Decimal('70')
        assert movement.type == MovementType.ISSUED
        assert movement.direction == Direction.DECREASE
        assert movement.balance_after == Decimal('70')

    def test_issue_respects_reservations(self, lot):
        """current 100, reserved 20: issuing 90 fails, issuing 80 succeeds."""
        lots.reserve(lot.pk, Decimal('20'), performed_by='ana')

        with pytest.raises(InsufficientAvailableError) as exc:
            lots.issue(lot.pk, Decimal('90'), performed_by='ana')

        assert exc.value.available == Decimal('80')
        lot.refresh_from_db()
        assert lot.current_quantity == Decimal('100')

        lots.issue(lot.pk, Decimal('80'), performed_by='ana')
        lot.refresh_from_db()

        assert lot.current_quantity == Decimal('20')
        assert lot.reserved_quantity == Decimal('20')
        assert lot.available_quantity == Decimal('0')
        assert lot.status == LotStatus.RESERVED

    def test_issue_all_marks_consumed(self, lot):
        lots.issue(lot.pk, Decimal('100'), performed_by='ana')
        lot.refresh_from_db()

        assert lot.current_quantity == Decimal('0')
        assert lot.status == LotStatus.CONSUMED

    def test_failed_issue_writes_nothing(self, lot):
        before = lot.movements.count()

        with pytest.raises(InsufficientAvailableError):
            lots.issue(lot.pk, Decimal('101'), performed_by='ana')

        assert lot.movements.count() == before

    @pytest.mark.parametrize('quantity', [Decimal('0'), Decimal('-5'), 'abc'])
    def test_issue_rejects_bad_quantity(self, lot, quantity):
        with pytest.raises(ValidationError) as exc:
            lots.issue(lot.pk, quantity, performed_by='ana')

        assert exc.value.code == 'INVALID_QUANTITY'

    @pytest.mark.parametrize('quantity', [Decimal('0.0004'), Decimal('1.2345'),
                                          Decimal('1000000000'), 'NaN', 'Infinity'])
    def test_issue_rejects_unstorable_quantity(self, lot, quantity):
        with pytest.raises(ValidationError) as exc:
            lots.issue(lot.pk, quantity, performed_by='ana')

        assert exc.value.code == 'INVALID_QUANTITY'
        lot.refresh_from_db()
        assert lot.current_quantity == Decimal('100')
        assert lot.movements.count() == 1

    def test_issue_accepts_three_decimal_places(self, lot):
        lots.issue(lot.pk, Decimal('0.125'), performed_by='ana')
        lot.refresh_from_db()

        assert lot.current_quantity == Decimal('99.875')

    def test_issue_requires_performer(self, lot):
        with pytest.raises(ValidationError) as exc:
            lots.issue(lot.pk, Decimal('1'), performed_by='  ')

        assert exc.value.code == 'PERFORMED_BY_REQUIRED'

    def test_issue_unknown_lot(self, db):
        with pytest.raises(NotFoundError) as exc:
            lots.issue(999999, Decimal('1'), performed_by='ana')

        assert exc.value.code == 'LOT_NOT_FOUND'


class TestAdjust:
    """Tests for adjustments."""

    def test_adjust_increase(self, lot):
        lots.adjust(lot.pk, Decimal('5'), Direction.INCREASE, performed_by='ana',
                    notes='Contagem')
        lot.refresh_from_db()

        assert lot.current_quantity == Decimal('105')

    def test_adjust_decrease_below_reserved_fails(self, lot):
        lots.reserve(lot.pk, Decimal('30'), performed_by='ana')

        with pytest.raises(InsufficientStockError):
            lots.adjust(lot.pk, Decimal('80'), 'decrease', performed_by='ana')

    def test_adjust_decrease_below_zero_fails(self, lot):
        with pytest.raises(InsufficientStockError) as exc:
            lots.adjust(lot.pk, Decimal('101'), Direction.DECREASE, performed_by='ana')

        assert exc.value.code == 'INSUFFICIENT_QUANTITY'

    def test_adjust_requires_direction(self, lot):
        with pytest.raises(ValidationError) as exc:
            lots.adjust(lot.pk, Decimal('5'), None, performed_by='ana')

        assert exc.value.code == 'DIRECTION_REQUIRED'


class TestReturnAndDamage:

    def test_return_adds_stock(self, lot):
        lots.issue(lot.pk, Decimal('40'), performed_by='ana')
        lots.return_stock(lot.pk, Decimal('10'), performed_by='ana', reference='DEV-7')
        lot.refresh_from_db()

        assert lot.current_quantity == Decimal('70')

    def test_damage_limited_to_available(self, lot):
        lots.reserve(lot.pk, Decimal('95'), performed_by='ana')

        with pytest.raises(InsufficientAvailableError):
            lots.mark_damaged(lot.pk, Decimal('10'), performed_by='ana')

        lots.mark_damaged(lot.pk, Decimal('5'), performed_by='ana')
        lot.refresh_from_db()
        assert lot.current_quantity == Decimal('95')


class TestReservations:

    def test_reserve_and_release(self, lot):
        lots.reserve(lot.pk, Decimal('25'), performed_by='ana')
        released = lots.release_reservation(lot.pk, Decimal('10'), performed_by='ana')

        assert released.reserved_quantity == Decimal('15')
        assert released.available_quantity == Decimal('85')
        assert released.current_quantity == Decimal('100')

    def test_reserve_more_than_available(self, lot):
        with pytest.raises(InsufficientAvailableError):
            lots.reserve(lot.pk, Decimal('100.001'), performed_by='ana')

    def test_release_more_than_reserved(self, lot):
        lots.reserve(lot.pk, Decimal('5'), performed_by='ana')

        with pytest.raises(ValidationError) as exc:
            lots.release_reservation(lot.pk, Decimal('6'), performed_by='ana')

        assert exc.value.code == 'EXCEEDS_RESERVED'

    def test_reserve_writes_no_movement(self, lot):
        before = lot.movements.count()
        lots.reserve(lot.pk, Decimal('5'), performed_by='ana')

        assert lot.movements.count() == before

    def test_reserve_rejects_sub_milli_quantity(self, lot):
        with pytest.raises(ValidationError) as exc:
            lots.reserve(lot.pk, Decimal('0.0004'), performed_by='ana')

        assert exc.value.code == 'INVALID_QUANTITY'


class TestIssueReserved:
    """Tests for shipping reserved stock."""

    def test_ship_full_reservation(self, lot):
        lots.reserve(lot.pk, Decimal('100'), performed_by='ana', reference='PV-9')

        movement = lots.issue_reserved(lot.pk, Decimal('100'), performed_by='ana',
                                       reference='PV-9')
        lot.refresh_from_db()

        assert movement.type == MovementType.ISSUED
        assert movement.balance_after == Decimal('0')
        assert lot.current_quantity == Decimal('0')
        assert lot.reserved_quantity == Decimal('0')
        assert lot.status == LotStatus.CONSUMED

    def test_plain_issue_cannot_take_reserved_stock(self, lot):
        lots.reserve(lot.pk, Decimal('100'), performed_by='ana')

        with pytest.raises(InsufficientAvailableError):
            lots.issue(lot.pk, Decimal('100'), performed_by='ana')

    def test_partial_shipment_keeps_available(self, lot):
        lots.reserve(lot.pk, Decimal('40'), performed_by='ana')

        lots.issue_reserved(lot.pk, Decimal('15'), performed_by='ana')
        lot.refresh_from_db()

        assert lot.current_quantity == Decimal('85')
        assert lot.reserved_quantity == Decimal('25')
        assert lot.available_quantity == Decimal('60')

    def test_beyond_reservation_rejected(self, lot):
        lots.reserve(lot.pk, Decimal('10'), performed_by='ana')

        with pytest.raises(ValidationError) as exc:
            lots.issue_reserved(lot.pk, Decimal('11'), performed_by='ana')

        assert exc.value.code == 'EXCEEDS_RESERVED'
        lot.refresh_from_db()
        assert lot.current_quantity == Decimal('100')
        assert lot.reserved_quantity == Decimal('10')
        assert lot.movements.count() == 1


class TestRecordMovement:
    """Tests for lots.record_movement()."""

    def test_dispatches_issue(self, lot):
        lots.record_movement(lot.pk, 'issued', Decimal('10'), performed_by='ana')
        lot.refresh_from_db()

        assert lot.current_quantity == Decimal('90')

    def test_adjusted_needs_direction(self, lot):
        with pytest.raises(ValidationError) as exc:
            lots.record_movement(lot.pk, MovementType.ADJUSTED, Decimal('1'), performed_by='ana')

        assert exc.value.code == 'DIRECTION_REQUIRED'

    def test_adjusted_with_direction(self, lot):
        lots.record_movement(lot.pk, 'adjusted', Decimal('3'), performed_by='ana',
                             direction='decrease')
        lot.refresh_from_db()

        assert lot.current_quantity == Decimal('97')

    @pytest.mark.parametrize('movement_type', ['received', 'transfer_in', 'transfer_out', 'sold'])
    def test_rejects_types_owned_elsewhere(self, lot, movement_type):
        with pytest.raises(ValidationError) as exc:
            lots.record_movement(lot.pk, movement_type, Decimal('1'), performed_by='ana')

        assert exc.value.code == 'INVALID_MOVEMENT_TYPE'

    def test_rejects_contradicting_direction(self, lot):
        with pytest.raises(ValidationError) as exc:
            lots.record_movement(lot.pk, 'issued', Decimal('1'), performed_by='ana',
                                 direction='increase')

        assert exc.value.code == 'INVALID_MOVEMENT_TYPE'

    def test_stale_version_conflicts(self, lot):
        version = lots.get_lot(lot.pk).version
        lots.issue(lot.pk, Decimal('1'), performed_by='ana')

        with pytest.raises(ConcurrencyConflictError):
            lots.record_movement(lot.pk, 'issued', Decimal('1'), performed_by='ana',
                                 expected_version=version)


class TestUpdateDetails:

    def test_update_quality_status(self, lot):
        updated = lots.update_details(lot.pk, 'qa', quality_status='quarantine')

        assert updated.quality_status == 'quarantine'

    def test_rejects_unknown_quality_status(self, lot):
        with pytest.raises(ValidationError) as exc:
            lots.update_details(lot.pk, 'qa', quality_status='great')

        assert exc.value.code == 'INVALID_QUALITY_STATUS'


class TestQueries:

    def test_list_movements_most_recent_first(self, lot):
        lots.issue(lot.pk, Decimal('10'), performed_by='ana')
        lots.issue(lot.pk, Decimal('5'), performed_by='ana')

        history = lots.list_movements(lot.pk)

        assert [m.balance_after for m in history] == [
            Decimal('85'), Decimal('90'), Decimal('100')
        ]

    def test_list_movements_pages(self, lot):
        for _ in range(4):
            lots.issue(lot.pk, Decimal('1'), performed_by='ana')

        first = lots.list_movements(lot.pk, limit=3)
        second = lots.list_movements(lot.pk, limit=3, offset=3)

        assert len(first) == 3
        assert len(second) == 2
        assert {m.pk for m in first}.isdisjoint({m.pk for m in second})

    def test_list_movements_unknown_lot(self, db):
        with pytest.raises(NotFoundError):
            lots.list_movements(424242)

    def test_get_lot_as_dict(self, lot):
        data = lots.get_lot(lot.pk).as_dict()

        assert data['lotNumber'] == lot.lot_number
        assert data['availableQuantity'] == '100.000'
        assert data['status'] == LotStatus.ACTIVE

    def test_list_lots_filters(self, make_lot, other_product):
        make_lot(Decimal('10'), supplier='Moinho Norte')
        make_lot(Decimal('10'), product=other_product)

        assert lots.list_lots(supplier='norte').count() == 1
        assert lots.list_lots(product=other_product).count() == 1

    def test_get_lot_by_number(self, lot):
        assert lots.get_lot_by_number(lot.lot_number.lower()).pk == lot.pk

        with pytest.raises(NotFoundError):
            lots.get_lot_by_number('LOT000000000')

    def test_product_lots_first_expiry_first(self, make_lot, today):
        late = make_lot(Decimal('10'), expiry_date=today + timedelta(days=90))
        undated = make_lot(Decimal('10'))
        early = make_lot(Decimal('10'), expiry_date=today + timedelta(days=60))
        empty = make_lot(Decimal('10'), expiry_date=today + timedelta(days=50))
        lots.issue(empty.pk, Decimal('10'), performed_by='ana')

        ordered = list(lots.product_lots(early.product))

        assert [lot.pk for lot in ordered] == [early.pk, late.pk, undated.pk]

    def test_expiring_lots(self, make_lot, today):
        soon = make_lot(Decimal('10'), expiry_date=today + timedelta(days=5))
        make_lot(Decimal('10'), expiry_date=today + timedelta(days=45))

        assert list(lots.expiring_lots()) == [soon]
        assert lots.expiring_lots(days=60).count() == 2

    def test_stats(self, make_lot):
        make_lot(Decimal('100'), cost=Decimal('2.50'))
        make_lot(Decimal('5'), cost=Decimal('1.00'))

        stats = lots.stats()

        assert stats['total_lots'] == 2
        assert stats['active_lots'] == 2
        assert stats['low_stock_lots'] == 1
        assert stats['total_value'] == Decimal('255')


class TestMovementImmutability:

    def test_movement_cannot_be_changed(self, lot):
        movement = lot.movements.first()
        movement.notes = 'editado'

        with pytest.raises(ValueError):
            movement.save()

        with pytest.raises(ValueError):
            movement.delete()

        assert Movement.objects.get(pk=movement.pk).notes != 'editado'
