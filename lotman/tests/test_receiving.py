"""
Tests for receiving: lot creation from goods-receipt lines.
"""

import logging
from datetime import date
from decimal import Decimal
from unittest import mock

import pytest

from lotman import lots
from lotman.exceptions import ValidationError
from lotman.expiry import local_today
from lotman.models import Lot, LotStatus, MovementType
from lotman.services.receiving import ReceivingLine, next_lot_number
from lotman.services.transfers import Location


pytestmark = pytest.mark.django_db


class TestCreateLotFromReceipt:

    def test_creates_lot_with_opening_movement(self, product):
        lot = lots.create_lot_from_receipt(
            'GRN-0042/1', Decimal('100'),
            weight=Decimal('5000'), cost=Decimal('12.50'), supplier='Moinho Sul',
            location=Location(warehouse='CD1', zone='A', rack='3'),
            product=product, performed_by='ana', grn_reference='GRN-0042',
            po_reference='PO-77',
        )

        assert lot.received_quantity == Decimal('100')
        assert lot.current_quantity == Decimal('100')
        assert lot.reserved_quantity == Decimal('0')
        assert lot.status == LotStatus.ACTIVE
        assert lot.total_weight == Decimal('5000')
        assert lot.rack == '3'
        assert lot.product == product
        assert lot.created_by == 'ana'

        opening = lot.movements.get()
        assert opening.type == MovementType.RECEIVED
        assert opening.reference == 'GRN-0042'

    def test_second_receipt_tops_up_same_lot(self, product):
        first = lots.create_lot_from_receipt('GRN-0050/2', Decimal('60'),
                                             product=product, performed_by='ana')
        second = lots.create_lot_from_receipt('GRN-0050/2', Decimal('40'),
                                              product=product, performed_by='ana')

        assert second.pk == first.pk
        assert second.received_quantity == Decimal('100')
        assert second.current_quantity == Decimal('100')
        assert second.movements.filter(type=MovementType.RECEIVED).count() == 2
        assert Lot.objects.count() == 1

    def test_receipt_for_other_product_rejected(self, product, other_product):
        lots.create_lot_from_receipt('GRN-0051/1', Decimal('10'),
                                     product=product, performed_by='ana')

        with pytest.raises(ValidationError) as exc:
            lots.create_lot_from_receipt('GRN-0051/1', Decimal('10'),
                                         product=other_product, performed_by='ana')

        assert exc.value.code == 'PRODUCT_MISMATCH'

    @pytest.mark.parametrize('quantity', [Decimal('0'), Decimal('-1')])
    def test_rejects_non_positive(self, product, quantity):
        with pytest.raises(ValidationError):
            lots.create_lot_from_receipt('GRN-0052/1', quantity,
                                         product=product, performed_by='ana')

        assert not Lot.objects.exists()

    def test_requires_grn_line(self, product):
        with pytest.raises(ValidationError) as exc:
            lots.create_lot_from_receipt('', Decimal('1'), product=product, performed_by='ana')

        assert exc.value.code == 'GRN_LINE_REQUIRED'


class TestLotNumbers:

    def test_sequence_within_month(self, product):
        a = lots.create_lot_from_receipt('GRN-1/1', Decimal('1'), product=product,
                                         performed_by='ana')
        b = lots.create_lot_from_receipt('GRN-2/1', Decimal('1'), product=product,
                                         performed_by='ana')

        prefix = f"LOT{local_today():%Y%m}"
        assert a.lot_number == f"{prefix}0001"
        assert b.lot_number == f"{prefix}0002"

    def test_sequence_past_9999(self, make_lot, product):
        lot = make_lot(Decimal('1'))
        prefix = f"LOT{local_today():%Y%m}"
        Lot.objects.filter(pk=lot.pk).update(lot_number=f"{prefix}9999")

        assert next_lot_number() == f"{prefix}10000"

    def test_new_month_restarts(self, db):
        assert next_lot_number(date(2031, 1, 15)) == "LOT2031010001"


class TestConfirmReceipt:

    def test_confirm_uses_line_quantity_and_weight(self, product):
        line = ReceivingLine(ordered_quantity=Decimal('100'), ordered_weight=Decimal('5000'))
        line.set_receiving_now(Decimal('25'))

        lot = lots.confirm_receipt(line, 'GRN-0060/1', product, performed_by='ana')

        assert lot.current_quantity == Decimal('25')
        assert lot.total_weight == Decimal('1250')

    def test_confirm_rejects_stale_line(self, product):
        line = ReceivingLine(ordered_quantity=Decimal('100'), previously_received=Decimal('60'))
        line.set_receiving_now(Decimal('40'))
        line.previously_received = Decimal('70')

        with pytest.raises(ValidationError) as exc:
            lots.confirm_receipt(line, 'GRN-0061/1', product, performed_by='ana')

        assert exc.value.code == 'EXCEEDS_PENDING'
        assert not Lot.objects.exists()


    @pytest.mark.parametrize('weight', ['NaN', 'Infinity'])
    def test_rejects_non_finite_weight(self, product, weight):
        with pytest.raises(ValidationError) as exc:
            lots.create_lot_from_receipt('GRN-0063/1', Decimal('5'), weight=weight,
                                         product=product, performed_by='ana')

        assert exc.value.code == 'INVALID_QUANTITY'
        assert not Lot.objects.exists()


class TestReceivingLog:

    def test_receipt_is_logged(self, product, caplog):
        caplog.set_level(logging.INFO, logger='lotman')

        lot = lots.create_lot_from_receipt('GRN-0062/1', Decimal('5'), product=product,
                                           performed_by='ana')

        [record] = [r for r in caplog.records if r.msg == 'lot.receive']
        assert record.lot_id == lot.pk
        assert record.lot_created is True
        assert record.grn_line_id == 'GRN-0062/1'

    def test_top_up_is_logged(self, product, caplog):
        lots.create_lot_from_receipt('GRN-0064/1', Decimal('5'), product=product,
                                     performed_by='ana')
        caplog.set_level(logging.INFO, logger='lotman')

        lots.create_lot_from_receipt('GRN-0064/1', Decimal('3'), product=product,
                                     performed_by='ana')

        [record] = [r for r in caplog.records if r.msg == 'lot.receive']
        assert record.lot_created is False


class TestReceivedDate:

    def test_received_date_follows_local_time_zone(self, product):
        with mock.patch('django.utils.timezone.localdate', return_value=date(2031, 1, 15)):
            lot = lots.create_lot_from_receipt('GRN-0065/1', Decimal('5'), product=product,
                                               performed_by='ana')

        assert lot.received_date == date(2031, 1, 15)
        assert lot.lot_number == "LOT2031010001"
