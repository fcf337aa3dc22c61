"""
Receiving — goods-receipt lines into lots.

ReceivingLine is the calculator the receiving screen works with: ordered vs
previously received vs receiving now, with weight tracked proportionally
unless the operator types a weight.

LotReceiving turns a confirmed line into ledger state: the first receipt
for a GRN line creates the lot (with an opening RECEIVED movement), later
receipts append RECEIVED movements to that lot. This is the only producer
of RECEIVED movements.

Usage:
    line = ReceivingLine(ordered_quantity=Decimal('100'),
                         ordered_weight=Decimal('5000'),
                         previously_received=Decimal('60'))
    line.set_receiving_now(Decimal('40'))
    line.pending_quantity        # Decimal('0')
    line.completion_percentage   # 100

    lot = lots.confirm_receipt(line, 'GRN-0042/1', product, performed_by='ana')
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal

from django.contrib.contenttypes.models import ContentType
from django.db import transaction
from django.db.models.functions import Length

from lotman import quantities
from lotman.conf import lotman_settings
from lotman.expiry import local_today
from lotman.exceptions import ValidationError
from lotman.locks import lot_number_section, receipt_section
from lotman.models.enums import MovementType, QualityStatus
from lotman.models.lot import Lot
from lotman.services.alerts import evaluate_alerts
from lotman.services.ledger import (
    apply_movement,
    require_performer,
    require_positive,
    to_quantity,
)
from lotman.services.lots import LotOperations
from lotman.services.transfers import Location, as_location

logger = logging.getLogger('lotman')

ZERO = Decimal('0')


@dataclass
class ReceivingLine:
    """
    One goods-receipt line being received.

    receiving_now_weight is the proportional estimate unless an explicit
    weight was given, in which case pending_weight follows the explicit value.
    """

    ordered_quantity: Decimal
    ordered_weight: Decimal = ZERO
    previously_received: Decimal = ZERO
    previous_weight: Decimal = ZERO
    receiving_now_quantity: Decimal = ZERO
    weight_override: Decimal | None = field(default=None)

    def __post_init__(self):
        self.ordered_quantity = to_quantity(self.ordered_quantity)
        self.ordered_weight = to_quantity(self.ordered_weight)
        self.previously_received = to_quantity(self.previously_received)
        self.previous_weight = to_quantity(self.previous_weight)
        self.receiving_now_quantity = to_quantity(self.receiving_now_quantity)
        if self.weight_override is not None:
            self.weight_override = to_quantity(self.weight_override)

        # Older receipts may not have recorded a weight
        if self.previous_weight == 0 and self.previously_received > 0:
            self.previous_weight = quantities.proportional_weight(
                self.previously_received, self.ordered_quantity, self.ordered_weight
            )

        quantities.check_receivable(
            self.ordered_quantity, self.previously_received, self.receiving_now_quantity
        )

    @property
    def weight_per_unit(self) -> Decimal:
        return quantities.weight_per_unit(self.ordered_quantity, self.ordered_weight)

    @property
    def remaining(self) -> Decimal:
        """Most that may be received now."""
        return quantities.remaining_receivable(self.ordered_quantity, self.previously_received)

    @property
    def receiving_now_weight(self) -> Decimal:
        if self.weight_override is not None:
            return self.weight_override
        return quantities.proportional_weight(
            self.receiving_now_quantity, self.ordered_quantity, self.ordered_weight
        )

    @property
    def pending_quantity(self) -> Decimal:
        return quantities.pending_quantity(
            self.ordered_quantity, self.previously_received, self.receiving_now_quantity
        )

    @property
    def pending_weight(self) -> Decimal:
        return quantities.pending_weight(
            self.ordered_weight, self.previous_weight, self.receiving_now_weight
        )

    @property
    def completion_percentage(self) -> int:
        return quantities.completion_percentage(
            self.ordered_quantity, self.previously_received, self.receiving_now_quantity
        )

    def set_receiving_now(self, quantity, weight=None) -> 'ReceivingLine':
        """
        Set the quantity being received now.

        weight=None keeps the proportional estimate; an explicit weight
        overrides it.

        Raises:
            ValidationError('EXCEEDS_PENDING'): quantity > ordered - previously_received
            ValidationError('INVALID_QUANTITY'): negative quantity or weight
        """
        quantity = quantities.check_receivable(
            self.ordered_quantity, self.previously_received, to_quantity(quantity)
        )
        if weight is not None:
            weight = to_quantity(weight)
            if weight < 0:
                raise ValidationError('INVALID_QUANTITY', requested=weight)

        self.receiving_now_quantity = quantity
        self.weight_override = weight
        return self

    def next_receipt(self) -> 'ReceivingLine':
        """The same line after this receipt is confirmed, nothing received yet."""
        return replace(
            self,
            previously_received=self.previously_received + self.receiving_now_quantity,
            previous_weight=self.previous_weight + self.receiving_now_weight,
            receiving_now_quantity=ZERO,
            weight_override=None,
        )

    def as_dict(self) -> dict:
        return {
            'orderedQuantity': str(self.ordered_quantity),
            'orderedWeight': str(self.ordered_weight),
            'previouslyReceived': str(self.previously_received),
            'previousWeight': str(self.previous_weight),
            'receivingNowQuantity': str(self.receiving_now_quantity),
            'receivingNowWeight': str(self.receiving_now_weight),
            'pendingQuantity': str(self.pending_quantity),
            'pendingWeight': str(self.pending_weight),
            'completionPercentage': self.completion_percentage,
        }


def next_lot_number(today: date | None = None) -> str:
    """
    Next lot number for the month: LOT{YYYY}{MM}{seq:04d}.

    Must run under lot_number_section() until the new lot is committed.
    """
    today = today or local_today()
    prefix = f"{lotman_settings.LOT_NUMBER_PREFIX}{today:%Y%m}"
    last = (
        Lot.objects.filter(lot_number__startswith=prefix)
        .order_by(Length('lot_number').desc(), '-lot_number')
        .values_list('lot_number', flat=True)
        .first()
    )
    seq = 1
    if last and last[len(prefix):].isdigit():
        seq = int(last[len(prefix):]) + 1
    return f"{prefix}{seq:04d}"


class LotReceiving:
    """Receipt confirmation methods."""

    @classmethod
    def confirm_receipt(cls, line: ReceivingLine, grn_line_id, product, *,
                        performed_by: str, **lot_fields) -> Lot:
        """
        Confirm what is being received on a goods-receipt line.

        Re-validates the line, then creates or tops up the lot for the GRN
        line with the confirmed quantity and weight.

        Raises:
            ValidationError('EXCEEDS_PENDING'): Line over-receives
            ValidationError('INVALID_QUANTITY'): Nothing being received
        """
        quantities.check_receivable(
            line.ordered_quantity, line.previously_received, line.receiving_now_quantity
        )
        return cls.create_lot_from_receipt(
            grn_line_id,
            line.receiving_now_quantity,
            weight=line.receiving_now_weight,
            product=product,
            performed_by=performed_by,
            **lot_fields,
        )

    @classmethod
    def create_lot_from_receipt(cls, grn_line_id, quantity, weight=None, cost=None,
                                supplier: str = '', location=None, *, product,
                                performed_by: str, grn_reference: str = '',
                                po_reference: str = '', unit: str = 'un',
                                expiry_date: date | None = None,
                                received_date: date | None = None,
                                quality_status=QualityStatus.APPROVED,
                                notes: str = '') -> Lot:
        """
        Record a confirmed receipt.

        First receipt for grn_line_id: creates the Lot with an opening
        RECEIVED movement (received = current = quantity, status active).
        Later receipts: RECEIVED movement on the existing lot.

        Concurrency:
            - Serialized per GRN line (two confirmations never create two lots)
            - Lot numbering serialized until the new lot is committed
        """
        quantity = require_positive(quantity)
        performed_by = require_performer(performed_by)
        grn_line_id = str(grn_line_id or '').strip()
        if not grn_line_id:
            raise ValidationError('GRN_LINE_REQUIRED')

        weight = to_quantity(weight or 0)
        cost = to_quantity(cost or 0)
        if weight < 0 or cost < 0:
            raise ValidationError('INVALID_QUANTITY', weight=weight, cost=cost)

        location = as_location(location) if location is not None else Location()
        reference = grn_reference or grn_line_id
        ct = ContentType.objects.get_for_model(product)

        with receipt_section(grn_line_id):
            existing = Lot.objects.filter(grn_line_id=grn_line_id).order_by('pk').first()

            if existing is not None:
                if (existing.content_type_id, existing.object_id) != (ct.pk, product.pk):
                    raise ValidationError(
                        'PRODUCT_MISMATCH', lot_id=existing.pk, grn_line_id=grn_line_id
                    )
                LotOperations.receive(
                    existing.pk, quantity, performed_by,
                    reference=reference,
                    notes=notes or f"Recebido via {reference}",
                    weight=weight,
                )
                existing.refresh_from_db()
                logger.info(
                    "lot.receive",
                    extra={
                        "lot_id": existing.pk,
                        "grn_line_id": grn_line_id,
                        "qty": str(quantity),
                        "lot_created": False,
                    },
                )
                return existing

            with lot_number_section():
                with transaction.atomic():
                    lot = Lot.objects.create(
                        lot_number=next_lot_number(),
                        content_type=ct,
                        object_id=product.pk,
                        supplier=supplier or '',
                        grn_reference=grn_reference or '',
                        grn_line_id=grn_line_id,
                        po_reference=po_reference or '',
                        unit=unit,
                        unit_cost=cost,
                        quality_status=quality_status,
                        received_date=received_date or local_today(),
                        expiry_date=expiry_date,
                        notes=notes or '',
                        created_by=performed_by,
                        **location.as_dict(),
                    )
                    apply_movement(
                        lot, MovementType.RECEIVED, quantity,
                        reference=reference,
                        notes=f"Recebido via {reference}",
                        performed_by=performed_by,
                        weight=weight,
                    )
                    evaluate_alerts(lot)

        logger.info(
            "lot.receive",
            extra={
                "lot_id": lot.pk,
                "lot_number": lot.lot_number,
                "grn_line_id": grn_line_id,
                "qty": str(quantity),
                "lot_created": True,
            },
        )
        return lot
