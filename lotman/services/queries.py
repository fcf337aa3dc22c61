"""
Lot queries — read-only operations.

All methods are classmethod on Lots and use no locking. They may observe
any committed snapshot.
"""

from datetime import date, datetime
from decimal import Decimal

from django.contrib.contenttypes.models import ContentType
from django.db.models import DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import Coalesce

from lotman.conf import lotman_settings
from lotman.exceptions import NotFoundError
from lotman.expiry import filter_expiring
from lotman.models.enums import LotStatus
from lotman.models.lot import Lot
from lotman.models.movement import Movement


class LotQueries:
    """Read-only lot query methods."""

    @classmethod
    def get_lot(cls, lot_id) -> Lot:
        """
        Raises:
            NotFoundError('LOT_NOT_FOUND'): If the lot doesn't exist
        """
        try:
            return Lot.objects.get(pk=lot_id)
        except (Lot.DoesNotExist, ValueError, TypeError):
            raise NotFoundError('LOT_NOT_FOUND', lot_id=lot_id)

    @classmethod
    def get_lot_by_number(cls, lot_number: str) -> Lot:
        try:
            return Lot.objects.get(lot_number=lot_number.upper())
        except Lot.DoesNotExist:
            raise NotFoundError('LOT_NOT_FOUND', lot_number=lot_number)

    @classmethod
    def list_lots(cls, product=None, status=None, supplier: str | None = None,
                  quality_status=None, search: str | None = None,
                  include_empty: bool = True):
        """List lots with filters (newest received first)."""
        qs = Lot.objects.all()

        if product is not None:
            qs = qs.for_product(product)

        if status is not None:
            qs = qs.filter(status=status)

        if supplier:
            qs = qs.filter(supplier__icontains=supplier)

        if quality_status is not None:
            qs = qs.filter(quality_status=quality_status)

        if search:
            qs = qs.filter(
                Q(lot_number__icontains=search)
                | Q(supplier__icontains=search)
                | Q(grn_reference__icontains=search)
                | Q(po_reference__icontains=search)
            )

        if not include_empty:
            qs = qs.with_stock()

        return qs

    @classmethod
    def list_movements(cls, lot_id, limit: int | None = None, offset: int = 0) -> list[Movement]:
        """
        Movement history, most recent first.

        Finite and restartable: pass offset=previous offset + len(page).

        Raises:
            NotFoundError('LOT_NOT_FOUND'): If the lot doesn't exist
        """
        lot = cls.get_lot(lot_id)
        limit = limit or lotman_settings.MOVEMENT_PAGE_SIZE
        qs = lot.movements.order_by('-timestamp', '-id')
        return list(qs[offset:offset + limit])

    @classmethod
    def balance_at(cls, lot_id, moment: datetime) -> Decimal:
        """On-hand quantity at a point in time, from the last balance_after."""
        lot = cls.get_lot(lot_id)
        last = (
            lot.movements.filter(timestamp__lte=moment)
            .order_by('-timestamp', '-id')
            .values_list('balance_after', flat=True)
            .first()
        )
        return last if last is not None else Decimal('0')

    @classmethod
    def expiring_lots(cls, days: int | None = None, today: date | None = None):
        """Lots with stock expiring within `days` (default EXPIRY_LEAD_DAYS)."""
        if days is None:
            days = lotman_settings.EXPIRY_LEAD_DAYS
        return filter_expiring(Lot.objects.all(), days, today)

    @classmethod
    def stats(cls, today: date | None = None) -> dict:
        """
        Inventory overview for dashboards.

        Returns:
            Dict with total_lots, active_lots, low_stock_lots,
            expiring_soon_lots and total_value (active lots only).
        """
        active = Lot.objects.filter(status=LotStatus.ACTIVE)
        threshold = lotman_settings.LOW_STOCK_THRESHOLD

        low_stock = active.filter(
            Q(reorder_threshold__isnull=True, current_quantity__lte=threshold)
            | Q(reorder_threshold__isnull=False, current_quantity__lte=F('reorder_threshold'))
        )

        value = active.aggregate(
            t=Coalesce(
                Sum(ExpressionWrapper(
                    F('current_quantity') * F('unit_cost'),
                    output_field=DecimalField(max_digits=20, decimal_places=5),
                )),
                Decimal('0'),
                output_field=DecimalField(max_digits=20, decimal_places=5),
            )
        )['t']

        return {
            'total_lots': Lot.objects.count(),
            'active_lots': active.count(),
            'low_stock_lots': low_stock.count(),
            'expiring_soon_lots': filter_expiring(
                active, lotman_settings.EXPIRY_LEAD_DAYS, today
            ).count(),
            'total_value': value,
        }

    @classmethod
    def product_lots(cls, product):
        """Lots with stock for a product, oldest expiry first (FEFO)."""
        ct = ContentType.objects.get_for_model(product)
        return Lot.objects.filter(
            content_type=ct, object_id=product.pk, current_quantity__gt=0
        ).order_by(F('expiry_date').asc(nulls_last=True), 'received_date', 'pk')
